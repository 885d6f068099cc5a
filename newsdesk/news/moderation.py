# newsdesk/news/moderation.py
"""
Editorial Moderation Policy

Decides whether a candidate submission is published, and rewrites the
title and summary of the ones that are.

Two interchangeable strategies share evaluate(candidate) -> Decision:
- RuleBasedPolicy: deterministic keyword and length checks
- RemotePolicy: delegates to an LLM; raises ServiceUnavailable on any failure
  so the caller can fall back to the rule-based policy
"""
import logging
import re
from typing import Callable, Optional

from newsdesk.lib.llm_utils import LLMClient, extract_json
from newsdesk.news.constants import (
    SPAM_KEYWORDS, INAPPROPRIATE_KEYWORDS, NON_LOCAL_KEYWORDS,
    MIN_DESCRIPTION_LENGTH, MIN_TITLE_LENGTH, MAX_TITLE_LENGTH,
    MAX_SUMMARY_LENGTH, MAX_SUMMARY_SENTENCES, ELLIPSIS,
    REASON_SPAM, REASON_INAPPROPRIATE, REASON_NOT_LOCAL,
    REASON_TOO_SHORT, REASON_TITLE_TOO_BRIEF, REASON_DEFAULT,
)
from newsdesk.news.errors import ServiceUnavailable
from newsdesk.news.models import Accepted, Decision, ModerationCandidate, Rejected

logger = logging.getLogger(__name__)

SENTENCE_SPLIT = re.compile(r'[.!?]+')


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - len(ELLIPSIS)] + ELLIPSIS


def _contains_any(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


class RuleBasedPolicy:
    """
    Deterministic moderation used when no LLM is configured, and always as
    the fallback for RemotePolicy.

    Checks run in order and stop at the first match: spam, inappropriate
    content, non-local scope, then minimum substance.
    """

    name = 'rules'

    def evaluate(self, candidate: ModerationCandidate) -> Decision:
        full_text = f"{candidate.title.lower()} {candidate.description.lower()}"

        if _contains_any(full_text, SPAM_KEYWORDS):
            return Rejected(REASON_SPAM)

        if _contains_any(full_text, INAPPROPRIATE_KEYWORDS):
            return Rejected(REASON_INAPPROPRIATE)

        if _contains_any(full_text, NON_LOCAL_KEYWORDS):
            return Rejected(REASON_NOT_LOCAL)

        if len(candidate.description) < MIN_DESCRIPTION_LENGTH:
            return Rejected(REASON_TOO_SHORT)

        if len(candidate.title) < MIN_TITLE_LENGTH:
            return Rejected(REASON_TITLE_TOO_BRIEF)

        return Accepted(
            edited_title=self.edit_title(candidate.title),
            edited_summary=self.edit_summary(candidate.description, candidate.city),
        )

    @staticmethod
    def edit_title(title: str) -> str:
        return _truncate(title.strip(), MAX_TITLE_LENGTH)

    @staticmethod
    def edit_summary(description: str, city: str) -> str:
        """
        Build a 2-3 sentence summary.

        Uses the first three sentences when the description has at least two;
        otherwise trims the description and appends a sentence naming the city.
        """
        sentences = [s.strip() for s in SENTENCE_SPLIT.split(description) if s.strip()]

        if len(sentences) >= 2:
            return '. '.join(sentences[:MAX_SUMMARY_SENTENCES]) + '.'

        clean = re.sub(r'\s+', ' ', description.strip())
        if len(clean) > MAX_SUMMARY_LENGTH:
            summary = _truncate(clean, MAX_SUMMARY_LENGTH)
        else:
            summary = clean if clean.endswith('.') else clean + '.'
        return f"{summary} This event took place in {city}."


MODERATION_SYSTEM_PROMPT = """You are an AI news editor for a local news platform. Your job is to validate and edit user-submitted news for local communities.

VALIDATION CRITERIA:
1. RELEVANCE CHECK: Must be about LOCAL HAPPENINGS
   - Accept: Local events, community news, accidents, festivals, business openings, school events, local government, weather events affecting the area
   - Reject: National/international news, spam, advertisements, personal grievances, non-news content

2. CONTENT SAFETY CHECK: Flag harmful or inappropriate content
   - Reject: Hate speech, violence, harassment, false information, inappropriate content, commercial advertisements

3. QUALITY CHECK: Must be newsworthy and substantial
   - Reject: Trivial personal matters, incomplete information, incoherent content

EDITING REQUIREMENTS (only if content passes validation):
- Create a CONCISE, CLEAR title (max 80 characters)
- Write a 2-3 sentence summary that captures the key facts
- Use professional but accessible language
- Focus on WHO, WHAT, WHEN, WHERE

Respond ONLY with valid JSON in this exact format:
{
  "isValid": boolean,
  "editedTitle": "string" (only if isValid is true),
  "editedSummary": "string" (only if isValid is true, must be 2-3 complete sentences),
  "rejectionReason": "string" (only if isValid is false, explain why it was rejected)
}

CRITICAL: editedSummary must be exactly 2-3 complete sentences, no more, no less."""


def build_user_prompt(candidate: ModerationCandidate) -> str:
    return f"""Please validate and edit this local news submission:

Title: {candidate.title}
Description: {candidate.description}
City: {candidate.city}
Category: {candidate.category}"""


class RemotePolicy:
    """
    Moderation delegated to an LLM.

    Args:
        llm_call: Callable(system_prompt, user_prompt) -> reply text
        max_attempts: Calls made before giving up (default 1)
    """

    name = 'remote'

    def __init__(self, llm_call: Callable[[str, str], str], max_attempts: int = 1):
        self.llm_call = llm_call
        self.max_attempts = max(1, int(max_attempts))

    def evaluate(self, candidate: ModerationCandidate) -> Decision:
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                reply = self.llm_call(MODERATION_SYSTEM_PROMPT, build_user_prompt(candidate))
                return self.parse_decision(reply)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Remote moderation attempt {attempt}/{self.max_attempts} failed: {e}"
                )
        raise ServiceUnavailable(f"Remote moderation unavailable: {last_error}") from last_error

    @staticmethod
    def parse_decision(reply: str) -> Decision:
        """
        Turn an LLM reply into a Decision.

        Raises:
            ValueError: If the reply is not the expected JSON shape
        """
        data = extract_json(reply)

        is_valid = data.get('isValid')
        if not isinstance(is_valid, bool):
            raise ValueError("LLM reply is missing boolean 'isValid'")

        if is_valid:
            title = data.get('editedTitle')
            summary = data.get('editedSummary')
            if not isinstance(title, str) or not title.strip():
                raise ValueError("LLM accepted without 'editedTitle'")
            if not isinstance(summary, str) or not summary.strip():
                raise ValueError("LLM accepted without 'editedSummary'")
            return Accepted(edited_title=_truncate(title.strip(), MAX_TITLE_LENGTH),
                            edited_summary=summary.strip())

        reason = data.get('rejectionReason')
        if not isinstance(reason, str) or not reason.strip():
            reason = REASON_DEFAULT
        return Rejected(reason.strip())


def build_policy(config, llm_call: Optional[Callable[[str, str], str]] = None):
    """
    Select the primary moderation policy from configuration.

    MODERATION_STRATEGY:
        'rules'  - always rule-based
        'remote' - LLM, even if no key is set (every call then falls back)
        'auto'   - LLM when an API key is configured, otherwise rules
    """
    strategy = (config.get('MODERATION_STRATEGY') or 'auto').lower()
    max_attempts = config.get('MODERATION_MAX_ATTEMPTS', 1)

    if strategy == 'rules':
        return RuleBasedPolicy()

    if llm_call is None:
        client = LLMClient.from_config(config)
        if strategy == 'auto' and not client.available:
            logger.info("No LLM API key configured, using rule-based moderation")
            return RuleBasedPolicy()
        llm_call = client

    if strategy not in ('auto', 'remote'):
        logger.warning(f"Unknown MODERATION_STRATEGY '{strategy}', using remote with rule fallback")
    return RemotePolicy(llm_call, max_attempts=max_attempts)
