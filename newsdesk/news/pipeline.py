"""
Publication Pipeline

Turns a raw submission into either a published item or a rejected
submission:
1. validate intake fields and persist the submission as pending
2. moderate (remote policy with rule-based fallback, no store lock held)
3. accepted: approve + publish in one atomic store write
4. rejected: mark the submission rejected with the reason
"""

import logging
import secrets
import time
from typing import Callable, Dict, List, Optional, Tuple

from newsdesk.lib.masking import mask_phone
from newsdesk.lib.time import utcnow_naive
from newsdesk.news.constants import STATUS_PENDING, STATUS_REJECTED
from newsdesk.news.errors import (
    InconsistentStateError, ServiceUnavailable, StorageFailure, SubmissionAlreadyProcessed
)
from newsdesk.news.models import (
    Accepted, Decision, ModerationCandidate, PublicationOutcome, PublishedItem, Submission
)
from newsdesk.news.moderation import RuleBasedPolicy
from newsdesk.news.store import SubmissionStore
from newsdesk.news.validators import validate_submission_fields

logger = logging.getLogger(__name__)

BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'


def _base36(number: int) -> str:
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return ''.join(reversed(digits)) or '0'


def generate_id() -> str:
    """Millisecond timestamp in base 36 followed by a random suffix."""
    return _base36(int(time.time() * 1000)) + secrets.token_hex(5)


class PublicationPipeline:
    """
    Orchestrates submission intake, moderation and publication.

    Args:
        store: SubmissionStore holding the news collections
        policy: Primary moderation policy (remote or rule-based)
        fallback_policy: Used when the primary raises ServiceUnavailable
        clock: Returns the current naive UTC datetime
        id_factory: Returns fresh opaque ids for published items
    """

    def __init__(self, store: SubmissionStore, policy=None, fallback_policy=None,
                 clock: Callable = utcnow_naive, id_factory: Callable[[], str] = generate_id):
        self.store = store
        self.fallback_policy = fallback_policy or RuleBasedPolicy()
        self.policy = policy or self.fallback_policy
        self.clock = clock
        self.id_factory = id_factory

    def submit(self, fields: Dict, submission_id: Optional[str] = None) -> PublicationOutcome:
        """
        Run a new submission through the whole pipeline.

        Raises:
            SubmissionValidationError: Intake fields invalid (nothing stored)
            StorageFailure: The submission could not be persisted
            InconsistentStateError: Moderated, but the outcome was not stored
            SubmissionAlreadyProcessed: A concurrent reprocess finished it first
        """
        cleaned = validate_submission_fields(fields)

        submission = Submission(
            id=submission_id or self.id_factory(),
            title=cleaned['title'],
            description=cleaned['description'],
            city=cleaned['city'],
            category=cleaned['category'],
            publisher_name=cleaned['publisher_name'],
            publisher_phone=cleaned['publisher_phone'],
            image_uri=cleaned['image_uri'],
            submitted_at=self.clock(),
            status=STATUS_PENDING,
        )

        try:
            self.store.save_submission(submission)
        except StorageFailure as e:
            logger.error(f"Could not store submission {submission.id}: {e}")
            raise

        return self._moderate_and_apply(submission)

    def reprocess(self, submission_id: str) -> PublicationOutcome:
        """
        Re-run moderation and publication for a submission left pending.

        Raises:
            KeyError: Unknown submission
            SubmissionAlreadyProcessed: The submission is no longer pending
        """
        submission = self.store.get_submission(submission_id)
        if submission is None:
            raise KeyError(f"Unknown submission: {submission_id}")
        if submission.status != STATUS_PENDING:
            raise SubmissionAlreadyProcessed(submission_id, submission.status)
        return self._moderate_and_apply(submission)

    def reprocess_pending(self) -> Tuple[List[PublicationOutcome], List[str]]:
        """
        Reconcile every pending submission.

        Returns:
            (outcomes, failed_ids) - failed_ids are still pending afterwards
        """
        outcomes = []
        failed = []
        for submission in self.store.get_submissions(status=STATUS_PENDING):
            try:
                outcomes.append(self._moderate_and_apply(submission))
            except SubmissionAlreadyProcessed as e:
                logger.info(f"Skipping {submission.id}: {e}")
            except InconsistentStateError as e:
                logger.error(f"Reprocessing {submission.id} failed: {e}")
                failed.append(submission.id)
        logger.info(f"Reprocessed {len(outcomes)} pending submissions, {len(failed)} failed")
        return outcomes, failed

    def moderate(self, candidate: ModerationCandidate) -> Decision:
        """Evaluate with the primary policy, falling back to rules on ServiceUnavailable."""
        try:
            return self.policy.evaluate(candidate)
        except ServiceUnavailable as e:
            logger.warning(f"Moderation service unavailable, using rule-based policy: {e}")
            return self.fallback_policy.evaluate(candidate)

    def _moderate_and_apply(self, submission: Submission) -> PublicationOutcome:
        decision = self.moderate(ModerationCandidate.from_submission(submission))

        try:
            if isinstance(decision, Accepted):
                item = self._build_item(submission, decision)
                approved = self.store.approve_and_publish(submission.id, item)
                return PublicationOutcome(submission=approved, item=item)

            rejected = self.store.update_submission_status(
                submission.id, STATUS_REJECTED, decision.reason
            )
            logger.info(f"Submission {submission.id} rejected: {decision.reason}")
            return PublicationOutcome(submission=rejected, rejection_reason=decision.reason)

        except SubmissionAlreadyProcessed:
            logger.info(f"Submission {submission.id} was processed concurrently, "
                        f"{decision.status} decision discarded")
            raise

        except (StorageFailure, KeyError) as e:
            logger.error(
                f"Submission {submission.id}: {decision.status} decision could not be stored: {e}",
                exc_info=True
            )
            raise InconsistentStateError(submission.id, decision, cause=e) from e

    def _build_item(self, submission: Submission, decision: Accepted) -> PublishedItem:
        return PublishedItem(
            id=self.id_factory(),
            original_submission_id=submission.id,
            edited_title=decision.edited_title,
            edited_summary=decision.edited_summary,
            city=submission.city,
            category=submission.category,
            publisher_name=submission.publisher_name,
            masked_phone=mask_phone(submission.publisher_phone),
            published_at=self.clock(),
            image_uri=submission.image_uri,
        )
