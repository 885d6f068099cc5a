# newsdesk/lib/llm_utils.py
"""
LLM Utilities

Thin wrappers over the OpenAI and Anthropic SDKs used by remote moderation.
- Provider selection (OpenAI first, Anthropic as second choice)
- One timeout budget shared by both providers, SDK retries disabled
  (attempts are counted by callers)
- JSON extraction from replies wrapped in markdown fences
"""
import json
import logging
import re
import time
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Calls whichever LLM provider has a key configured.

    Args:
        openai_key: OpenAI API key (preferred provider)
        anthropic_key: Anthropic API key (used when OpenAI is absent or fails)
        timeout: Seconds before a single request is abandoned
        openai_model / anthropic_model: Model names
    """

    def __init__(
        self,
        openai_key: Optional[str] = None,
        anthropic_key: Optional[str] = None,
        timeout: float = 10.0,
        openai_model: str = "gpt-4o-mini",
        anthropic_model: str = "claude-3-haiku-20240307",
        max_tokens: int = 300,
        temperature: float = 0.3,
    ):
        self.openai_key = openai_key
        self.anthropic_key = anthropic_key
        self.timeout = timeout
        self.openai_model = openai_model
        self.anthropic_model = anthropic_model
        self.max_tokens = max_tokens
        self.temperature = temperature

    @classmethod
    def from_config(cls, config) -> 'LLMClient':
        return cls(
            openai_key=config.get('OPENAI_API_KEY'),
            anthropic_key=config.get('ANTHROPIC_API_KEY'),
            timeout=config.get('MODERATION_TIMEOUT_SECONDS', 10.0),
            openai_model=config.get('OPENAI_MODEL', 'gpt-4o-mini'),
            anthropic_model=config.get('ANTHROPIC_MODEL', 'claude-3-haiku-20240307'),
        )

    @property
    def available(self) -> bool:
        return bool(self.openai_key or self.anthropic_key)

    def __call__(self, system_prompt: str, user_prompt: str) -> str:
        """
        Call the configured LLM.

        Tries OpenAI first, falls back to Anthropic if available. Both
        providers share one deadline of `timeout` seconds, so the fallback
        only gets whatever time the first call left over.

        Returns:
            str: LLM response text

        Raises:
            ValueError: If no LLM provider is configured
            TimeoutError: If OpenAI failed with no time left for Anthropic
            Exception: Whatever the provider SDK raised
        """
        deadline = time.monotonic() + self.timeout

        if self.openai_key:
            try:
                return self._call_openai(system_prompt, user_prompt, self.timeout)
            except Exception as e:
                if not self.anthropic_key:
                    raise
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError(
                        f"OpenAI call failed and the {self.timeout}s budget is spent: {e}"
                    ) from e
                logger.warning(f"OpenAI call failed: {e}, trying Anthropic ({remaining:.1f}s left)")
                return self._call_anthropic(system_prompt, user_prompt, remaining)

        elif self.anthropic_key:
            return self._call_anthropic(system_prompt, user_prompt, self.timeout)

        else:
            raise ValueError("No LLM API key configured (OPENAI_API_KEY or ANTHROPIC_API_KEY)")

    def _call_openai(self, system_prompt: str, user_prompt: str, timeout: float) -> str:
        """Call OpenAI API"""
        import openai

        client = openai.OpenAI(api_key=self.openai_key, timeout=timeout, max_retries=0)

        response = client.chat.completions.create(
            model=self.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )

        content = response.choices[0].message.content
        if not content:
            raise ValueError("Empty response from OpenAI")

        return content

    def _call_anthropic(self, system_prompt: str, user_prompt: str, timeout: float) -> str:
        """Call Anthropic API"""
        import anthropic

        client = anthropic.Anthropic(api_key=self.anthropic_key, timeout=timeout, max_retries=0)

        message = client.messages.create(
            model=self.anthropic_model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}]
        )

        content_block = message.content[0]
        content = getattr(content_block, 'text', None) or str(content_block)

        if not content:
            raise ValueError("Empty response from Anthropic")

        return content


def extract_json(text: str) -> Dict:
    """
    Extract a JSON object from LLM response text.

    Handles responses wrapped in markdown code blocks.

    Raises:
        ValueError: If JSON parsing fails or the payload is not an object
    """
    text = re.sub(r'```(?:json)?\s*', '', text or '').strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing failed: {e}\nText: {text[:500]}")
        raise ValueError(f"Invalid JSON from LLM: {e}")

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object from LLM, got {type(data).__name__}")
    return data
