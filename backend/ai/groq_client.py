"""
Groq API Client — Secure wrapper for the bot's LLM calls.

================================================================================
LLM ROLE: LANGUAGE UNDERSTANDING ONLY
================================================================================

The model is used for four narrow jobs, each with its own JSON-only prompt:
- Extract action + params from a free-text chat message
- Judge whether a claim answer matches the gifter's proof
- Turn a proof statement into a question for the recipient
- Classify a reply to the gift summary as confirm / cancel

It also polishes the gifter's message shown after a successful claim.

THIS CLIENT DOES NOT:
- Sign or send transactions
- Read or write the database
- Send chat messages

Every caller validates the output and has a deterministic fallback.
================================================================================
"""

import logging
import time
from typing import Optional

from groq import Groq, APIError, APITimeoutError, RateLimitError

from deeza.core.config import settings

# Configure logging (NEVER log API keys)
logger = logging.getLogger(__name__)


class GroqClient:
    """
    Minimal, secure wrapper for Groq API.

    - Temperature: 0 by default (deterministic output for same input)
    - Retries: 2 on timeout / rate limit, none on permanent API errors
    - Returns None on any error so the caller falls back
    """

    TEMPERATURE = 0
    MAX_TOKENS = 500
    TIMEOUT_SECONDS = 10

    def __init__(self, api_key: str = None, model: str = None):
        """Initialize Groq client with API key from environment."""
        api_key = settings.GROQ_API_KEY if api_key is None else api_key
        self.model = model or settings.GROQ_MODEL

        if not api_key:
            logger.warning(
                "⚠️ GROQ_API_KEY not found in environment. "
                "LLM features will use keyword fallbacks. "
                "Add your key to backend/.env file."
            )
            self.client = None
        else:
            try:
                self.client = Groq(api_key=api_key, timeout=self.TIMEOUT_SECONDS)
                logger.info("✅ Groq client initialized successfully")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Groq client: {e}")
                self.client = None

    def is_available(self) -> bool:
        """Check if Groq client is ready to use."""
        return self.client is not None

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = None,
        max_tokens: int = None,
        max_retries: int = 2,
    ) -> Optional[str]:
        """
        Run one chat completion with retry logic.

        Args:
            prompt: User-turn content
            system: Optional system instruction
            temperature: Overrides TEMPERATURE
            max_tokens: Overrides MAX_TOKENS
            max_retries: Number of retries for transient failures

        Returns:
            Raw response text, or None if unavailable / error
        """
        if not self.is_available():
            logger.debug("Groq client not available - skipping LLM call")
            return None

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        for attempt in range(max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.TEMPERATURE if temperature is None else temperature,
                    max_tokens=max_tokens or self.MAX_TOKENS,
                    stream=False,
                )

                if response.choices and len(response.choices) > 0:
                    content = response.choices[0].message.content or ""
                    logger.debug(f"LLM response received: {len(content)} chars (attempt {attempt+1})")
                    return content
                logger.warning("LLM returned empty response")
                return None

            except APITimeoutError:
                if attempt < max_retries:
                    wait_time = 0.5 * (2 ** attempt)  # 0.5s, 1s
                    logger.warning(f"⏱️ Groq timeout, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"⏱️ Groq API timeout after {max_retries} retries")
                    return None

            except RateLimitError:
                if attempt < max_retries:
                    wait_time = 1.0 * (2 ** attempt)  # 1s, 2s
                    logger.warning(f"⚠️ Groq rate limit, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning("⚠️ Groq API rate limit exceeded after retries")
                    return None

            except APIError as e:
                logger.error(f"❌ Groq API error (permanent): {e}")
                return None

            except Exception as e:
                logger.error(f"❌ Unexpected error calling Groq: {e}")
                return None

        return None


# Singleton instance
_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    """Get or create singleton Groq client instance."""
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client
