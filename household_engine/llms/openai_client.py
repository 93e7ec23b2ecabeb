"""Implementation of the LLMInterface using the OpenAI chat completions API.
"""

import logging
from typing import Any

import openai
from openai import OpenAI

from household_engine.interfaces.llm_interface import LLMInterface, LLMError, RateLimitExceeded
from household_engine.core.config import Settings

logger = logging.getLogger(__name__)

class OpenAIClient(LLMInterface):
    """Sends single-prompt completions to OpenAI.

    Implements the LLMInterface protocol.
    """

    def __init__(self, settings: Settings):
        if not settings.OPENAI_API_KEY:
            logger.error("OpenAI API key is not configured.")
            raise ValueError("Missing OpenAI API key (OPENAI_API_KEY).")
        # Retries are owned by the batch dispatcher, so the SDK must not retry 429s itself
        self.client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.LLM_REQUEST_TIMEOUT,
            max_retries=0,
        )
        self.default_model = settings.OPENAI_CHAT_MODEL_NAME
        logger.info(f"OpenAI client initialized with model: {self.default_model}")

    def generate(self, prompt: str, model: str | None = None, **kwargs: Any) -> str:
        """Generates text from a single user message.

        Args:
            prompt: The input prompt.
            model: The model to use (defaults to settings.OPENAI_CHAT_MODEL_NAME).
            **kwargs: ``temperature`` and ``max_tokens`` are forwarded.

        Returns:
            The text content of the first choice.

        Raises:
            RateLimitExceeded: If OpenAI answers with HTTP 429.
            LLMError: For any other API failure.
        """
        target_model = model or self.default_model
        request_args: dict[str, Any] = {}
        if "temperature" in kwargs:
            request_args["temperature"] = kwargs["temperature"]
        if "max_tokens" in kwargs:
            request_args["max_tokens"] = kwargs["max_tokens"]

        logger.debug(f"Sending prompt to OpenAI model '{target_model}'. Prompt: '{prompt[:50]}...'")
        try:
            response = self.client.chat.completions.create(
                model=target_model,
                messages=[{"role": "user", "content": prompt}],
                **request_args,
            )
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit for model '{target_model}': {e}")
            raise RateLimitExceeded(str(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API error during generation: {e}", exc_info=True)
            raise LLMError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content or ""
        logger.debug(f"Generated text response (first 50 chars): '{content[:50]}...'")
        return content.strip()
