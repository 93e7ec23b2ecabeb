"""Implementation of the LLMInterface using the Ollama API.
"""

import logging
import ollama
from typing import Any

from household_engine.interfaces.llm_interface import LLMInterface, LLMError, RateLimitExceeded
from household_engine.core.config import Settings

logger = logging.getLogger(__name__)

class OllamaClient(LLMInterface):
    """Connects to a local Ollama instance to provide LLM capabilities.

    Implements the LLMInterface protocol.
    """

    def __init__(self, settings: Settings):
        """Initializes the Ollama client.

        Args:
            settings: The application settings containing Ollama configuration.
        """
        self.client = ollama.Client(host=settings.ollama_base_url, timeout=settings.LLM_REQUEST_TIMEOUT)
        self.default_model = settings.default_model
        logger.info(f"Ollama client initialized for host: {settings.ollama_base_url}")

    def generate(self, prompt: str, model: str | None = None, **kwargs: Any) -> str:
        """Generates text using the Ollama /api/generate endpoint.

        Args:
            prompt: The input prompt.
            model: The model to use (defaults to settings.default_model).
            **kwargs: ``temperature`` and ``max_tokens`` map onto Ollama's
                ``temperature`` and ``num_predict`` options.

        Returns:
            The generated text response.

        Raises:
            RateLimitExceeded: If Ollama (or a proxy in front of it) answers 429.
            LLMError: For any other Ollama API error.
        """
        target_model = model or self.default_model
        options = dict(kwargs.get("options", {}))
        if "temperature" in kwargs:
            options["temperature"] = kwargs["temperature"]
        if "max_tokens" in kwargs:
            options["num_predict"] = kwargs["max_tokens"]
        try:
            logger.debug(f"Generating text with model '{target_model}'. Prompt: '{prompt[:50]}...'")
            response = self.client.generate(
                model=target_model,
                prompt=prompt,
                options=options,
                stream=False # Ensure we get the full response
            )
            generated_text = (response.get('response') or '').strip()
            logger.debug(f"Generated text response (first 50 chars): '{generated_text[:50]}...'")
            return generated_text
        except ollama.ResponseError as e:
            if e.status_code == 429:
                logger.warning(f"Ollama rate limit hit for model '{target_model}': {e.error}")
                raise RateLimitExceeded(str(e.error)) from e
            logger.error(f"Ollama API error during generation: {e.status_code} - {e.error}")
            raise LLMError(f"Ollama API error {e.status_code}: {e.error}") from e
        except Exception as e:
            logger.error(f"Unexpected error during Ollama generation: {e}", exc_info=True)
            raise LLMError(f"Ollama generation failed: {e}") from e
