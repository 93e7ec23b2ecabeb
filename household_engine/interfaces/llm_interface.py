"""Interface definition for Large Language Model (LLM) services.
"""

from typing import Protocol, Any, runtime_checkable


class LLMError(Exception):
    """Raised by LLM backends when a provider call fails."""


class RateLimitExceeded(LLMError):
    """The provider rejected the request with a rate-limit signal (HTTP 429).

    Callers are expected to back off and retry the same request.
    """


@runtime_checkable
class LLMInterface(Protocol):
    """A protocol defining the standard interface for LLM interactions.

    This ensures that different LLM backends (OpenAI, Ollama, etc.)
    can be used interchangeably.
    """

    def generate(self, prompt: str, model: str | None = None, **kwargs: Any) -> str:
        """Generates a text completion based on a single prompt.

        Args:
            prompt: The input text prompt.
            model: The specific model to use (optional, uses default if None).
            **kwargs: Backend options. ``temperature`` and ``max_tokens`` are
                understood by every backend.

        Returns:
            The generated text completion.

        Raises:
            RateLimitExceeded: If the provider signals a rate limit.
            LLMError: For other provider failures.
        """
        ...
