"""
NoteCraft Backend: Abstract LLM Service Interface
===================================================

What:  Abstract base class for the text-generation provider behind the
       summarize and style-transform endpoints.
Why:   Routes depend on this contract only, so the provider can be swapped
       (Gemini today) and tests can inject a fake through FastAPI's
       dependency overrides.
How:   Concrete implementations inherit from LLMService and implement
       summarize(), transform_style() and health_check().
"""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """
    Contract:
        - Inputs are plain text (HTML already stripped by the caller)
        - Implementations handle their own retry logic and error translation
        - Provider-specific errors are wrapped in UpstreamError
        - Output is raw model text; callers clean it for display
    """

    @abstractmethod
    async def summarize(self, text: str) -> str:
        """
        Return a short summary of ``text``.

        Raises:
            UpstreamError: the provider failed after all retries, or rejected
                the request (413/429 are passed through).
            CircuitBreakerOpenError: too many consecutive failures recently.
        """
        ...

    @abstractmethod
    async def transform_style(self, text: str, style: str) -> str:
        """
        Rewrite ``text`` in ``style`` (one of the supported style names).

        Raises the same errors as summarize().
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe. Never raises."""
        ...

    async def aclose(self) -> None:
        """Release network resources. Providers without any can ignore this."""
        return None
