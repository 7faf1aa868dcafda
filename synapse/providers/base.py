"""Abstract base for all LLM vendor adapters."""

from abc import ABC, abstractmethod

from synapse.models import ErrorKind, ProviderReply


class ProviderError(Exception):
    """Raised by an adapter when a call fails, normalized to one ErrorKind."""

    def __init__(self, provider_name: str, kind: ErrorKind, message: str) -> None:
        self.provider_name = provider_name
        self.kind = kind
        super().__init__(f"[{provider_name}] {kind.value}: {message}")


def error_kind_for_status(status: int | None) -> ErrorKind:
    """Map an HTTP status code to the vendor-agnostic ErrorKind."""
    if status is None:
        return ErrorKind.NETWORK_ERROR
    if status in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (408, 504):
        return ErrorKind.TIMEOUT
    if status >= 500:
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.MALFORMED_RESPONSE


class AIProvider(ABC):
    """Abstract base for all LLM vendor adapters."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider id (e.g. 'gemini', 'claude')."""
        ...

    def display_name(self) -> str:
        """Return the human-readable team name."""
        return self.name().title()

    @abstractmethod
    def model_string(self) -> str:
        """Return the default model identifier string."""
        ...

    @abstractmethod
    async def invoke(self, prompt: str, model: str) -> ProviderReply:
        """Send one prompt to the vendor.

        Args:
            prompt: The full prompt text to send.
            model: The concrete model identifier to use.

        Returns:
            ProviderReply with text and optional token usage.

        Raises:
            ProviderError: carrying exactly one ErrorKind.
        """
        ...
