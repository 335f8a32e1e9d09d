"""Exceptions raised by the assistant core."""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class ConfigurationError(AssistantError):
    """Raised when settings are missing or cannot be loaded."""


class RequestTimeoutError(AssistantError, TimeoutError):
    """Raised when a completion attempt exceeds its timeout."""


class UpstreamError(AssistantError):
    """Raised when the completion endpoint answers with a non-success status."""

    def __init__(self, status: int, reason: str | None = None) -> None:
        self.status = status
        self.reason = reason or ""
        super().__init__(f"Request failed: {status} {self.reason}".rstrip())


class ParseError(AssistantError):
    """Raised when a result artifact cannot be read as XML."""


class LaunchError(AssistantError):
    """Raised when the test command cannot be started."""
