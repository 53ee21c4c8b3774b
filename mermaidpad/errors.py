"""Typed failures shared by the assistant service and the editor client."""

from __future__ import annotations


class AssistantError(RuntimeError):
    """Base error for assistant calls; carries the HTTP status and wire code."""

    status_code = 500
    code = "error"

    def __init__(self, message: str = "Something went wrong. Try again.") -> None:
        super().__init__(message)
        self.message = message


class InputRejectedError(AssistantError):
    """Raised when input is empty or exceeds a size limit."""

    status_code = 400
    code = "input_rejected"


class NotSignedInError(AssistantError):
    """Raised when a request carries no identity."""

    status_code = 401
    code = "unauthenticated"


class AccessDeniedError(AssistantError):
    """Raised when the identity is not on the allow-list."""

    status_code = 403
    code = "access_denied"


class RateLimitedError(AssistantError):
    """Raised when the identity exhausted its request window."""

    status_code = 429
    code = "rate_limited"

    def __init__(self, retry_after: int = 60, message: str | None = None) -> None:
        super().__init__(message or f"Too many requests. Please try again in {retry_after} seconds.")
        self.retry_after = retry_after


class UpstreamBusyError(AssistantError):
    """Raised when the model provider signals transient overload."""

    status_code = 429
    code = "upstream_busy"

    def __init__(self, message: str = "AI service is busy. Please try again in a minute.") -> None:
        super().__init__(message)


class UpstreamUnavailableError(AssistantError):
    """Raised when the model provider (or the assistant service) cannot be reached."""

    status_code = 503
    code = "upstream_unavailable"

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable. Please try again later.",
    ) -> None:
        super().__init__(message)


class AssistantNotConfiguredError(AssistantError):
    """Raised when no API key is configured for the model provider."""

    code = "not_configured"

    def __init__(self, message: str = "OPENAI_API_KEY is not configured") -> None:
        super().__init__(message)


ERRORS_BY_CODE: dict[str, type[AssistantError]] = {
    cls.code: cls
    for cls in (
        AssistantError,
        InputRejectedError,
        NotSignedInError,
        AccessDeniedError,
        RateLimitedError,
        UpstreamBusyError,
        UpstreamUnavailableError,
        AssistantNotConfiguredError,
    )
}


__all__ = [
    "AccessDeniedError",
    "AssistantError",
    "AssistantNotConfiguredError",
    "ERRORS_BY_CODE",
    "InputRejectedError",
    "NotSignedInError",
    "RateLimitedError",
    "UpstreamBusyError",
    "UpstreamUnavailableError",
]
