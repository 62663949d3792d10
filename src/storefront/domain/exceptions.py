"""
Domain exceptions - Failure taxonomy for the storefront core.

This module defines the error types shared by the registration flow,
the cart controller and the backend adapters. Controllers catch these
locally and turn them into displayable results; they never reach the
presentation layer as unhandled exceptions.
"""

from typing import Optional

# Structured codes the backend may attach to a terminal registration failure.
EXPIRED_ERROR_CODES = frozenset({"REGISTRATION_EXPIRED", "SESSION_EXPIRED"})

# Message fragments used when the backend sends no code at all.
_EXPIRED_MESSAGE_MARKERS = ("expired", "start again")


class StorefrontError(Exception):
    """Base class for storefront domain errors."""

    pass


class ValidationError(StorefrontError):
    """Client-side validation failed; no request was issued."""

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__(", ".join(f"{k}: {v}" for k, v in self.field_errors.items()))


class RequestError(StorefrontError):
    """Backend rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class SessionExpired(RequestError):
    """Pending registration is no longer valid; the flow must restart."""

    pass


class Unauthenticated(StorefrontError):
    """Operation requires a logged-in session."""

    def __init__(self, message: str = "Please login to continue") -> None:
        self.message = message
        super().__init__(message)


def is_expiry_message(message: str) -> bool:
    """
    Legacy expiry detection by message inspection.

    Only consulted when the backend did not send a structured code.
    """
    lowered = message.lower()
    return any(marker in lowered for marker in _EXPIRED_MESSAGE_MARKERS)


def classify_request_error(
    message: str,
    status_code: Optional[int] = None,
    code: Optional[str] = None,
) -> RequestError:
    """
    Build the right RequestError subtype for a failed backend call.

    A structured ``code`` is authoritative when present. Without one the
    message is inspected for expiry markers.

    Args:
        message: Server-provided (or fallback) message
        status_code: HTTP status, None for transport failures
        code: Structured error code from the response body, if any

    Returns:
        SessionExpired for terminal registration errors, RequestError otherwise
    """
    if code:
        expired = code.upper() in EXPIRED_ERROR_CODES
    else:
        expired = is_expiry_message(message)

    error_cls = SessionExpired if expired else RequestError
    return error_cls(message, status_code=status_code, code=code)
