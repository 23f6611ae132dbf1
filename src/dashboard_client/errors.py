"""
Error taxonomy for dashboard_client.

Every failed call surfaces as a single ApiError whose ``kind`` is one of
the ErrorKind members. UI layers branch on the kind (or on
``is_cancel_error``) instead of on transport exceptions.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds, in classification priority order."""

    CANCELLED = "cancelled"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    SERVER = "server"
    TIMEOUT = "timeout"
    NETWORK = "network"
    GENERIC = "generic"


DEFAULT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.CANCELLED: "request cancelled",
    ErrorKind.UNAUTHENTICATED: "authentication required",
    ErrorKind.FORBIDDEN: "permission denied",
    ErrorKind.NOT_FOUND: "resource not found",
    ErrorKind.VALIDATION: "request validation failed",
    ErrorKind.SERVER: "internal error, retry later",
    ErrorKind.TIMEOUT: "request timed out",
    ErrorKind.NETWORK: "cannot reach server, make sure the backend service is running",
    ErrorKind.GENERIC: "network request failed",
}


class ApiError(Exception):
    """Classified error delivered to every caller of a failed request."""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Any] = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.message = message or DEFAULT_MESSAGES[self.kind]
        self.code = code
        self.status = status
        self.details = details
        super().__init__(self.message)

    @property
    def cancelled(self) -> bool:
        """True when the request was aborted on purpose."""
        return self.kind is ErrorKind.CANCELLED

    @classmethod
    def cancel(cls, reason: Optional[str] = None) -> "ApiError":
        return cls(ErrorKind.CANCELLED, reason)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.code is not None:
            result["code"] = self.code
        if self.status is not None:
            result["status"] = self.status
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"ApiError(kind={self.kind.value!r}, message={self.message!r}, "
            f"code={self.code!r}, status={self.status!r})"
        )


def is_cancel_error(error: BaseException) -> bool:
    """Check whether an error is a cancellation that should not be shown."""
    return isinstance(error, ApiError) and error.cancelled
