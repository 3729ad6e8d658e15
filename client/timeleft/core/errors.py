"""Error taxonomy shared by the transport client and the stores."""

from enum import Enum
from typing import Any, Optional


SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
AUTH_REQUIRED_MESSAGE = "Authentication required. Please log in again."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
NETWORK_MESSAGE = "No response from server. Please check your connection and try again."
INVALID_RESPONSE_MESSAGE = "Invalid server response format"


class ErrorKind(Enum):
    """Where a remote failure came from.

    Local validation never reaches the transport; it surfaces as
    pydantic.ValidationError when an input schema is built.
    """

    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    SERVER_VALIDATION = "SERVER_VALIDATION"
    SERVER = "SERVER"


class ApiError(Exception):
    """A failed round-trip to the remote API.

    `message` is user-safe: either text the server sent back or one of the
    fixed transport messages above. It is None when the server gave no
    detail, so callers can fall back to an operation-specific message.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def is_transport_failure(self) -> bool:
        return self.kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK)

    def describe(self, fallback: str) -> str:
        return self.message or fallback

    def __str__(self) -> str:
        status = f" ({self.status_code})" if self.status_code else ""
        return f"{self.kind.value}{status}: {self.message or 'no detail'}"
