"""Error taxonomy for the account service"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Every failure the service can report, with its status code and default message"""

    VALIDATION_FAILURE = (400, "Validation failed")
    AUTHENTICATION_REQUIRED = (401, "Authentication required")
    INVALID_CREDENTIALS = (401, "Invalid credentials")
    INVALID_TOKEN = (401, "Invalid or expired token")
    ACCOUNT_DEACTIVATED = (401, "Account is deactivated")
    INVALID_CURRENT_PASSWORD = (400, "Current password is incorrect")
    INSUFFICIENT_PERMISSIONS = (403, "Insufficient permissions")
    NOT_FOUND = (404, "User not found")
    DUPLICATE_ACCOUNT = (409, "User with email or username already exists")
    RATE_LIMITED = (429, "Too many requests, please try again later.")
    HASHING_FAILURE = (500, "Internal Server Error")
    INTERNAL = (500, "Internal Server Error")

    def __init__(self, status_code: int, default_message: str):
        self.status_code = status_code
        self.default_message = default_message


class APIError(Exception):
    """
    Domain failure carrying its kind, status code and a caller-safe message.

    Raised anywhere in the core; converted to a ``{status, message}`` body
    by the exception handlers in ``account_api.main``.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.status_code = kind.status_code
        self.message = message or kind.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self):
        return f"<APIError(kind={self.kind.name}, status={self.status_code}, message='{self.message}')>"

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation"""
        return {"status": self.status_code, "message": self.message}
