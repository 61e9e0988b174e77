"""Pydantic schemas for API validation"""

from account_api.schemas.user import (
    UserRole,
    UserRegister,
    UserLogin,
    UserSelfUpdate,
    UserAdminUpdate,
    ChangePasswordRequest,
    UserResponse,
    TokenResponse,
    UserListResponse,
)
from account_api.schemas.response import MessageResponse, ErrorResponse

__all__ = [
    "UserRole", "UserRegister", "UserLogin", "UserSelfUpdate", "UserAdminUpdate",
    "ChangePasswordRequest", "UserResponse", "TokenResponse", "UserListResponse",
    "MessageResponse", "ErrorResponse",
]
