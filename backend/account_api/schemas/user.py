"""User schemas"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class UserRegister(BaseModel):
    """Registration schema"""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: Optional[UserRole] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        """Usernames are stored trimmed"""
        return v.strip() if isinstance(v, str) else v


class UserLogin(BaseModel):
    """User login schema"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserSelfUpdate(BaseModel):
    """
    Profile self-service schema

    Unknown keys (password, role, is_active, ...) are dropped, never applied.
    """
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        """Usernames are stored trimmed"""
        return v.strip() if isinstance(v, str) else v


class UserAdminUpdate(BaseModel):
    """Admin update schema"""
    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        """Usernames are stored trimmed"""
        return v.strip() if isinstance(v, str) else v


class ChangePasswordRequest(BaseModel):
    """Password change schema"""
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=8, max_length=128, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class UserResponse(BaseModel):
    """Sanitized user representation - never carries credential material"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    role: str
    is_active: bool
    failed_login_attempts: int = 0
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """JWT token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class UserListResponse(BaseModel):
    """One page of users plus pagination metadata"""
    items: List[UserResponse]
    page: int
    limit: int
    total: int
    page_count: int = Field(..., serialization_alias="pageCount")
