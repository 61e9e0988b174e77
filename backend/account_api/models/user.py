"""User model"""

import re
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Index, CheckConstraint
from sqlalchemy.orm import deferred, validates

from account_api.core.database import Base
from account_api.core.exceptions import APIError, ErrorKind

ROLES = ("student", "instructor", "admin")
DEFAULT_ROLE = "student"

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Account record used for authentication and authorization"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(USERNAME_MAX_LENGTH), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    # Deferred: only loaded when a query asks for it with undefer()
    password_hash = deferred(Column(String(255), nullable=False))
    role = Column(String(20), default=DEFAULT_ROLE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_users_role", "role"),
        Index("idx_users_is_active", "is_active"),
        CheckConstraint(
            "role IN ('student', 'instructor', 'admin')",
            name="chk_users_role",
        ),
    )

    @validates("username")
    def _validate_username(self, key, value):
        value = (value or "").strip()
        if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
            raise APIError(
                ErrorKind.VALIDATION_FAILURE,
                f"username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
            )
        return value

    @validates("email")
    def _validate_email(self, key, value):
        value = (value or "").strip().lower()
        if not EMAIL_PATTERN.match(value):
            raise APIError(ErrorKind.VALIDATION_FAILURE, "email must be a valid email address")
        return value

    @validates("role")
    def _validate_role(self, key, value):
        if value not in ROLES:
            raise APIError(ErrorKind.VALIDATION_FAILURE, f"role must be one of: {', '.join(ROLES)}")
        return value

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"

    def to_dict(self):
        """Convert to dictionary without credential material"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "failed_login_attempts": self.failed_login_attempts,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
