"""User service - registration, profile self-service and admin account management"""

from dataclasses import dataclass
from typing import List, Optional
import logging
import math

from sqlalchemy.orm import Session

from account_api.core.exceptions import APIError, ErrorKind
from account_api.core.security import PasswordHasher, get_password_hasher
from account_api.models.user import User
from account_api.repositories.user_repository import UserRepository
from account_api.schemas.user import UserResponse

# The only fields a user may change on their own record
SELF_UPDATABLE_FIELDS = ("username", "email")
ADMIN_UPDATABLE_FIELDS = ("username", "email", "role", "is_active")


@dataclass
class UserPage:
    """One page of sanitized users"""

    items: List[UserResponse]
    page: int
    limit: int
    total: int
    page_count: int


class UserService:
    """Service for user management"""

    def __init__(
        self,
        hasher: Optional[PasswordHasher] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._hasher = hasher
        self.logger = logger or logging.getLogger(__name__)

    @property
    def hasher(self) -> PasswordHasher:
        return self._hasher or get_password_hasher()

    def _repo(self, db: Session) -> UserRepository:
        return UserRepository(db, self.hasher)

    def _get_or_404(self, repo: UserRepository, user_id: str, with_password: bool = False) -> User:
        user = repo.get_by_id(user_id, with_password=with_password)
        if not user:
            raise APIError(ErrorKind.NOT_FOUND)
        return user

    def _ensure_unique(
        self,
        repo: UserRepository,
        username: Optional[str],
        email: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        if repo.find_conflict(username=username, email=email, exclude_id=exclude_id):
            raise APIError(ErrorKind.DUPLICATE_ACCOUNT)

    def register(
        self,
        db: Session,
        username: str,
        email: str,
        password: str,
        role: Optional[str] = None,
    ) -> UserResponse:
        """
        Create new user

        Args:
            db: Database session
            username: Unique username
            email: Unique email, stored lowercased
            password: Plain text password, hashed before storage
            role: Optional role, defaults to the lowest privilege

        Returns:
            Created user, sanitized

        Raises:
            APIError: DUPLICATE_ACCOUNT if username or email is taken
        """
        repo = self._repo(db)
        self._ensure_unique(repo, username, email)

        user = repo.create(username=username, email=email, password=password, role=role)

        self.logger.info(f"Created user: {user.username} (role: {user.role})")
        return UserResponse.model_validate(user)

    def get_user(self, db: Session, user_id: str) -> UserResponse:
        """Get a sanitized user by ID"""
        return UserResponse.model_validate(self._get_or_404(self._repo(db), user_id))

    def update_self(self, db: Session, user_id: str, patch: dict) -> UserResponse:
        """
        Update the caller's own profile

        Only username and email are honoured. Anything else in the patch,
        including password, role and is_active, is dropped without error.
        """
        repo = self._repo(db)
        user = self._get_or_404(repo, user_id)

        changes = {k: v for k, v in patch.items() if k in SELF_UPDATABLE_FIELDS and v is not None}
        if not changes:
            return UserResponse.model_validate(user)

        self._ensure_unique(repo, changes.get("username"), changes.get("email"), exclude_id=user.id)
        user = repo.update(user, changes)

        self.logger.info(f"User {user.id} updated profile fields: {sorted(changes)}")
        return UserResponse.model_validate(user)

    def admin_update(self, db: Session, user_id: str, patch: dict) -> UserResponse:
        """Update another account's profile, role or active flag (admin only)"""
        repo = self._repo(db)
        user = self._get_or_404(repo, user_id)

        changes = {k: v for k, v in patch.items() if k in ADMIN_UPDATABLE_FIELDS and v is not None}
        if not changes:
            return UserResponse.model_validate(user)

        self._ensure_unique(repo, changes.get("username"), changes.get("email"), exclude_id=user.id)
        user = repo.update(user, changes)

        self.logger.info(f"Admin updated user {user.id}: {sorted(changes)}")
        return UserResponse.model_validate(user)

    def change_password(
        self,
        db: Session,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> bool:
        """
        Change the caller's password after re-verifying the current one

        Raises:
            APIError: NOT_FOUND if the account vanished,
                INVALID_CURRENT_PASSWORD on mismatch
        """
        repo = self._repo(db)
        user = self._get_or_404(repo, user_id, with_password=True)

        if not self.hasher.verify(current_password, user.password_hash):
            self.logger.info(f"Password change rejected for user {user.id}: current password mismatch")
            raise APIError(ErrorKind.INVALID_CURRENT_PASSWORD)

        repo.set_password(user, new_password)

        self.logger.info(f"Password changed for user {user.id}")
        return True

    def list_users(
        self,
        db: Session,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> UserPage:
        """
        Get one page of users, optionally filtered by role and search text

        Args:
            db: Database session
            page: 1-based page number
            limit: Page size
            role: Exact role filter
            search: Case-insensitive substring over username and email

        Returns:
            UserPage with items and pagination metadata
        """
        if page < 1 or limit < 1:
            raise APIError(ErrorKind.VALIDATION_FAILURE, "page and limit must be positive")

        items, total = self._repo(db).find_page(
            role=role,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return UserPage(
            items=[UserResponse.model_validate(user) for user in items],
            page=page,
            limit=limit,
            total=total,
            page_count=max(1, math.ceil(total / limit)),
        )

    def delete_user(self, db: Session, user_id: str) -> bool:
        """
        Delete user

        Raises:
            APIError: NOT_FOUND if no such account
        """
        if not self._repo(db).delete(user_id):
            raise APIError(ErrorKind.NOT_FOUND)

        self.logger.info(f"Deleted user: {user_id}")
        return True

    def ensure_admin(self, db: Session, username: str, email: str, password: str) -> Optional[UserResponse]:
        """Create the bootstrap admin account unless its username or email is already taken"""
        repo = self._repo(db)
        if repo.find_conflict(username=username, email=email):
            return None
        user = repo.create(username=username, email=email, password=password, role="admin")
        self.logger.info(f"Created admin user: {user.username}")
        return UserResponse.model_validate(user)


# Singleton instance
user_service = UserService()
