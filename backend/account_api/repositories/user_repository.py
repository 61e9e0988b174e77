"""
User repository.

Credential store for account records: lookups, uniqueness handling and
password hashing on write.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, undefer

from account_api.core.exceptions import APIError, ErrorKind
from account_api.core.security import PasswordHasher
from account_api.models.user import User, DEFAULT_ROLE

logger = logging.getLogger(__name__)

# Fields a caller may change through update(); credentials go through set_password()
UPDATABLE_FIELDS = ("username", "email", "role", "is_active")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, session: Session, hasher: PasswordHasher):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy database session
            hasher: Password hasher applied to every credential write
        """
        self.session = session
        self.hasher = hasher

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            # Unique index rejected the write, possibly after a concurrent insert
            self.session.rollback()
            logger.warning("Write rejected by unique constraint on users")
            raise APIError(ErrorKind.DUPLICATE_ACCOUNT) from exc
        except Exception:
            self.session.rollback()
            raise

    def get_by_id(self, user_id: str, with_password: bool = False) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ID
            with_password: Load the password hash along with the record

        Returns:
            User instance if found, None otherwise
        """
        query = self.session.query(User).filter(User.id == str(user_id))
        if with_password:
            query = query.options(undefer(User.password_hash))
        return query.first()

    def get_by_email(
        self,
        email: str,
        active_only: bool = False,
        with_password: bool = False,
    ) -> Optional[User]:
        """
        Get user by normalized email address.

        Args:
            email: Email, compared lowercased and trimmed
            active_only: Ignore deactivated accounts
            with_password: Load the password hash along with the record

        Returns:
            User instance if found, None otherwise
        """
        query = self.session.query(User).filter(User.email == email.strip().lower())
        if active_only:
            query = query.filter(User.is_active.is_(True))
        if with_password:
            query = query.options(undefer(User.password_hash))
        return query.first()

    def get_by_username(self, username: str) -> Optional[User]:
        return self.session.query(User).filter(User.username == username.strip()).first()

    def find_conflict(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[User]:
        """Return any other account already holding the given username or email."""
        clauses = []
        if username is not None:
            clauses.append(User.username == username.strip())
        if email is not None:
            clauses.append(User.email == email.strip().lower())
        if not clauses:
            return None

        query = self.session.query(User).filter(or_(*clauses))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first()

    def create(
        self,
        username: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user, hashing the plaintext password.

        Raises:
            APIError: DUPLICATE_ACCOUNT if the store rejects the unique fields
        """
        user = User(
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=role or DEFAULT_ROLE,
            is_active=is_active,
            failed_login_attempts=0,
        )
        self.session.add(user)
        self._commit()
        self.session.refresh(user)
        return user

    def update(self, user: User, changes: dict) -> User:
        """
        Apply whitelisted field changes to an existing user.

        Keys outside UPDATABLE_FIELDS are ignored.
        """
        try:
            for field in UPDATABLE_FIELDS:
                if field in changes and changes[field] is not None:
                    setattr(user, field, changes[field])
        except APIError:
            # Drop the fields already assigned before the rejected one
            self.session.rollback()
            raise
        self._commit()
        self.session.refresh(user)
        return user

    def set_password(self, user: User, password: str) -> User:
        """Replace the stored hash with one derived from a new plaintext password."""
        user.password_hash = self.hasher.hash(password)
        self._commit()
        return user

    def record_login(self, user: User) -> User:
        user.last_login_at = datetime.utcnow()
        user.failed_login_attempts = 0
        self._commit()
        return user

    def record_failed_login(self, user: User) -> User:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        self._commit()
        return user

    def delete(self, user_id: str) -> bool:
        """
        Delete a user by ID.

        Returns:
            True if deleted, False if not found
        """
        user = self.get_by_id(user_id)
        if not user:
            return False
        self.session.delete(user)
        self._commit()
        return True

    def delete_all(self) -> int:
        count = self.session.query(User).delete()
        self._commit()
        return count

    def _filtered(self, role: Optional[str] = None, search: Optional[str] = None):
        query = self.session.query(User)
        if role:
            query = query.filter(User.role == role)
        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(
                or_(
                    User.username.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        return query

    def count(self, role: Optional[str] = None, search: Optional[str] = None) -> int:
        return self._filtered(role, search).count()

    def find_page(
        self,
        role: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        """
        Get one page of users matching the filters, newest first.

        Returns:
            Tuple of (users on the page, total matching users)
        """
        query = self._filtered(role, search)
        total = query.count()
        items = (
            query.order_by(User.created_at.desc(), User.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    def bulk_create(self, records: Iterable[dict]) -> List[User]:
        """Create several users in one transaction, hashing each password."""
        users = []
        for record in records:
            user = User(
                username=record["username"],
                email=record["email"],
                password_hash=self.hasher.hash(record["password"]),
                role=record.get("role") or DEFAULT_ROLE,
                is_active=record.get("is_active", True),
                failed_login_attempts=0,
            )
            self.session.add(user)
            users.append(user)
        self._commit()
        return users
