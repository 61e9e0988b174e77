"""Authentication service - login flow"""

from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.orm import Session

from account_api.core.exceptions import APIError, ErrorKind
from account_api.core.security import (
    PasswordHasher,
    TokenService,
    get_password_hasher,
    get_token_service,
)
from account_api.repositories.user_repository import UserRepository
from account_api.schemas.user import UserResponse


@dataclass
class LoginResult:
    """Sanitized user plus the bearer token issued for it"""

    user: UserResponse
    token: str
    expires_in: int


class AuthService:
    """
    Credential verification and token issuance.

    Unknown email, deactivated account and wrong password all fail with the
    same INVALID_CREDENTIALS error so responses never reveal which accounts
    exist.
    """

    def __init__(
        self,
        hasher: Optional[PasswordHasher] = None,
        tokens: Optional[TokenService] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._hasher = hasher
        self._tokens = tokens
        self.logger = logger or logging.getLogger(__name__)

    @property
    def hasher(self) -> PasswordHasher:
        return self._hasher or get_password_hasher()

    @property
    def tokens(self) -> TokenService:
        return self._tokens or get_token_service()

    def login(self, db: Session, email: str, password: str) -> LoginResult:
        """
        Authenticate by email and password

        Args:
            db: Database session
            email: Login email, normalized before lookup
            password: Plain text password

        Returns:
            LoginResult with sanitized user and access token

        Raises:
            APIError: INVALID_CREDENTIALS on any rejected attempt
        """
        repo = UserRepository(db, self.hasher)
        user = repo.get_by_email(email, active_only=True, with_password=True)
        if not user:
            self.hasher.verify_decoy(password)
            self.logger.info("Login rejected: no active account for submitted email")
            raise APIError(ErrorKind.INVALID_CREDENTIALS)

        if not self.hasher.verify(password, user.password_hash):
            repo.record_failed_login(user)
            self.logger.info(
                f"Login rejected for user {user.id}: password mismatch "
                f"(failed attempts: {user.failed_login_attempts})"
            )
            raise APIError(ErrorKind.INVALID_CREDENTIALS)

        # Persist before issuing so a failed write never yields a token
        repo.record_login(user)
        token = self.tokens.issue(user.id, user.role)

        self.logger.info(f"User authenticated: {user.username} (role: {user.role})")
        return LoginResult(
            user=UserResponse.model_validate(user),
            token=token,
            expires_in=self.tokens.expires_in,
        )


# Singleton instance
auth_service = AuthService()
