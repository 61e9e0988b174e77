"""Security primitives - password hashing and bearer token issuance"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Dict, Optional
import secrets

from jose import JWTError, jwt
import bcrypt

from account_api.config import get_settings
from account_api.core.exceptions import APIError, ErrorKind

# bcrypt only consumes the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Adaptive one-way hashing with a tunable bcrypt cost factor"""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._decoy_hash: Optional[str] = None

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt

        Args:
            plaintext: Plain text password

        Returns:
            str: bcrypt hash, different on every call
        """
        try:
            return bcrypt.hashpw(
                self._encode(plaintext),
                bcrypt.gensalt(rounds=self.rounds)
            ).decode("utf-8")
        except (TypeError, ValueError) as exc:
            raise APIError(ErrorKind.HASHING_FAILURE) from exc

    def verify(self, plaintext: str, hashed_value: str) -> bool:
        """
        Verify a password against a stored hash

        A mismatch is a ``False`` result. Only a stored value that bcrypt
        cannot parse raises ``HASHING_FAILURE``.
        """
        if not hashed_value:
            raise APIError(ErrorKind.HASHING_FAILURE)
        try:
            return bcrypt.checkpw(self._encode(plaintext), hashed_value.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise APIError(ErrorKind.HASHING_FAILURE) from exc

    def verify_decoy(self, plaintext: str) -> bool:
        """Spend the same work as verify() when there is no stored hash to check"""
        if self._decoy_hash is None:
            self._decoy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(plaintext, self._decoy_hash)
        return False


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified bearer token"""

    subject_id: str
    role: str


class TokenService:
    """Signs and verifies stateless bearer tokens"""

    TOKEN_TYPE = "access"

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds"""
        return self.expire_minutes * 60

    def issue(self, subject_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed access token

        Args:
            subject_id: Account identifier, stored as the ``sub`` claim
            role: Account role at issuance time
            expires_delta: Override for the configured lifetime

        Returns:
            str: Encoded JWT
        """
        now = datetime.utcnow()
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        payload: Dict[str, Any] = {
            "sub": str(subject_id),
            "role": role,
            "typ": self.TOKEN_TYPE,
            "iat": now,
            "exp": expire,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Validate signature, expiry and claim shape

        Every failure raises the same ``INVALID_TOKEN`` error so callers cannot
        tell a forged token from an expired or truncated one.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise APIError(ErrorKind.INVALID_TOKEN) from exc

        subject_id = payload.get("sub")
        role = payload.get("role")
        if payload.get("typ") != self.TOKEN_TYPE or not subject_id or not role:
            raise APIError(ErrorKind.INVALID_TOKEN)
        return TokenClaims(subject_id=str(subject_id), role=str(role))


@lru_cache()
def get_password_hasher() -> PasswordHasher:
    """Process-wide hasher built from settings"""
    return PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)


@lru_cache()
def get_token_service() -> TokenService:
    """Process-wide token service built from settings"""
    settings = get_settings()
    return TokenService(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
