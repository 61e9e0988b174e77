"""API dependencies - authentication and authorization"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from account_api.config import settings
from account_api.core.database import get_db
from account_api.core.exceptions import APIError, ErrorKind
from account_api.core.security import TokenService, get_password_hasher, get_token_service
from account_api.repositories.user_repository import UserRepository

# HTTP Bearer token scheme; a missing header is handled below, not by FastAPI
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Caller identity attached to the request"""

    subject_id: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.subject_id is None


ANONYMOUS = Identity()


def resolve_identity(
    token: Optional[str],
    required: bool,
    tokens: TokenService,
    db: Optional[Session] = None,
    recheck_account: bool = False,
) -> Identity:
    """
    Turn an optional bearer token into an Identity

    Args:
        token: Raw bearer token, None when the header was absent
        required: Whether an anonymous caller is an error
        tokens: Token verifier
        db: Database session, needed only when recheck_account is set
        recheck_account: Re-fetch the account and reject vanished or deactivated ones

    Returns:
        Identity from the token claims, or ANONYMOUS

    Raises:
        APIError: AUTHENTICATION_REQUIRED, INVALID_TOKEN or ACCOUNT_DEACTIVATED
    """
    if not token:
        if required:
            raise APIError(ErrorKind.AUTHENTICATION_REQUIRED)
        return ANONYMOUS

    # A bad token fails even on optional routes
    claims = tokens.verify(token)

    if recheck_account and db is not None:
        user = UserRepository(db, get_password_hasher()).get_by_id(claims.subject_id)
        if not user:
            raise APIError(ErrorKind.INVALID_TOKEN)
        if not user.is_active:
            raise APIError(ErrorKind.ACCOUNT_DEACTIVATED)

    return Identity(subject_id=claims.subject_id, role=claims.role)


def check_roles(identity: Optional[Identity], allowed_roles: Iterable[str]) -> Identity:
    """
    Enforce role membership

    An empty allowed_roles accepts any authenticated identity.
    """
    if identity is None or identity.is_anonymous:
        raise APIError(ErrorKind.AUTHENTICATION_REQUIRED)
    allowed = set(allowed_roles)
    if allowed and identity.role not in allowed:
        raise APIError(ErrorKind.INSUFFICIENT_PERMISSIONS)
    return identity


def check_owner_or_admin(identity: Optional[Identity], owner_id: str) -> Identity:
    """Allow the resource owner or an admin, nobody else"""
    identity = check_roles(identity, ())
    if identity.subject_id != str(owner_id) and identity.role != "admin":
        raise APIError(ErrorKind.INSUFFICIENT_PERMISSIONS)
    return identity


def authenticate(required: bool = True) -> Callable[..., Identity]:
    """
    Build a dependency that extracts the caller identity from
    ``Authorization: Bearer <token>`` and stores it on ``request.state.identity``.
    """

    def dependency(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db),
    ) -> Identity:
        identity = resolve_identity(
            credentials.credentials if credentials else None,
            required=required,
            tokens=get_token_service(),
            db=db,
            recheck_account=settings.AUTH_RECHECK_ACCOUNT,
        )
        request.state.identity = identity
        return identity

    return dependency


get_current_identity = authenticate(required=True)
get_optional_identity = authenticate(required=False)


def authorize(*roles: str) -> Callable[..., Identity]:
    """
    Build a dependency that requires an identity holding one of ``roles``

    Missing credentials surface as AUTHENTICATION_REQUIRED rather than 403.
    """

    def dependency(identity: Identity = Depends(get_optional_identity)) -> Identity:
        return check_roles(identity, roles)

    return dependency


get_current_admin = authorize("admin")


def owner_or_admin(user_id: str, identity: Identity = Depends(get_current_identity)) -> Identity:
    """Path-scoped guard for ``/{user_id}`` routes"""
    return check_owner_or_admin(identity, user_id)
