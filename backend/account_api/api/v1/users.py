"""User account routes"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from account_api.config import settings
from account_api.core.database import get_db
from account_api.schemas.response import MessageResponse
from account_api.schemas.user import (
    ChangePasswordRequest,
    TokenResponse,
    UserAdminUpdate,
    UserListResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    UserRole,
    UserSelfUpdate,
)
from account_api.services.auth_service import auth_service
from account_api.services.rate_limiter import rate_limiter
from account_api.services.user_service import user_service
from account_api.api.deps import Identity, get_current_admin, get_current_identity, owner_or_admin

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: UserRegister,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Register a new account

    Args:
        body: Username, email, password and optional role
        db: Database session

    Returns:
        Created user without credential material
    """
    rate_limiter.check(
        f"register:{_client_ip(request)}",
        settings.REGISTER_RATE_LIMIT_PER_HOUR,
        3600,
        "Too many registrations. Please try again later.",
    )
    return user_service.register(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role.value if body.role else None,
    )


@router.post("/login", response_model=TokenResponse)
def login(
    body: UserLogin,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Login endpoint - authenticate user and return JWT token

    Args:
        body: Email and password
        db: Database session

    Returns:
        JWT token and user info
    """
    rate_limiter.check(
        f"login:{_client_ip(request)}:{body.email.strip().lower()}",
        settings.LOGIN_RATE_LIMIT_PER_MINUTE,
        60,
        "Too many login attempts. Please wait a minute.",
    )
    result = auth_service.login(db, body.email, body.password)
    return TokenResponse(
        access_token=result.token,
        token_type="bearer",
        expires_in=result.expires_in,
        user=result.user,
    )


@router.get("/me", response_model=UserResponse)
def get_my_profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Get current user profile"""
    return user_service.get_user(db, identity.subject_id)


@router.api_route("/me", methods=["PATCH", "PUT"], response_model=UserResponse)
def update_my_profile(
    body: UserSelfUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Update username and/or email of the current user

    Other fields in the body are ignored.
    """
    return user_service.update_self(db, identity.subject_id, body.model_dump(exclude_none=True))


@router.post("/me/change-password", response_model=MessageResponse)
def change_my_password(
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Change the current user's password"""
    user_service.change_password(db, identity.subject_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get("/", response_model=UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    current_admin: Identity = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Get all users (admin only)

    Args:
        page: 1-based page number
        limit: Page size (max 100)
        role: Optional role filter
        search: Optional case-insensitive match on username or email

    Returns:
        One page of users with pagination metadata
    """
    result = user_service.list_users(
        db,
        page=page,
        limit=limit,
        role=role.value if role else None,
        search=search,
    )
    return UserListResponse(
        items=result.items,
        page=result.page,
        limit=result.limit,
        total=result.total,
        page_count=result.page_count,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    identity: Identity = Depends(owner_or_admin),
    db: Session = Depends(get_db)
):
    """Get a user by ID (owner or admin)"""
    return user_service.get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    body: UserAdminUpdate,
    current_admin: Identity = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Update a user's profile, role or active flag (admin only)"""
    return user_service.admin_update(db, user_id, body.model_dump(exclude_none=True, mode="json"))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    current_admin: Identity = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Delete user (admin only)

    Args:
        user_id: User ID to delete
        current_admin: Current admin identity
        db: Database session

    Returns:
        Success message
    """
    user_service.delete_user(db, user_id)
    return MessageResponse(message=f"User {user_id} deleted successfully")
