"""
Authentication endpoints: register, login, Google sign-in, and user/role admin.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal, get_current_user
from campus_ops.core.permissions import Principal
from campus_ops.db.session import get_db
from campus_ops.models.user import User
from campus_ops.schemas.user import (
    GoogleCredential, Token, UserCreate, UserLogin, UserResponse, UserRolesUpdate,
)
from campus_ops.services import auth_service, google_verifier

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user: User) -> Token:
    return Token(access_token=auth_service.issue_token(user), user=UserResponse.model_validate(user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new account and return a token for it."""
    user = await auth_service.register_user(db, user_data)
    return _token_for(user)


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    user = await auth_service.authenticate_user(db, login_data)
    return _token_for(user)


@router.post("/google", response_model=Token)
@router.post("/google/verify", response_model=Token, include_in_schema=False)
async def google_login(body: GoogleCredential, db: AsyncSession = Depends(get_db)):
    """Sign in with a Google ID token, verified server-side before any account is touched."""
    profile = await google_verifier.verify_google_credential(body.credential)
    user = await auth_service.google_sign_in(db, profile)
    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.list_users(db, principal)


@router.put("/users/{user_id}/roles", response_model=UserResponse)
async def update_roles(
    user_id: int,
    body: UserRolesUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Replace a user's roles (ADMIN only). USER is always retained."""
    return await auth_service.update_user_roles(db, principal, user_id, body.roles)
