"""
Authentication service: local registration/login, Google sign-in, and
admin management of user roles.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import DuplicateResource, Forbidden, NotFound, Unauthorized
from campus_ops.core.logging import get_logger
from campus_ops.core.permissions import Operation, Principal, require
from campus_ops.core.security import hash_password, verify_password, create_access_token
from campus_ops.models.enums import AuthProvider, Role
from campus_ops.models.user import User
from campus_ops.schemas.user import GoogleSignIn, UserCreate, UserLogin

logger = get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "roles": list(user.roles or [])}
    )


def to_principal(user: User) -> Principal:
    roles = set()
    for role in user.roles or []:
        try:
            roles.add(Role(role))
        except ValueError:
            logger.warning("unknown_role_ignored", user_id=user.id, role=role)
    roles.add(Role.USER)
    return Principal(id=user.id, email=user.email, name=user.name, roles=frozenset(roles))


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new local account holding the USER role.
    Raises 409 if the email already exists.
    """
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise DuplicateResource("Email already registered")

    user = User(
        email=email,
        name=user_data.name.strip(),
        hashed_password=hash_password(user_data.password),
        provider=AuthProvider.LOCAL.value,
        roles=[Role.USER.value],
        enabled=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> User:
    """
    Check credentials and return the user.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise Unauthorized("Invalid email or password")

    if not user.enabled:
        raise Forbidden("Account is disabled")

    logger.info("user_logged_in", user_id=user.id)
    return user


async def google_sign_in(db: AsyncSession, profile: GoogleSignIn) -> User:
    """
    Create or refresh the account for a verified Google profile.
    Existing accounts keep their roles; new ones start as USER.
    """
    email = profile.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            email=email,
            name=profile.name,
            avatar_url=profile.avatar_url,
            provider=AuthProvider.GOOGLE.value,
            provider_id=profile.provider_id,
            roles=[Role.USER.value],
            enabled=True,
        )
        db.add(user)
        logger.info("google_user_created", email=email)
    else:
        if not user.enabled:
            raise Forbidden("Account is disabled")
        user.name = profile.name
        user.avatar_url = profile.avatar_url
        if user.provider == AuthProvider.GOOGLE.value:
            user.provider_id = profile.provider_id

    await db.commit()
    await db.refresh(user)
    logger.info("user_logged_in", user_id=user.id, provider=AuthProvider.GOOGLE.value)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", user_id=user_id)
    return user


async def list_users(db: AsyncSession, principal: Principal) -> list[User]:
    require(principal, Operation.USER_MANAGE)
    result = await db.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def update_user_roles(
    db: AsyncSession,
    principal: Principal,
    user_id: int,
    roles: Iterable[Role],
) -> User:
    """Replace a user's roles. USER is always kept as the baseline."""
    require(principal, Operation.USER_MANAGE)
    user = await get_user(db, user_id)

    new_roles = {Role(r) for r in roles} | {Role.USER}
    if user.id == principal.id and Role.ADMIN not in new_roles:
        raise Forbidden("Administrators cannot remove their own ADMIN role")

    user.roles = sorted(r.value for r in new_roles)
    await db.commit()
    await db.refresh(user)

    logger.info("user_roles_updated", target_user_id=user.id, roles=user.roles, actor_id=principal.id)
    return user


async def list_user_ids_with_role(db: AsyncSession, role: Role) -> list[int]:
    """
    Enabled users holding `role`. Roles are a JSON list, so filtering happens
    here rather than in SQL to stay portable across dialects.
    """
    result = await db.execute(select(User.id, User.roles).where(User.enabled.is_(True)))
    return [uid for uid, roles in result.all() if role.value in (roles or [])]
