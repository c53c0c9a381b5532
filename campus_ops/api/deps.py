"""
Request dependencies: resolve the bearer token into an explicit Principal.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.exceptions import Unauthorized
from campus_ops.core.logging import bind_principal
from campus_ops.core.permissions import Principal
from campus_ops.core.security import decode_access_token
from campus_ops.db.session import get_db
from campus_ops.models.user import User
from campus_ops.services.auth_service import to_principal

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise Unauthorized("Invalid token subject") from e

    user = await db.get(User, user_id)
    if user is None or not user.enabled:
        raise Unauthorized("User not found or disabled")
    return user


async def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    principal = to_principal(user)
    bind_principal(principal.id, [r.value for r in principal.roles])
    return principal
