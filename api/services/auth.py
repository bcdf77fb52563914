"""
Authentication and authorization dependencies.

  get_current_user          → bearer JWT → User row (401 otherwise)
  require_roles(*roles)     → route-level role restriction (403)
  ensure_owner_or_privileged → per-resource check shared by every handler
"""

import logging
import uuid
from collections.abc import Iterable

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_app_settings
from db.database import get_db
from models.user import User
from schemas import UserRole
from services.security import decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ONLY = (UserRole.ADMIN.value,)
SUPPORT_STAFF = (UserRole.ADMIN.value, UserRole.AGENT.value)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_app_settings),
) -> User:
    """Resolve the caller from the Authorization header; inactive accounts are refused."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authorized, no token provided")

    try:
        payload = decode_token(credentials.credentials, cfg)
        user_id = uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Not authorized, invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if user.status != "active":
        raise HTTPException(status_code=401, detail="Account is inactive")
    return user


def require_roles(*roles: str):
    """Dependency factory: allow only callers whose role is in `roles`."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.info("Role check failed: user=%s role=%s needs=%s", user.id, user.role, roles)
            raise HTTPException(status_code=403, detail="Not authorized to perform this action")
        return user

    return checker


def is_privileged(user: User, privileged: Iterable[str] = ADMIN_ONLY) -> bool:
    return user.role in privileged


def ensure_owner_or_privileged(
    user: User,
    owner_id: uuid.UUID,
    action: str,
    privileged: Iterable[str] = ADMIN_ONLY,
) -> None:
    """Grant iff the caller owns the resource or holds a privileged role."""
    if user.id == owner_id or is_privileged(user, privileged):
        return
    raise HTTPException(status_code=403, detail=f"Not authorized to {action}")
