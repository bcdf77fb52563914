"""User management API endpoints."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.user import User
from schemas import UserUpdate, UserResponse
from services.auth import (
    ADMIN_ONLY, get_current_user, require_roles, ensure_owner_or_privileged, is_privileged,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/", response_model=list[UserResponse])
async def list_users(
    skip: int = 0,
    limit: int = 50,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    """List all users (admin, paginated)."""
    result = await db.execute(
        select(User).offset(skip).limit(limit).order_by(User.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a user profile (self or admin)."""
    ensure_owner_or_privileged(current, user_id, "view this user")
    return await _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a profile. Role changes are admin-only."""
    user = await _get_user_or_404(db, user_id)
    ensure_owner_or_privileged(current, user.id, "update this user")

    if data.role is not None and not is_privileged(current):
        raise HTTPException(status_code=403, detail="Not authorized to change role")

    if data.email is not None and data.email != user.email:
        taken = await db.execute(select(User).where(User.email == data.email))
        if taken.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Email already exists")
        user.email = data.email
    if data.name is not None:
        user.name = data.name
    if data.status is not None:
        user.status = data.status.value
    if data.role is not None:
        user.role = data.role.value

    await db.commit()
    logger.info("User updated: id=%s by=%s", user.id, current.id)
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_roles(*ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user and everything they own (admin)."""
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info("User deleted: id=%s by=%s", user_id, admin.id)
    return {"message": "User deleted successfully"}
