"""Authentication endpoints — signup, login and the current profile."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_app_settings
from db.database import get_db
from models.user import User
from schemas import (
    SignupRequest, SignupResponse, LoginRequest, LoginResponse, UserResponse,
)
from services.auth import get_current_user
from services.security import hash_password, verify_password, create_token

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_app_settings),
):
    """Register a new customer account."""
    existing = await db.execute(select(User).where(User.email == data.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        email=data.email,
        password=hash_password(data.password),
        name=data.name,
        role="customer",
        status="active",
    )
    db.add(user)
    await db.commit()
    logger.info("User signed up: id=%s", user.id)

    return SignupResponse(id=user.id, email=user.email, token=create_token(user.id, user.role, cfg))


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    cfg: Settings = Depends(get_app_settings),
):
    """Exchange email + password for a bearer token."""
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(data.password, user.password):
        logger.info("Failed login for %s", data.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if user.status != "active":
        raise HTTPException(status_code=401, detail="Account is inactive")

    return LoginResponse(
        token=create_token(user.id, user.role, cfg),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Current user profile."""
    return user
