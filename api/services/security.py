"""
Security primitives — password hashing and JWT issuing.

  - Passwords hashed with bcrypt (cost 10)
  - HS256 JWT carrying the user id (sub) and role, valid JWT_EXPIRES_DAYS
  - Secrets come from the Settings of the running app, never a module global
"""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from config import Settings

BCRYPT_ROUNDS = 10
JWT_ALGORITHM = "HS256"


def _password_bytes(plain: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return plain.encode()[:72]


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode())
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_token(
    user_id: str,
    role: str,
    cfg: Settings,
    expires_in: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=cfg.JWT_EXPIRES_DAYS)),
    }
    return jwt.encode(payload, cfg.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str, cfg: Settings) -> dict:
    """Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError."""
    return jwt.decode(token, cfg.JWT_SECRET, algorithms=[JWT_ALGORITHM])
