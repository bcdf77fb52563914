"""
Create (or promote) the admin account from ADMIN_EMAIL / ADMIN_PASSWORD.

Usage:
    cd api && python create_admin.py
"""

import asyncio
import logging

from sqlalchemy import select

from config import Settings, get_settings
from db.database import Database
from models.user import User
from services.security import hash_password

logger = logging.getLogger("create_admin")


async def ensure_admin(database: Database, settings: Settings) -> User:
    """Create the admin user, or promote and reactivate an existing account."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        raise ValueError("ADMIN_EMAIL and ADMIN_PASSWORD must be set")

    email = settings.ADMIN_EMAIL.strip().lower()
    async with database.sessionmaker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(
                email=email,
                password=hash_password(settings.ADMIN_PASSWORD),
                name="Admin User",
                role="admin",
                status="active",
            )
            session.add(user)
            logger.info("Created admin user %s", email)
        else:
            user.role = "admin"
            user.status = "active"
            logger.info("Promoted existing user %s to admin", email)
        await session.commit()
        return user


async def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    database = Database(settings.DATABASE_URL)
    try:
        await database.create_all()
        await ensure_admin(database, settings)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
