"""Shared fixtures: in-memory database, app client, users and a seeded meal plan."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

# Settings are read once at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

import hashlib
import hmac
import time
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from db.database import Database
from main import create_app
from models.meal_plan import MealPlan, Meal
from models.user import User
from services.security import hash_password, create_token

DEFAULT_PASSWORD = "Passw0rd!"


@pytest_asyncio.fixture
async def database():
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(database):
    return create_app(database=database)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(database):
    """Factory: insert a user straight into the database."""

    async def _make(
        email: str | None = None,
        role: str = "customer",
        status: str = "active",
        password: str = DEFAULT_PASSWORD,
        name: str = "Test User",
    ) -> User:
        async with database.sessionmaker() as session:
            user = User(
                email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
                password=hash_password(password),
                name=name,
                role=role,
                status=status,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def auth_headers(app):
    """Bearer headers signed with the app's own JWT secret."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_token(user.id, user.role, app.state.settings)}"}

    return _headers


@pytest_asyncio.fixture
async def customer(make_user):
    return await make_user(email="customer@example.com", name="Casey Customer")


@pytest_asyncio.fixture
async def other_customer(make_user):
    return await make_user(email="other@example.com", name="Olly Other")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(email="admin@example.com", role="admin", name="Ada Admin")


@pytest_asyncio.fixture
async def agent(make_user):
    return await make_user(email="agent@example.com", role="agent", name="Sam")


@pytest_asyncio.fixture
async def meal_plan(database):
    """A plan with two meals."""
    async with database.sessionmaker() as session:
        plan = MealPlan(
            name="Keto Week",
            price=49.99,
            description="Low-carb lunches and dinners",
            meals=[
                Meal(name="Egg Muffins", description="Breakfast bites", tags=["keto", "vegetarian"]),
                Meal(name="Salmon Bowl", description="With greens", tags=["keto", "fish"]),
            ],
        )
        session.add(plan)
        await session.commit()
        return plan


@pytest.fixture
def stripe_signature():
    """Build a valid Stripe-Signature header for a raw payload."""

    def _sign(payload: bytes, secret: str = os.environ["STRIPE_WEBHOOK_SECRET"]) -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.".encode() + payload
        digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign
