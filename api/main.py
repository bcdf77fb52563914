"""
HungryGo — FastAPI Backend
Meal plans, orders, subscriptions, Stripe payments and customer support.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, get_settings
from db.database import Database
from errors import register_exception_handlers
from routers import (
    admin, auth, meal_plans, meals, orders, payments, subscriptions, support, users,
)
from services.rate_limit import close_redis, rate_limit

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the application. Tests pass their own settings and database."""
    settings = settings or get_settings()
    database = database or Database(settings.DATABASE_URL)
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("HungryGo API starting (env=%s)", settings.ENVIRONMENT)
        if settings.AUTO_CREATE_TABLES:
            await database.create_all()
        yield
        await database.dispose()
        await close_redis()
        logger.info("HungryGo API shut down")

    app = FastAPI(
        title="HungryGo API",
        description="Meal plan ordering, subscriptions and payments backend",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database

    # ── CORS ───────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request logging ────────────────────────────────────────
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    register_exception_handlers(app)

    # ── Routers ────────────────────────────────────────────────
    limited = [Depends(rate_limit)]
    app.include_router(auth.router, prefix="/api/auth", tags=["Auth"], dependencies=limited)
    app.include_router(users.router, prefix="/api/users", tags=["Users"], dependencies=limited)
    app.include_router(meal_plans.router, prefix="/api/meal-plans", tags=["Meal Plans"], dependencies=limited)
    app.include_router(meals.router, prefix="/api/meals", tags=["Meals"], dependencies=limited)
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"], dependencies=limited)
    app.include_router(subscriptions.router, prefix="/api/subscriptions", tags=["Subscriptions"], dependencies=limited)
    app.include_router(payments.router, prefix="/api/payments", tags=["Payments"], dependencies=limited)
    app.include_router(support.router, prefix="/api/support", tags=["Support"], dependencies=limited)
    app.include_router(admin.router, prefix="/api/admin", tags=["Admin Dashboard"], dependencies=limited)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.get("/health/db")
    async def health_db():
        """Verify the database answers."""
        try:
            await database.ping()
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            return JSONResponse(status_code=503, content={"status": "error", "detail": str(e)})
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=get_settings().PORT)
