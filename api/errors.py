"""
Centralized error translator.

  HTTPException          → its status, {"error": detail}
  RequestValidationError → 400, {"error": "Validation error", "details": [...]}
  InvalidTransition      → 400, fixed state-machine message
  PaymentGatewayError    → 502
  SQLAlchemyError        → 400, {"error": "Database error", "message": ...}
  anything else          → 500, message only outside production
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.stripe_gateway import PaymentGatewayError
from services.transitions import InvalidTransition

logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "details": _validation_details(exc)},
    )


async def transition_exception_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    logger.info("Rejected %s transition: %s --%s-->", exc.machine, exc.current, exc.action)
    return JSONResponse(status_code=400, content={"error": exc.message})


async def gateway_exception_handler(request: Request, exc: PaymentGatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"error": "Payment processor error", "message": str(exc)},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"error": "Database error", "message": str(exc.__cause__ or exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"error": "Internal server error"}
    if not request.app.state.settings.is_production:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidTransition, transition_exception_handler)
    app.add_exception_handler(PaymentGatewayError, gateway_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
