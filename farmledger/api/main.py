"""FastAPI application entry point for the Farm Ledger API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from farmledger.api.routes.economics import economics_router
from farmledger.api.routes.farmers import farmers_router
from farmledger.api.routes.schemes import schemes_router
from farmledger.api.routes.score import score_router
from farmledger.config import settings
from farmledger.errors import FarmLedgerError, PersistenceError
from farmledger.models.database import create_tables, seed_schemes
from farmledger.schemas.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown tasks.

    Creates database tables and seeds the scheme catalogue on startup.

    Args:
        app: The FastAPI application instance.
    """
    await create_tables()
    if settings.SEED_SCHEMES:
        await seed_schemes()
    logger.info("%s started. Database tables ready.", settings.APP_TITLE)
    yield


app = FastAPI(
    title=settings.APP_TITLE,
    description="Farming score, rewards and farm economics API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=settings.FRONTEND_URL != "*",
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(farmers_router)
app.include_router(score_router)
app.include_router(economics_router)
app.include_router(schemes_router)


# ---------------------------------------------------------------------------
# Error handling: domain errors become generic, non-leaking JSON bodies
# ---------------------------------------------------------------------------
@app.exception_handler(FarmLedgerError)
async def farm_ledger_error_handler(request: Request, exc: FarmLedgerError) -> JSONResponse:
    """Translate a domain error into its HTTP status and public message."""
    if isinstance(exc, PersistenceError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.public_message).model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Report which fields were rejected without echoing their values."""
    fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
    logger.info("%s %s invalid fields: %s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error="Invalid request", fields=fields).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework errors (401, 404 on unknown routes) in the same body shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}
