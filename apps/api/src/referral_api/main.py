"""FastAPI application for referral tracking.

Provides:
- Referral creation with unique codes and shareable deep links
- Code resolution for referees opening a shared link
- Status tracking (pending -> installed -> completed)
- Per-user referral statistics
- Mock header authentication (X-User-Id) for development

Flow:
1. POST /api/referrals - Referrer creates a referral and shares its link
2. GET /api/referrals/code/{code} - Referee's app resolves the link
3. POST /api/referrals/code/{code}/installed - Referee installed the app
4. POST /api/referrals/code/{code}/completed - Referee registered
5. GET /api/referrals/stats - Referrer checks progress
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from referral_api.config import settings
from referral_api.db.database import async_session, engine, init_db
from referral_api.referrals.exceptions import ReferralServiceError
from referral_api.referrals.routes import router as referrals_router
from referral_api.referrals.seed import seed_mock_data

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("referral-api")


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed mock data on startup, close the pool on shutdown."""
    if settings.allow_default_user:
        logger.warning(
            "Mock authentication fallback is enabled - requests without "
            f"{settings.user_id_header} act as {settings.default_user_id}"
        )
    await init_db()
    if settings.seed_mock_data:
        async with async_session() as session:
            await seed_mock_data(session)
    logger.info("Referral API started")
    yield
    # Shutdown: release pooled connections
    await engine.dispose()
    logger.info("Referral API stopped")


app = FastAPI(
    title="Referral API",
    description="Referral codes, shareable links, and referral status tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(referrals_router)


# =============================================================================
# Error Handlers
# =============================================================================


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies and fields as 400 Bad Request."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ReferralServiceError)
async def referral_service_error_handler(request: Request, exc: ReferralServiceError):
    """Turn unhandled service errors into a 500 with a readable message."""
    logger.error(f"Referral service error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


# =============================================================================
# Endpoints
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
