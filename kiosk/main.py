"""
Guest Check-in Kiosk — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import select

from kiosk.api.api import api_router
from kiosk.core.config import settings
from kiosk.core.exceptions import register_exception_handlers
from kiosk.core.rate_limit import limiter
from kiosk.core.security import get_password_hash
from kiosk.db.base import Base
from kiosk.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from kiosk.models.employee import ActivityLog, Employee  # noqa: F401
from kiosk.models.notification_settings import NotificationSettings  # noqa: F401
from kiosk.models.user import User
from kiosk.services import mailer, photos

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_admin() -> None:
    """Create the bootstrap admin account if it does not exist yet."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.username == settings.FIRST_ADMIN_USERNAME)
        )
        if result.scalar_one_or_none() is None:
            session.add(
                User(
                    username=settings.FIRST_ADMIN_USERNAME,
                    hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                    role="admin",
                )
            )
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_USERNAME,
            )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_admin()

    if settings.email_configured:
        if await mailer.verify_connection():
            logger.info("Email service is ready")
    else:
        logger.warning("Email service not configured; email notifications will fail")

    logger.info("🚀 %s v%s started (%s)", settings.PROJECT_NAME, settings.VERSION, settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Visitor check-in and employee notification service",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_middleware(SlowAPIMiddleware)

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_PREFIX)

    @application.get("/health", tags=["health"])
    async def health() -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
        }

    # Employee photos
    application.mount(
        photos.PUBLIC_PREFIX.rstrip("/"),
        StaticFiles(directory=str(photos.upload_dir()), check_dir=False),
        name="uploads",
    )

    return application


app = create_app()
