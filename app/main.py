"""
Tourbook — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `services/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.api import api_router
from app.core.cache import TokenCache, create_redis
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.rate_limit import limiter
from app.core.security import hash_password_async
from app.db.base import Base
from app.db.session import async_session_factory, engine
from app.models.role import Role, default_permissions
from app.models.staff import Staff
from app.models.user import User  # noqa: F401
from app.services.accounts import find_staff_by_email
from app.services.staff import generate_employee_id

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_first_admin() -> None:
    """Create the bootstrap admin staff account if it does not exist yet."""
    async with async_session_factory() as session:
        if await find_staff_by_email(session, settings.FIRST_ADMIN_EMAIL) is not None:
            return
        session.add(
            Staff(
                email=settings.FIRST_ADMIN_EMAIL,
                hashed_password=await hash_password_async(settings.FIRST_ADMIN_PASSWORD),
                first_name="Super",
                last_name="Admin",
                role=Role.ADMIN.value,
                department="Administration",
                employee_id=generate_employee_id("Super", "Admin"),
                permissions=default_permissions(Role.ADMIN),
                is_active=True,
                has_pwd_changed=False,
            )
        )
        await session.commit()
        logger.info(
            "Default admin created: %s (password: <redacted>)",
            settings.FIRST_ADMIN_EMAIL,
        )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_first_admin()

    app.state.token_cache = TokenCache(create_redis(settings.REDIS_URL))
    logger.info("Token cache connected to %s", settings.REDIS_URL.rsplit("@", 1)[-1])

    logger.info("🚀 %s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await app.state.token_cache.close()
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Tour booking platform — accounts and authentication",
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # slowapi reads the limiter from app state
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=settings.API_PREFIX)

    return application


app = create_app()
