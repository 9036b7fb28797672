"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Application entry point
═══════════════════════════════════════════════════════════════════════════════

Application factory of the onboarding service: routers, lifespan (DB pool,
SQL migrations, NATS) and the mapping of domain errors to HTTP responses.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding import __version__
from onboarding.config import get_settings
from onboarding.database import close_pool, get_pool
from onboarding.exceptions import InternalError, OnboardingError, ValidationError

# ── API routers ──────────────────────────────────────────────────────────
from onboarding.api.health import router as health_router
from onboarding.api.organizations import router as organizations_router
from onboarding.api.profile import router as profile_router
from onboarding.api.requests import router as requests_router

# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[str, int] = {
    "IResponseErrorValidation": 400,
    "IResponseErrorUnauthorized": 401,
    "IResponseErrorForbiddenNotAuthorized": 403,
    "IResponseErrorNotFound": 404,
    "IResponseErrorConflict": 409,
    "IResponseErrorInternal": 500,
}


# ═══════════════════════════════════════════════════════════════════════════════
# SQL migrations
# ═══════════════════════════════════════════════════════════════════════════════

async def _apply_migrations(pool) -> None:
    """Runs every ``db/migrations/NNN_*.sql`` file newer than the stored schema version."""
    from pathlib import Path

    scripts = sorted((Path(__file__).parent / "db" / "migrations").glob("[0-9]*.sql"))
    if not scripts:
        logger.info("Schema: no migration scripts packaged")
        return

    async with pool.acquire() as conn:
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version ("
            " version INTEGER PRIMARY KEY,"
            " script TEXT NOT NULL,"
            " installed_at TIMESTAMPTZ NOT NULL DEFAULT NOW())"
        )
        current = await conn.fetchval("SELECT COALESCE(MAX(version), 0) FROM schema_version")

        pending = [s for s in scripts if int(s.name.split("_", 1)[0]) > current]
        for script in pending:
            version = int(script.name.split("_", 1)[0])
            async with conn.transaction():
                await conn.execute(script.read_text(encoding="utf-8"))
                await conn.execute(
                    "INSERT INTO schema_version (version, script) VALUES ($1, $2)",
                    version, script.name,
                )
            logger.info(f"📄 Schema upgraded to version {version} ({script.name})")

    logger.info(f"✅ Schema up to date ({len(pending)} script(s) applied)")


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan
# ═══════════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
        1. Create the PostgreSQL pool.
        2. Apply the migrations.
        3. Fall back to the memory store when the DB is unreachable.
        4. Connect the NATS publisher.

    Shutdown:
        1. Drain NATS, close the pool.
    """
    settings = get_settings()
    logger.info(f"🚀 Onboarding v{__version__} starting...")
    logger.info(f"   Log level: {settings.log_level}")

    pool = None
    try:
        pool = await get_pool()
        logger.info("✅ Onboarding database pool initialized")
    except Exception as e:
        logger.warning(f"⚠️  Onboarding DB not available — activating memory store: {e}")
        from onboarding.memory_store import activate_memory_store
        activate_memory_store()

    if pool is not None:
        try:
            await _apply_migrations(pool)
        except Exception as e:
            logger.warning(f"⚠️  Onboarding migration apply failed (non-fatal): {e}")

    try:
        from onboarding.events import connect as nats_connect
        await nats_connect()
    except Exception as e:
        logger.warning(f"⚠️  NATS publisher not available (events will be skipped): {e}")

    yield

    try:
        from onboarding.events import disconnect as nats_disconnect
        await nats_disconnect()
    except Exception as e:
        logger.warning(f"NATS disconnect failed: {e}")
    try:
        await close_pool()
    except Exception as e:
        logger.warning(f"DB pool close failed: {e}")
    logger.info("🛑 Onboarding stopped")


# ═══════════════════════════════════════════════════════════════════════════════
# Application factory
# ═══════════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Creates and configures the onboarding FastAPI application."""
    settings = get_settings()

    _is_production = settings.app_env == "production"

    app = FastAPI(
        redirect_slashes=False,
        title="IO Onboarding",
        description=(
            "Onboarding of public administrations on the IO platform: "
            "organization registration, user delegation, signed documents "
            "delivered to the administration PEC."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url=None if _is_production else "/docs",
        redoc_url=None if _is_production else "/redoc",
        openapi_url=None if _is_production else "/api/v1/openapi.json",
    )

    # ── CORS middleware ──────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    )

    # ── Routers ──────────────────────────────────────────────────────────
    from fastapi import APIRouter

    v1_router = APIRouter(prefix="/api/v1")
    v1_router.include_router(organizations_router)
    v1_router.include_router(requests_router)
    v1_router.include_router(profile_router)
    v1_router.include_router(health_router)
    app.include_router(v1_router)

    # ── Domain errors ────────────────────────────────────────────────────
    @app.exception_handler(OnboardingError)
    async def onboarding_error_handler(request: Request, exc: OnboardingError) -> JSONResponse:
        """Maps the error kind to an HTTP status; the body is ``{kind, detail}``."""
        status_code = ERROR_STATUS.get(exc.kind, 500)
        if status_code >= 500:
            logger.error(
                "%s %s failed: %s (%r)", request.method, request.url.path, exc.message, exc.__cause__
            )
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content={"kind": exc.kind, "detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Anything that escaped the services is rendered as IResponseErrorInternal."""
        logger.exception("%s %s failed with an unhandled error", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"kind": InternalError.kind, "detail": "An unexpected error occurred."},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed bodies and parameters become IResponseErrorValidation."""
        detail = "; ".join(
            f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"kind": ValidationError.kind, "detail": detail or "Bad request"},
        )

    @app.get("/")
    async def root():
        return {
            "name": "IO Onboarding",
            "version": __version__,
            "docs": "/docs",
            "api": {
                "v1": {
                    "health": "/api/v1/health",
                    "organizations": "/api/v1/organizations",
                    "requests": "/api/v1/requests",
                    "actions": "/api/v1/requests/actions",
                    "profile": "/api/v1/profile",
                },
            },
        }

    return app


# ═══════════════════════════════════════════════════════════════════════════════
# Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════════
app = create_app()


def main() -> None:
    """Runs the service with Uvicorn."""
    settings = get_settings()
    logger.info(f"Starting onboarding server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "onboarding.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
