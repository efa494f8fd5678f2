"""gantry - collaborative project scheduling with a live Gantt timeline."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.errors import classify_error_with_response, status_code_for
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.redis_client import redis_client
from src.core.scheduler import start_scheduler, stop_scheduler
from src.interface.projects_router import router as projects_router
from src.interface.realtime_ws import router as realtime_router
from src.interface.tasks_router import router as tasks_router
from src.services.realtime_service import RedisRelay, realtime_hub


logger = logging.getLogger(__name__)


async def check_redis_connectivity() -> None:
    """Verify Redis connectivity (optional service).

    Only checks if Redis is configured. Logs a warning if unavailable but doesn't fail.
    """
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


async def validate_startup_configuration() -> None:
    """Validate credentials and optional service connectivity.

    A Logfire token is required in production. Redis stays optional.

    Exits the process with status 1 if a required credential is missing.
    """
    logger.info("startup_validation_begin")

    try:
        if settings.is_production:
            settings.require_credential("logfire_token", "Pydantic Logfire")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

        await check_redis_connectivity()
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    await validate_startup_configuration()
    relay = RedisRelay(realtime_hub, redis_client)
    await relay.start()

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await relay.stop()
    await redis_client.close()
    await close_connection()


app = FastAPI(
    title="gantry",
    description="Collaborative project scheduling with a live Gantt timeline",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Translate service exceptions into structured error responses."""
    response = classify_error_with_response(exc)
    status_code = status_code_for(response)
    log = logger.error if status_code >= 500 else logger.info  # noqa: PLR2004
    log("request_failed", extra={"path": request.url.path, "code": response.code, "error": str(exc)})
    return JSONResponse(content=response.model_dump(mode="json"), status_code=status_code)


# KeyError covers RecordNotFoundError, ValueError covers validation and hierarchy
# errors, RuntimeError covers DatabaseError
for _exception_type in (KeyError, ValueError, RuntimeError):
    app.add_exception_handler(_exception_type, service_error_handler)

# Register routers
app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(realtime_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        content={"status": "healthy", "redis": redis_client.get_health_status()},
        status_code=200,
    )
