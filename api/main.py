"""FastAPI application for the certificate image service."""

import asyncio
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse

from core.config import Settings, get_settings
from core.logger import configure_logging, get_logger
from core.storage import (
    StorageUnavailableError,
    close_storage_client,
    create_storage_client,
)
from core.telemetry import RequestTimingMiddleware
from routes import (
    certificates_router,
    health_router,
    legacy_certificates_router,
)

configure_logging()
logger = get_logger(__name__)

STORAGE_INIT_TIMEOUT_SECONDS = 30


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailableError
) -> PlainTextResponse:
    """Report a missing storage client like any other upload failure."""
    logger.error(
        "certificate.generation.failed",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return PlainTextResponse(str(exc), status_code=500)


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create the storage client at startup and close it on shutdown.

    A failed or hung client creation does not stop the process: the error is
    kept on ``app.state.init_error`` and ``/ready`` reports 503 until a
    restart fixes the credentials.
    """
    app.state.storage_client = None
    app.state.init_error = None

    try:
        async with asyncio.timeout(STORAGE_INIT_TIMEOUT_SECONDS):
            app.state.storage_client = await asyncio.to_thread(create_storage_client)
    except TimeoutError:
        app.state.init_error = (
            f"storage client creation timed out after {STORAGE_INIT_TIMEOUT_SECONDS}s"
        )
        logger.error("init.timeout", hint="check Google credentials and network")
    except Exception as e:
        app.state.init_error = f"{type(e).__name__}: {e}"
        logger.error("init.failed", error=str(e), exc_info=True)
    else:
        logger.info("init.complete", bucket=get_settings().bucket)

    try:
        yield
    finally:
        close_storage_client(app.state.storage_client)


def create_app(settings: Settings | None = None) -> fastapi.FastAPI:
    settings = settings or get_settings()
    show_docs = settings.enable_docs or settings.debug

    application = fastapi.FastAPI(
        title="Certificate Image Service",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
    )
    application.add_exception_handler(
        StorageUnavailableError, storage_unavailable_handler
    )
    application.add_exception_handler(Exception, global_exception_handler)
    application.add_middleware(RequestTimingMiddleware)

    application.include_router(health_router)
    application.include_router(certificates_router)
    application.include_router(legacy_certificates_router)
    return application


app = create_app()
