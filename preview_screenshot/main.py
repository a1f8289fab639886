from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from preview_screenshot.core.config import APP_VERSION, Settings, settings as default_settings
from preview_screenshot.core.errors import PreviewScreenshotError, HTTP_500_INTERNAL_SERVER_ERROR
from preview_screenshot.core.logging import get_logger, setup_logging
from preview_screenshot.core.middleware import RequestLoggingMiddleware
from preview_screenshot.api.health import router as health_router
from preview_screenshot.api.screenshot import router as screenshot_router
from preview_screenshot.services.screenshotone import ScreenshotOneProvider, ScreenshotProvider

logger = get_logger("main")

HTTP_ERROR_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the FastAPI application.

    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)

    logger.bind(
        allowed_domain=settings.allowed_domain,
        provider_configured=settings.has_provider_credentials(),
        cache_ttl_seconds=settings.cache_ttl_seconds,
    ).info("Starting preview screenshot service")

    if not settings.has_provider_credentials():
        logger.warning("ScreenshotOne credentials are not set, screenshot requests will fail")

    yield

    logger.info("Shutting down preview screenshot service")
    await app.state.provider.close()
    logger.info("All resources cleaned up, service stopped")


def create_app(settings: Optional[Settings] = None,
               provider: Optional[ScreenshotProvider] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration, the environment-derived settings by default
        provider: Screenshot provider, a ScreenshotOne client built from settings by default

    Returns:
        The application
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Preview Screenshot",
        description="""
        Renders screenshots of pages on the allowed domain for link previews
        and proxies them back as cacheable JPEG images.
        """,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.provider = provider or ScreenshotOneProvider.from_settings(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware, enabled=settings.log_requests)

    @app.exception_handler(PreviewScreenshotError)
    async def preview_screenshot_error_handler(request: Request, exc: PreviewScreenshotError):
        request_id = getattr(request.state, "request_id", "unknown")

        exc.context.update({
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        })

        log = logger.bind(**exc.to_dict())
        if exc.http_status >= HTTP_500_INTERNAL_SERVER_ERROR:
            log.error(f"{type(exc).__name__}: {exc.message}")
        else:
            log.warning(f"{type(exc).__name__}: {exc.message}")

        return PlainTextResponse(
            exc.message,
            status_code=exc.http_status,
            headers={"X-Request-ID": request_id}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = HTTP_ERROR_MESSAGES.get(exc.status_code, str(exc.detail))
        return PlainTextResponse(message, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.bind(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            error_type=type(exc).__name__,
        ).opt(exception=exc).error("Unhandled exception in request handler")

        return PlainTextResponse(
            "Internal server error",
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            headers={"X-Request-ID": request_id}
        )

    # Health and robots come before the catch-all screenshot route
    app.include_router(health_router)
    app.include_router(screenshot_router)

    return app


app = create_app()
