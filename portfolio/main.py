"""
Portfolio FastAPI Application
Contact form, project and skill listings, and health endpoints.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from delivery.gateway import NotificationGateway
from portfolio.api import contact, content, dev, health
from portfolio.core.config import Settings, settings as default_settings
from portfolio.core.exceptions import ContactPipelineError
from portfolio.core.rate_limit import RateLimitMiddleware, close_rate_limiter
from portfolio.core.sentry import capture_exception, init_sentry
from portfolio.database import Database
from portfolio.services.email import EmailTemplateService

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.DEBUG if default_settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: initialise Sentry and connect to the database (creating tables).
    Shutdown: close the notification gateway, rate limiter and database.
    """
    config: Settings = app.state.settings
    logger.info(f"Starting {config.app_name} v{config.app_version} ({config.environment})")

    if init_sentry(config):
        logger.info("Sentry error tracking enabled")

    database: Database = app.state.database
    if not await database.connect():
        logger.warning("Serving without a database; contact submissions will fail until it recovers")

    if config.email_enabled:
        logger.info(f"Email notifications enabled via {app.state.gateway.provider_name}")
    else:
        logger.info("Email notifications disabled")

    yield

    logger.info(f"Shutting down {config.app_name}...")
    await app.state.gateway.close()
    await close_rate_limiter()
    await database.disconnect()


# =============================================================================
# Exception Handlers
# =============================================================================


async def pipeline_exception_handler(request: Request, exc: ContactPipelineError) -> JSONResponse:
    """Render contact pipeline failures as {success, message, errors}."""
    config: Settings = request.app.state.settings
    if exc.status_code >= 500:
        logger.error(f"Contact form error: {exc.message} ({exc.__cause__})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response(debug=config.debug))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Please check the form for errors", "errors": errors},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=exc.headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")

    event_id = capture_exception(
        exc,
        extra={
            "request_method": request.method,
            "request_path": request.url.path,
        },
    )

    config: Settings = request.app.state.settings
    body = {"success": False, "message": "Internal server error"}
    if config.debug:
        body["error"] = str(exc)
    elif event_id:
        body["message"] = f"Internal server error (ref: {event_id})"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


async def log_requests(request: Request, call_next: RequestResponseEndpoint) -> Response:
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration_ms:.0f}ms")
    return response


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(
    config: Optional[Settings] = None,
    database: Optional[Database] = None,
    gateway: Optional[NotificationGateway] = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators are created from `config` unless supplied, and live on
    app.state for the request dependencies to pick up.
    """
    config = config or default_settings

    app = FastAPI(
        title=config.app_name,
        description="Portfolio backend: contact form with email notifications, projects and skills.",
        version=config.app_version,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        openapi_url="/openapi.json" if config.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.database = database or Database(config=config)
    app.state.gateway = gateway or NotificationGateway(config)
    app.state.templates = EmailTemplateService(config)

    # CORS
    allowed_origins = config.allowed_origin_list or [config.frontend_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    if config.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware)

    if config.log_requests:
        app.middleware("http")(log_requests)

    app.add_exception_handler(ContactPipelineError, pipeline_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health.router)
    app.include_router(contact.router)
    app.include_router(content.router)

    if config.dev_routes_enabled:
        logger.info("Development routes enabled at /api/dev")
        app.include_router(dev.router)

    return app


app = create_app()
