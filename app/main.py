"""
Run locally: uvicorn app.main:app --reload
Production: gunicorn -k uvicorn.workers.UvicornWorker -w 2 -b 0.0.0.0:8000 app.main:app
Example:
curl -X POST http://localhost:8000/handoff \
  -H "Content-Type: application/json" \
  -d '{"type":"human_handoff","name":"Jane Doe","email":"jane@example.com","message":"Call me back"}'
"""

import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import Settings, get_settings
from app.errors import ConfigurationError, HandoffError, UnexpectedError, ValidationError
from app.middleware import configure_middlewares, get_request_id
from app.models import ErrorResponse, HandoffPayload, HandoffResponse
from app.services import dispatch_handoff

settings = get_settings()


def configure_logging() -> None:
    """Configure application-wide structured logging."""

    level = settings.log_level.upper()
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": "app.middleware.RequestIdFilter"},
        },
        "formatters": {
            "json": {
                "()": "app.middleware.JsonFormatter",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {
            "": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
            "httpx": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        },
    }
    logging.config.dictConfig(logging_config)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    missing = get_settings().missing_handoff_settings
    if missing:
        logger.error("Handoff integrations are not configured", extra={"missing": missing})
    yield


openapi_tags = [
    {"name": "health", "description": "Service uptime checks."},
    {"name": "handoff", "description": "Lead handoff intake."},
]

app = FastAPI(
    title="Handoff Dispatch API",
    description="Accept lead handoffs and forward them to Slack and GoHighLevel.",
    version="1.0.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

limiter = configure_middlewares(app, settings)


def handoff_rate_limit() -> str:
    # Evaluated per request so the limit follows the current settings.
    return f"{get_settings().rate_limit_per_minute}/minute"


async def get_http_client(config: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """Outbound client shared by both dispatches of one request."""

    async with httpx.AsyncClient(timeout=config.http_timeout_seconds) as client:
        yield client


@app.exception_handler(HandoffError)
async def handoff_exception_handler(request: Request, exc: HandoffError) -> JSONResponse:
    """Render handoff errors with their client-safe message."""

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle controlled HTTP errors with sanitized payloads."""

    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    logger.warning(
        "HTTP exception raised",
        extra={"status_code": exc.status_code, "detail": detail},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler to avoid leaking internal details."""

    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Server error").model_dump(exclude_none=True),
    )


@app.get("/health", tags=["health"], response_model=dict)
async def health_check() -> dict[str, str]:
    """Return service health information."""

    return {"status": "success", "message": "OK"}


@app.post("/handoff", tags=["handoff"], response_model=HandoffResponse)
@limiter.limit(handoff_rate_limit)
async def create_handoff(
    request: Request,
    config: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> HandoffResponse:
    """Accept a handoff and forward it to Slack and the CRM.

    Downstream failures are logged only; the caller gets ``{"ok": true}`` once
    both dispatches have been attempted.
    """

    try:
        payload = HandoffPayload.model_validate(await request.json())
        if not payload.has_required_fields:
            logger.warning("Handoff rejected: missing name or email")
            raise ValidationError()

        missing = config.missing_handoff_settings
        if missing:
            logger.error("Handoff integrations are not configured", extra={"missing": missing})
            raise ConfigurationError(missing)

        logger.info(
            "Handoff accepted",
            extra={"lead_email": payload.email, "handoff_type": payload.type.value},
        )
        await dispatch_handoff(payload, config, client)
    except HandoffError:
        raise
    except Exception as exc:
        logger.exception("Failed to process handoff")
        raise UnexpectedError() from exc
    return HandoffResponse()


@app.get("/handoff", tags=["handoff"], status_code=405, response_model=ErrorResponse)
async def handoff_method_not_allowed() -> JSONResponse:
    """Handoffs are submitted with POST only."""

    return JSONResponse(status_code=405, content={"error": "Method Not Allowed"})


@app.middleware("http")
async def append_request_id_header(request: Request, call_next: Any):
    """Ensure every response includes the request id even after other middlewares."""

    response = await call_next(request)
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    if request_id:
        response.headers.setdefault("X-Request-ID", request_id)
    return response
