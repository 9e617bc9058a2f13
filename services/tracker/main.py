"""
Balloon tracker FastAPI service: hourly balloon tracks enriched with weather.

Entrypoint: uvicorn services.tracker.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response
from starlette.responses import JSONResponse

from services.tracker.config import settings
from services.tracker.enrichment import BalloonHistoryService
from services.tracker.middleware.cors import setup_cors
from services.tracker.middleware.sentry import setup_sentry
from services.tracker.redis_client import connect_redis
from services.tracker.routers import balloon_history, health

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    redis_client = await connect_redis(settings.redis_url)
    http_client = httpx.AsyncClient(
        headers={"User-Agent": f"{settings.app_name}/{settings.app_version}"},
        follow_redirects=True,
    )

    app.state.redis = redis_client
    app.state.http = http_client
    app.state.settings = settings
    app.state.balloon_service = BalloonHistoryService.from_settings(
        settings, http=http_client, redis=redis_client
    )

    yield

    await http_client.aclose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Balloon Tracker API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(balloon_history.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Resource not found."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )
