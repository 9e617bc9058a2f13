"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    redis = getattr(request.app.state, "redis", None)
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "version": request.app.state.settings.app_version,
            "cache": "connected" if redis is not None else "disabled",
        },
        "requestId": request.state.request_id,
    }
