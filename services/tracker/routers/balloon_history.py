"""
Balloon history router.

GET /balloon-history
  -> {"success": true, "data": {generatedAt, points, balloons, latestWeather}, "requestId"}

Partial upstream failures are absorbed inside the pipeline and show up only
as fewer points / fewer weather entries. The 500 below is reserved for the
pipeline itself blowing up.
"""

import logging

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_NO_STORE = {"Cache-Control": "no-store, max-age=0, must-revalidate"}


@router.get("/balloon-history")
async def balloon_history(request: Request) -> JSONResponse:
    service = request.app.state.balloon_service
    request_id = request.state.request_id

    try:
        history = await service.build()
        return JSONResponse(
            status_code=200,
            content={"success": True, "data": history.to_dict(), "requestId": request_id},
            headers=_NO_STORE,
        )
    except Exception:
        logger.exception("balloon-history build failed (request_id=%s)", request_id)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": "BALLOON_HISTORY_UNAVAILABLE",
                    "message": "Could not build balloon history.",
                },
                "requestId": request_id,
            },
            headers=_NO_STORE,
        )
