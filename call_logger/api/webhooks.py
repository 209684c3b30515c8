"""
API Router: Vapi Webhook.

Vapi posts every server message here as ``{"message": {...}}``. The
endpoint acknowledges with 200 once the message has been dispatched,
including when the sheet append failed, so Vapi does not redeliver.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from call_logger.api.deps import AppServices, get_services
from call_logger.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/webhook", tags=["Webhooks"])


@router.post("/vapi")
async def vapi_webhook(
    request: Request,
    services: AppServices = Depends(get_services),
) -> Any:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")

    message = body.get("message") if isinstance(body, dict) else None
    event_type = message.get("type") if isinstance(message, dict) else None
    logger.info("webhook_received", event_type=event_type)

    try:
        outcome = await services.dispatcher.dispatch(message)
    except Exception as e:
        logger.error("webhook_processing_error", event_type=event_type, error=str(e), exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    logger.info(
        "webhook_processed",
        event_type=outcome.event_type,
        call_result=outcome.call_result is not None,
        sink_written=outcome.sink_written,
    )
    return {"received": True}
