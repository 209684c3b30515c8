"""
API Router: Phone Call Endpoints.

Starts outbound calls through Vapi, force-ends them through 3CX, and
exposes the active-call registry kept up to date by live viewers.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from call_logger.api.deps import AppServices, get_services
from call_logger.errors import CallNotFoundError, ConfigurationError, UpstreamAPIError
from call_logger.logging_config import get_logger
from call_logger.schemas.call import EndPhoneCallRequest, StartPhoneCallRequest

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Calls"])


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.post("/start-phone-call")
async def start_phone_call(
    body: StartPhoneCallRequest,
    services: AppServices = Depends(get_services),
) -> Any:
    """Dial a customer from the configured Vapi phone number."""
    if not body.customerName or not body.phoneNumber:
        return _failure(400, "Customer name and phone number are required")

    try:
        call_id = await services.vapi.start_phone_call(body.customerName, body.phoneNumber)
    except (ConfigurationError, UpstreamAPIError) as e:
        logger.error("start_phone_call_error", phone_number=body.phoneNumber, error=str(e))
        return _failure(500, str(e) or "Failed to initiate phone call")

    return {
        "success": True,
        "callId": call_id,
        "message": "Phone call initiated successfully",
    }


@router.delete("/end-phone-call/{call_id}")
async def end_phone_call(
    call_id: str,
    body: EndPhoneCallRequest | None = None,
    services: AppServices = Depends(get_services),
) -> Any:
    """Disconnect an active phone call through the 3CX PBX."""
    phone_number = body.phoneNumber if body else None
    if not phone_number:
        return _failure(400, "Phone number is required to disconnect call")

    try:
        await services.pbx.hang_up(phone_number)
    except CallNotFoundError as e:
        return _failure(404, str(e))
    except (ConfigurationError, UpstreamAPIError) as e:
        logger.error("end_phone_call_error", call_id=call_id, phone_number=phone_number, error=str(e))
        return _failure(500, str(e) or "Failed to disconnect phone call")

    return {
        "success": True,
        "message": "Phone call disconnected successfully via 3CX",
    }


@router.get("/active-calls")
async def list_active_calls(services: AppServices = Depends(get_services)) -> dict[str, Any]:
    """Snapshot of calls started from the browser and their status."""
    calls = await services.registry.all()
    return {
        "data": {call_id: call.model_dump(mode="json") for call_id, call in calls.items()},
        "total": len(calls),
    }
