"""
API Router: Browser Support.

Public configuration for the Vapi web SDK and a canned call result for
building the results panel without placing a real call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from call_logger.api.deps import AppServices, get_services
from call_logger.schemas.call_result import CallResult
from call_logger.services.reconciler import format_instant

router = APIRouter(prefix="/api", tags=["Frontend"])


@router.get("/config")
async def public_config(services: AppServices = Depends(get_services)) -> dict[str, Any]:
    """Keys the browser needs; the private key is never included."""
    settings = services.settings
    return {
        "publicKey": settings.vapi_public_key,
        "assistantId": settings.vapi_assistant_id,
        "phoneNumberId": settings.vapi_phone_number_id,
    }


@router.get("/test-call-results")
async def test_call_results() -> dict[str, Any]:
    sample = CallResult(
        customer_name="John Doe (Test)",
        call_timestamp=format_instant(datetime.now(timezone.utc)),
        policy_used="Premium Support Policy",
        rating=4,
        customer_feedback="The service was good, but I had to wait a bit longer than expected.",
        customer_sentiment="positive",
        feedback_score=8,
        feedback_summary=(
            "Customer was satisfied with the overall service quality. Main concern was wait "
            "time, but appreciated the thorough assistance provided. Would recommend to others."
        ),
        call_summary=(
            "Customer called regarding account upgrade. Successfully processed request and "
            "explained new benefits."
        ),
        callback=False,
        callback_attempt=1,
        duration=157,
    )
    return sample.to_payload()
