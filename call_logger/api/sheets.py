"""
API Router: Spreadsheet Logging.

Direct append of a call result, used by the browser after a web call
ends. Unlike the webhook path, failures are reported to the caller.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from call_logger.api.deps import AppServices, get_services
from call_logger.errors import ConfigurationError, SinkWriteError
from call_logger.logging_config import get_logger
from call_logger.schemas.call_result import CallResult

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Sheets"])


@router.post("/log-to-sheets")
async def log_to_sheets(
    result: CallResult,
    services: AppServices = Depends(get_services),
) -> Any:
    """Append one call result row to the sheet."""
    logger.info("log_to_sheets_requested", customer_name=result.customer_name)

    try:
        await services.sink.append(result)
    except (SinkWriteError, ConfigurationError) as e:
        logger.error("log_to_sheets_error", customer_name=result.customer_name, error=str(e))
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {"success": True}
