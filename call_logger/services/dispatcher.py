"""
Vapi Event Dispatcher.

Routes one webhook message to the handler registered for its ``type``.
Only ``end-of-call-report`` builds a CallResult, appends it to the
sheet and pushes it to viewers; every message, whatever its type, is
then broadcast verbatim as a ``vapi-event``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from call_logger.errors import ConfigurationError, SinkWriteError
from call_logger.logging_config import call_context, get_logger
from call_logger.schemas.call_result import CallResult
from call_logger.schemas.vapi import MessageType
from call_logger.services.live_updates import EVENT_CALL_DATA, EVENT_VAPI, LiveUpdateHub
from call_logger.services.reconciler import Clock, utcnow, build_call_result
from call_logger.services.sheets import ResultSink

logger = get_logger(__name__)


@dataclass
class DispatchOutcome:
    event_type: Optional[str]
    call_result: Optional[CallResult] = None
    sink_written: bool = False
    sink_error: Optional[str] = None


Handler = Callable[[Mapping[str, Any], DispatchOutcome], Awaitable[None]]


def _call_id(message: Mapping[str, Any]) -> str:
    call = message.get("call")
    if isinstance(call, Mapping) and call.get("id"):
        return str(call["id"])
    return ""


class EventDispatcher:
    """Discriminated dispatch over Vapi server messages."""

    def __init__(
        self,
        *,
        hub: LiveUpdateHub,
        sink: ResultSink,
        clock: Clock = utcnow,
    ) -> None:
        self.hub = hub
        self.sink = sink
        self.clock = clock
        self._handlers: dict[MessageType, Handler] = {
            "status-update": self._on_status_update,
            "transcript": self._on_transcript,
            "end-of-call-report": self._on_end_of_call_report,
            "call-end": self._on_call_end,
            "function-call": self._on_function_call,
        }

    async def dispatch(self, message: Any) -> DispatchOutcome:
        """Handle one message and broadcast it; unknown types only broadcast."""
        body: Mapping[str, Any] = message if isinstance(message, Mapping) else {}
        event_type = body.get("type") if isinstance(body.get("type"), str) else None

        outcome = DispatchOutcome(event_type=event_type)

        with call_context(_call_id(body)):
            handler = self._handlers.get(event_type or "", self._on_other)
            await handler(body, outcome)

            await self.hub.broadcast(EVENT_VAPI, message)
        return outcome

    # -- Handlers --

    async def _on_status_update(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        call = message.get("call") if isinstance(message.get("call"), Mapping) else {}
        logger.info("call_status_update", status=call.get("status") or message.get("status"))

    async def _on_transcript(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        logger.info("call_transcript", role=message.get("role"), transcript=message.get("transcript"))

    async def _on_call_end(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        logger.info("call_end_received")

    async def _on_function_call(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        logger.info("function_call_received", function_call=message.get("functionCall"))

    async def _on_other(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        logger.info("other_message_type", event_type=outcome.event_type)

    async def _on_end_of_call_report(self, message: Mapping[str, Any], outcome: DispatchOutcome) -> None:
        result = build_call_result(message, clock=self.clock)
        if result is None:
            logger.warning("end_of_call_report_without_structured_outputs")
            return

        outcome.call_result = result
        logger.info("call_result_prepared", customer_name=result.customer_name, duration=result.duration)

        try:
            await self.sink.append(result)
            outcome.sink_written = True
        except (SinkWriteError, ConfigurationError) as e:
            # Webhook is still acknowledged
            outcome.sink_error = str(e)
            logger.error("sheet_log_from_webhook_failed", event_type=outcome.event_type, error=str(e))

        await self.hub.broadcast(EVENT_CALL_DATA, result.to_payload())
