"""
Call Result Reconciliation.

Turns a Vapi ``end-of-call-report`` message into a ``CallResult``.
Each field is taken from the structured outputs by its human label,
then from a field-specific fallback on the call or artifact, then
from the type default, so the record is always fully populated.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from call_logger.logging_config import get_logger
from call_logger.schemas.call_result import CallResult
from call_logger.schemas.vapi import VapiMessage
from call_logger.services.structured_outputs import StructuredOutputs, flatten

logger = get_logger(__name__)

Clock = Callable[[], datetime]

# Human labels configured on the Vapi structured outputs
LABEL_CUSTOMER_NAME = "Customer Name"
LABEL_POLICY_USED = "Policy Used"
LABEL_RATING = "Rating"
LABEL_CUSTOMER_FEEDBACK = "Customer Feedback"
LABEL_CUSTOMER_SENTIMENT = "Customer Sentiment"
LABEL_FEEDBACK_SCORE = "Feedback Score"
LABEL_FEEDBACK_SUMMARY = "Feedback Summary"
LABEL_CALL_SUMMARY = "Call Summary"
LABEL_CALLBACK = "Callback"
LABEL_CALLBACK_SCHEDULE = "Callback Schedule"
LABEL_CALLBACK_ATTEMPT = "Callback Attempt"

# Only a normal hangup yields a duration; 0 marks an abnormal end.
NORMAL_END_REASON = "hangup"

_TRUE_STRINGS = {"true", "yes", "y", "1"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _section(source: Any, key: str) -> Mapping[str, Any]:
    value = source.get(key) if isinstance(source, Mapping) else None
    return value if isinstance(value, Mapping) else {}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _first(*candidates: Any, default: Any = "") -> Any:
    for candidate in candidates:
        if _present(candidate):
            return candidate
    return default


def _text(value: Any) -> str:
    if not _present(value):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list)):
        return json.dumps(value)
    return str(value)


def _score(value: Any) -> Any:
    if not _present(value):
        return ""
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        return value
    return _text(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _whole_number(value: Any, default: int, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not _present(value):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    if minimum is not None and number < minimum:
        return default
    return number


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or epoch milliseconds into an aware UTC datetime.

    Returns None for anything else.
    """
    if isinstance(value, bool) or not _present(value):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def format_instant(moment: datetime) -> str:
    """Millisecond-precision UTC timestamp with a ``Z`` suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_call_timestamp(message: VapiMessage, clock: Clock = utcnow) -> str:
    """Call start time, else the event time, else now."""
    call = _section(message, "call")
    for candidate in (call.get("startedAt"), message.get("timestamp")):
        moment = parse_instant(candidate)
        if moment is not None:
            return format_instant(moment)
    return format_instant(clock())


def compute_duration(message: VapiMessage, call_timestamp: str) -> int:
    """
    Whole seconds between the call start and the event, for hangups only.

    Any other end reason, or an unreadable event time, gives 0.
    """
    call = _section(message, "call")
    if call.get("endedReason") != NORMAL_END_REASON:
        return 0

    ended = parse_instant(message.get("timestamp"))
    started = parse_instant(call_timestamp)
    if ended is None or started is None:
        return 0

    elapsed_ms = (ended - started) / timedelta(milliseconds=1)
    # Round half up
    seconds = math.floor(elapsed_ms / 1000 + 0.5)
    return max(0, seconds)


def has_structured_outputs(message: Any) -> bool:
    """True when the message carries a list- or object-shaped structuredOutputs."""
    raw = _section(message, "artifact").get("structuredOutputs")
    return isinstance(raw, (Mapping, list, tuple))


def _caller_supplied_name(call: Mapping[str, Any]) -> Any:
    variables = _section(call, "variables")
    overrides = _section(_section(call, "assistantOverrides"), "variableValues")
    return _first(variables.get("customerName"), overrides.get("customerName"), default=None)


def build_call_result(
    message: VapiMessage,
    clock: Clock = utcnow,
) -> Optional[CallResult]:
    """
    Reconcile an end-of-call report into a CallResult.

    Returns None, without touching anything, when the report carries no
    structured outputs.
    """
    if not has_structured_outputs(message):
        return None

    artifact = _section(message, "artifact")
    call = _section(message, "call")
    outputs: StructuredOutputs = flatten(artifact.get("structuredOutputs"))

    logger.info("structured_outputs_found", count=len(outputs), names=list(outputs.as_dict()))

    customer = _section(call, "customer")
    call_timestamp = resolve_call_timestamp(message, clock)

    explicit_callback = outputs.get(LABEL_CALLBACK)

    return CallResult(
        customer_name=_text(
            _first(
                outputs.get(LABEL_CUSTOMER_NAME),
                customer.get("name"),
                _caller_supplied_name(call),
            )
        ),
        call_timestamp=call_timestamp,
        policy_used=_text(outputs.get(LABEL_POLICY_USED)),
        rating=_score(outputs.get(LABEL_RATING)),
        customer_feedback=_text(outputs.get(LABEL_CUSTOMER_FEEDBACK)),
        customer_sentiment=_text(outputs.get(LABEL_CUSTOMER_SENTIMENT)),
        feedback_score=_score(outputs.get(LABEL_FEEDBACK_SCORE)),
        feedback_summary=_text(outputs.get(LABEL_FEEDBACK_SUMMARY)),
        call_summary=_text(_first(outputs.get(LABEL_CALL_SUMMARY), artifact.get("summary"))),
        callback=False if explicit_callback is None else _flag(explicit_callback),
        callback_schedule=_text(outputs.get(LABEL_CALLBACK_SCHEDULE)),
        callback_attempt=_whole_number(outputs.get(LABEL_CALLBACK_ATTEMPT), default=1, minimum=1),
        duration=compute_duration(message, call_timestamp),
        transcript_text=_text(_first(artifact.get("transcript"), call.get("transcript"))),
        stereo_recording_url=_text(
            _first(artifact.get("stereoRecordingUrl"), call.get("stereoRecordingUrl"))
        ),
    )
