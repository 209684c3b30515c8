import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from call_logger.config import Settings
from call_logger.errors import SinkWriteError
from call_logger.services.live_updates import LiveUpdateHub

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeSink:
    """Collects appended results; optionally raises ``error`` on every append."""

    def __init__(self, fail: bool = False, error: Exception | None = None):
        if error is None and fail:
            error = SinkWriteError("Sheets API unavailable")
        self.error = error
        self.results = []

    async def append(self, result):
        if self.error is not None:
            raise self.error
        self.results.append(result)


class StalledWebSocket:
    """Viewer that accepts the greeting, then never finishes another send."""

    def __init__(self):
        self.sent = []

    async def accept(self):
        return None

    async def send_json(self, data):
        if self.sent:
            await asyncio.get_running_loop().create_future()
        self.sent.append(data)


class RecordingHub(LiveUpdateHub):
    """Hub that remembers every broadcast frame."""

    def __init__(self):
        super().__init__()
        self.frames: list[tuple[str, Any]] = []

    async def broadcast(self, event, data):
        self.frames.append((event, data))
        await super().broadcast(event, data)

    @property
    def events(self) -> list[str]:
        return [event for event, _ in self.frames]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        vapi_public_key="pk_test",
        vapi_private_key="sk_test",
        vapi_assistant_id="asst_123",
        vapi_phone_number_id="pn_456",
        cx_api_url="https://pbx.example.com",
        cx_username="admin",
        cx_password="secret",
    )


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def make_report():
    """Build an end-of-call-report message with sensible defaults."""

    def _make(
        outputs: Any = None,
        *,
        ended_reason: str = "hangup",
        started_at: Any = "2024-05-01T10:00:00.000Z",
        timestamp: Any = "2024-05-01T10:02:37.000Z",
        call: dict | None = None,
        artifact: dict | None = None,
    ) -> dict:
        call_obj = {
            "id": "call_abc",
            "endedReason": ended_reason,
            "customer": {"number": "+15125551234", "name": "Jonas Call"},
        }
        if started_at is not None:
            call_obj["startedAt"] = started_at
        call_obj.update(call or {})

        artifact_obj = {
            "structuredOutputs": outputs if outputs is not None else [],
            "summary": "Provider summary of the call.",
            "transcript": "AI: Hello\nUser: Hi",
            "stereoRecordingUrl": "https://storage.vapi.ai/rec.wav",
        }
        artifact_obj.update(artifact or {})

        message = {"type": "end-of-call-report", "call": call_obj, "artifact": artifact_obj}
        if timestamp is not None:
            message["timestamp"] = timestamp
        return message

    return _make


@pytest.fixture
def full_outputs():
    """Structured outputs keyed by id, the way Vapi usually sends them."""
    return {
        "so_1": {"name": "Customer Name", "result": "Maria Lopez"},
        "so_2": {"name": "Policy Used", "result": "Gold Plan"},
        "so_3": {"name": "Rating", "result": 4},
        "so_4": {"name": "Customer Feedback", "result": "Quick and friendly."},
        "so_5": {"name": "Customer Sentiment", "result": "positive"},
        "so_6": {"name": "Feedback Score", "result": 9},
        "so_7": {"name": "Feedback Summary", "result": "Happy overall."},
        "so_8": {"name": "Call Summary", "result": "Renewed policy."},
        "so_9": {"name": "Callback", "result": True},
        "so_10": {"name": "Callback Schedule", "result": "2024-05-03T15:00:00Z"},
        "so_11": {"name": "Callback Attempt", "result": 2},
    }
