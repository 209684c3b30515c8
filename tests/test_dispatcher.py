import asyncio

import pytest

from call_logger.errors import ConfigurationError
from call_logger.services.dispatcher import EventDispatcher
from call_logger.services.live_updates import EVENT_CALL_DATA, EVENT_VAPI, LiveUpdateHub
from conftest import FakeSink, RecordingHub, StalledWebSocket, fixed_clock


def make_dispatcher(sink=None, hub=None):
    return EventDispatcher(hub=hub or RecordingHub(), sink=sink or FakeSink(), clock=fixed_clock)


@pytest.mark.asyncio
async def test_status_update_only_broadcasts():
    sink, hub = FakeSink(), RecordingHub()
    message = {"type": "status-update", "status": "in-progress", "call": {"id": "call_1"}}

    outcome = await make_dispatcher(sink, hub).dispatch(message)

    assert outcome.event_type == "status-update"
    assert outcome.call_result is None
    assert sink.results == []
    assert hub.frames == [(EVENT_VAPI, message)]


@pytest.mark.asyncio
@pytest.mark.parametrize("event_type", ["transcript", "call-end", "function-call", "hang", "speech-update"])
async def test_other_types_only_broadcast(event_type):
    sink, hub = FakeSink(), RecordingHub()
    message = {"type": event_type}

    outcome = await make_dispatcher(sink, hub).dispatch(message)

    assert outcome.event_type == event_type
    assert sink.results == []
    assert hub.events == [EVENT_VAPI]


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [None, {}, {"type": 5}, "garbage"])
async def test_malformed_message_is_broadcast_verbatim(message):
    hub = RecordingHub()

    outcome = await make_dispatcher(hub=hub).dispatch(message)

    assert outcome.event_type is None
    assert hub.frames == [(EVENT_VAPI, message)]


@pytest.mark.asyncio
async def test_end_of_call_report_logs_and_pushes(make_report, full_outputs):
    sink, hub = FakeSink(), RecordingHub()
    message = make_report(full_outputs)

    outcome = await make_dispatcher(sink, hub).dispatch(message)

    assert outcome.sink_written is True
    assert outcome.sink_error is None
    assert len(sink.results) == 1
    assert sink.results[0].customer_name == "Maria Lopez"
    assert sink.results[0].duration == 157

    assert hub.events == [EVENT_CALL_DATA, EVENT_VAPI]
    call_data = hub.frames[0][1]
    assert call_data["customerName"] == "Maria Lopez"
    assert call_data["feedbackScore"] == 9
    assert hub.frames[1][1] is message


@pytest.mark.asyncio
async def test_end_of_call_report_without_outputs_skips_sink(make_report):
    sink, hub = FakeSink(), RecordingHub()
    message = make_report()
    del message["artifact"]["structuredOutputs"]

    outcome = await make_dispatcher(sink, hub).dispatch(message)

    assert outcome.call_result is None
    assert sink.results == []
    assert hub.events == [EVENT_VAPI]


@pytest.mark.asyncio
async def test_sink_failure_still_pushes_to_viewers(make_report, full_outputs):
    hub = RecordingHub()

    outcome = await make_dispatcher(FakeSink(fail=True), hub).dispatch(make_report(full_outputs))

    assert outcome.sink_written is False
    assert outcome.sink_error == "Sheets API unavailable"
    assert outcome.call_result is not None
    assert hub.events == [EVENT_CALL_DATA, EVENT_VAPI]


@pytest.mark.asyncio
async def test_unconfigured_sheet_still_pushes_to_viewers(make_report, full_outputs):
    hub = RecordingHub()
    sink = FakeSink(error=ConfigurationError("Google Sheets is not configured."))

    outcome = await make_dispatcher(sink, hub).dispatch(make_report(full_outputs))

    assert outcome.sink_written is False
    assert outcome.sink_error == "Google Sheets is not configured."
    assert outcome.call_result.customer_name == "Maria Lopez"
    assert hub.events == [EVENT_CALL_DATA, EVENT_VAPI]


@pytest.mark.asyncio
async def test_stalled_viewer_does_not_block_dispatch():
    hub = LiveUpdateHub(send_timeout=0.05)
    stalled = StalledWebSocket()
    await hub.connect(stalled)

    outcome = await asyncio.wait_for(
        make_dispatcher(hub=hub).dispatch({"type": "status-update"}), timeout=1.0
    )

    assert outcome.event_type == "status-update"
    assert hub.connection_count == 0
