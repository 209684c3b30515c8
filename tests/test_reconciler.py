import pytest
from pydantic import ValidationError

from call_logger.services.reconciler import (
    build_call_result,
    compute_duration,
    format_instant,
    has_structured_outputs,
    parse_instant,
    resolve_call_timestamp,
)
from conftest import FIXED_NOW, fixed_clock


class TestGate:
    def test_no_artifact_means_no_result(self):
        assert build_call_result({"type": "end-of-call-report", "call": {"id": "c"}}) is None

    def test_missing_structured_outputs_means_no_result(self, make_report):
        message = make_report()
        del message["artifact"]["structuredOutputs"]
        assert build_call_result(message) is None

    @pytest.mark.parametrize("raw", [None, "text", 3])
    def test_malformed_structured_outputs_means_no_result(self, make_report, raw):
        message = make_report()
        message["artifact"]["structuredOutputs"] = raw
        assert has_structured_outputs(message) is False
        assert build_call_result(message) is None

    def test_empty_list_still_reconciles(self, make_report):
        result = build_call_result(make_report([]), clock=fixed_clock)
        assert result is not None
        assert result.customer_name == "Jonas Call"


class TestFields:
    def test_full_mapping_payload(self, make_report, full_outputs):
        result = build_call_result(make_report(full_outputs), clock=fixed_clock)
        assert result.customer_name == "Maria Lopez"
        assert result.policy_used == "Gold Plan"
        assert result.rating == 4
        assert result.customer_feedback == "Quick and friendly."
        assert result.customer_sentiment == "positive"
        assert result.feedback_score == 9
        assert result.feedback_summary == "Happy overall."
        assert result.call_summary == "Renewed policy."
        assert result.callback is True
        assert result.callback_schedule == "2024-05-03T15:00:00Z"
        assert result.callback_attempt == 2
        assert result.transcript_text == "AI: Hello\nUser: Hi"
        assert result.stereo_recording_url == "https://storage.vapi.ai/rec.wav"

    def test_defaults_when_nothing_extracted(self, make_report):
        message = make_report(
            [],
            call={"customer": {}},
            artifact={"summary": "", "transcript": "", "stereoRecordingUrl": ""},
        )
        result = build_call_result(message, clock=fixed_clock)
        assert result.customer_name == ""
        assert result.policy_used == ""
        assert result.rating == ""
        assert result.feedback_score == ""
        assert result.call_summary == ""
        assert result.callback is False
        assert result.callback_schedule == ""
        assert result.callback_attempt == 1
        assert result.transcript_text == ""
        assert result.stereo_recording_url == ""

    def test_result_is_immutable(self, make_report):
        result = build_call_result(make_report([]), clock=fixed_clock)
        with pytest.raises(ValidationError):
            result.customer_name = "changed"


class TestCustomerName:
    def test_structured_output_wins(self, make_report):
        result = build_call_result(make_report([{"name": "Customer Name", "result": "From AI"}]))
        assert result.customer_name == "From AI"

    def test_falls_back_to_call_customer(self, make_report):
        result = build_call_result(make_report([{"name": "Customer Name", "result": ""}]))
        assert result.customer_name == "Jonas Call"

    def test_falls_back_to_call_variables(self, make_report):
        message = make_report([], call={"customer": {"number": "+1"}, "variables": {"customerName": "Var Name"}})
        assert build_call_result(message).customer_name == "Var Name"

    def test_falls_back_to_assistant_override_variables(self, make_report):
        message = make_report(
            [],
            call={
                "customer": {"number": "+1"},
                "assistantOverrides": {"variableValues": {"customerName": "Override Name"}},
            },
        )
        assert build_call_result(message).customer_name == "Override Name"

    def test_empty_when_no_source(self, make_report):
        message = make_report([], call={"customer": None})
        assert build_call_result(message).customer_name == ""


class TestCallSummary:
    def test_falls_back_to_provider_summary(self, make_report):
        result = build_call_result(make_report([]))
        assert result.call_summary == "Provider summary of the call."

    def test_structured_output_wins(self, make_report):
        result = build_call_result(make_report([{"name": "call summary", "result": "Mine"}]))
        assert result.call_summary == "Mine"


class TestCallback:
    def test_explicit_false_is_preserved(self, make_report):
        result = build_call_result(make_report([{"name": "Callback", "result": False}]))
        assert result.callback is False

    def test_missing_defaults_to_false(self, make_report):
        assert build_call_result(make_report([])).callback is False

    def test_true(self, make_report):
        assert build_call_result(make_report([{"name": "Callback", "result": True}])).callback is True

    @pytest.mark.parametrize("raw,expected", [("true", True), ("Yes", True), ("false", False), ("no", False)])
    def test_string_flags(self, make_report, raw, expected):
        result = build_call_result(make_report([{"name": "Callback", "result": raw}]))
        assert result.callback is expected

    @pytest.mark.parametrize(
        "raw,expected",
        [(None, 1), ("", 1), ("3", 3), (2.0, 2), ("soon", 1), (0, 1), ("0", 1), (-2, 1), (0.5, 1)],
    )
    def test_callback_attempt(self, make_report, raw, expected):
        result = build_call_result(make_report([{"name": "Callback Attempt", "result": raw}]))
        assert result.callback_attempt == expected


class TestScores:
    def test_rating_has_no_secondary_fallback(self, make_report):
        message = make_report([], call={"rating": 5})
        assert build_call_result(message).rating == ""

    def test_zero_feedback_score_is_kept(self, make_report):
        result = build_call_result(make_report([{"name": "Feedback Score", "result": 0}]))
        assert result.feedback_score == 0

    def test_object_results_become_text(self, make_report):
        result = build_call_result(make_report([{"name": "Customer Feedback", "result": {"likes": "speed"}}]))
        assert result.customer_feedback == '{"likes": "speed"}'


class TestTimestamp:
    def test_started_at_is_normalized(self):
        message = {"call": {"startedAt": "2024-05-01T10:00:00Z"}, "timestamp": "2024-05-01T11:00:00Z"}
        assert resolve_call_timestamp(message) == "2024-05-01T10:00:00.000Z"

    def test_offset_is_converted_to_utc(self):
        message = {"call": {"startedAt": "2024-05-01T12:00:00.250+02:00"}}
        assert resolve_call_timestamp(message) == "2024-05-01T10:00:00.250Z"

    def test_falls_back_to_event_timestamp_in_epoch_ms(self):
        message = {"call": {}, "timestamp": 1714557600000}
        assert resolve_call_timestamp(message) == "2024-05-01T10:00:00.000Z"

    def test_falls_back_to_clock(self):
        assert resolve_call_timestamp({}, clock=fixed_clock) == format_instant(FIXED_NOW)

    def test_unparseable_start_is_skipped(self):
        message = {"call": {"startedAt": "yesterday"}, "timestamp": "2024-05-01T11:00:00Z"}
        assert resolve_call_timestamp(message) == "2024-05-01T11:00:00.000Z"

    @pytest.mark.parametrize("raw", [None, "", True, "not a date", {"at": 1}])
    def test_parse_instant_rejects(self, raw):
        assert parse_instant(raw) is None


class TestDuration:
    def test_hangup_computes_seconds(self, make_report):
        result = build_call_result(make_report([]))
        assert result.duration == 157

    @pytest.mark.parametrize(
        "reason", ["customer-ended-call", "assistant-ended-call", "silence-timed-out", "", "Hangup"]
    )
    def test_other_end_reasons_give_zero(self, make_report, reason):
        message = make_report([], ended_reason=reason, timestamp="2024-05-01T13:00:00Z")
        assert build_call_result(message).duration == 0

    def test_missing_end_reason_gives_zero(self):
        message = {"call": {"startedAt": "2024-05-01T10:00:00Z"}, "timestamp": "2024-05-01T10:05:00Z"}
        assert compute_duration(message, "2024-05-01T10:00:00.000Z") == 0

    @pytest.mark.parametrize(
        "end,expected",
        [
            ("2024-05-01T10:00:02.499Z", 2),
            ("2024-05-01T10:00:02.500Z", 3),
            ("2024-05-01T10:00:00.000Z", 0),
        ],
    )
    def test_rounding(self, end, expected):
        message = {"call": {"endedReason": "hangup"}, "timestamp": end}
        assert compute_duration(message, "2024-05-01T10:00:00.000Z") == expected

    def test_negative_elapsed_is_clamped(self):
        message = {"call": {"endedReason": "hangup"}, "timestamp": "2024-05-01T09:59:00Z"}
        assert compute_duration(message, "2024-05-01T10:00:00.000Z") == 0

    def test_epoch_event_timestamp(self):
        message = {"call": {"endedReason": "hangup"}, "timestamp": 1714557600000 + 61_400}
        assert compute_duration(message, "2024-05-01T10:00:00.000Z") == 61

    def test_unreadable_event_timestamp_gives_zero(self, make_report):
        message = make_report([], timestamp="garbage")
        assert build_call_result(message).duration == 0


class TestArtifactFallbacks:
    def test_transcript_and_recording_fall_back_to_call(self, make_report):
        message = make_report(
            [],
            artifact={"transcript": "", "stereoRecordingUrl": None},
            call={"transcript": "legacy transcript", "stereoRecordingUrl": "https://legacy/rec.wav"},
        )
        result = build_call_result(message)
        assert result.transcript_text == "legacy transcript"
        assert result.stereo_recording_url == "https://legacy/rec.wav"
