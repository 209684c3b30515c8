"""
Canonical call result record and its spreadsheet row layout.
"""

from __future__ import annotations

from typing import Any, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Sheet columns A..M. feedbackScore and feedbackSummary are broadcast but not logged.
SHEET_COLUMNS: tuple[str, ...] = (
    "customerName",
    "callTimestamp",
    "policyUsed",
    "rating",
    "customerFeedback",
    "customerSentiment",
    "callSummary",
    "callback",
    "callbackSchedule",
    "callbackAttempt",
    "duration",
    "transcriptText",
    "stereoRecordingUrl",
)

Score = Union[int, float, str]


class CallResult(BaseModel):
    """Outcome of one finished call, built once and never mutated."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    customer_name: str = ""
    call_timestamp: str = ""
    policy_used: str = ""
    rating: Score = ""
    customer_feedback: str = ""
    customer_sentiment: str = ""
    feedback_score: Score = ""
    feedback_summary: str = ""
    call_summary: str = ""
    callback: bool = False
    callback_schedule: str = ""
    callback_attempt: int = Field(default=1)
    duration: int = Field(default=0, ge=0)
    transcript_text: str = ""
    stereo_recording_url: str = ""

    @model_validator(mode="before")
    @classmethod
    def _nulls_take_defaults(cls, data: Any) -> Any:
        # Browsers post null for fields they never filled in.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict as sent to live viewers and HTTP clients."""
        return self.model_dump(by_alias=True)

    def to_sheet_row(self) -> list[Any]:
        """Values for columns A..M, in SHEET_COLUMNS order."""
        payload = self.to_payload()
        row = [payload[column] for column in SHEET_COLUMNS]
        row[SHEET_COLUMNS.index("callback")] = "TRUE" if self.callback else "FALSE"
        return row

    @classmethod
    def from_sheet_row(cls, row: Sequence[Any]) -> CallResult:
        """Rebuild a result from a row read back by column position."""
        if len(row) != len(SHEET_COLUMNS):
            raise ValueError(
                f"Expected {len(SHEET_COLUMNS)} columns, got {len(row)}"
            )
        values = dict(zip(SHEET_COLUMNS, row))
        values["callback"] = str(values["callback"]).upper() == "TRUE"
        return cls.model_validate(values)
