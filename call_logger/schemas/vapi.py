"""TypedDict definitions for the Vapi server-message webhook.

Only the keys read by this service are listed. Vapi sends many more, and
every key may be absent, so the reconciler reads these with ``.get``.
"""

from typing import Any, Literal, TypedDict, Union


class VapiCustomer(TypedDict, total=False):
    number: str
    name: str


class VapiCall(TypedDict, total=False):
    id: str
    status: str
    startedAt: Union[str, int, float]
    endedReason: str
    customer: VapiCustomer
    variables: dict[str, Any]
    assistantOverrides: dict[str, Any]
    transcript: str
    stereoRecordingUrl: str


class VapiStructuredOutput(TypedDict, total=False):
    name: str
    result: Any


class VapiArtifact(TypedDict, total=False):
    structuredOutputs: Union[list[VapiStructuredOutput], dict[str, VapiStructuredOutput]]
    summary: str
    transcript: str
    stereoRecordingUrl: str


MessageType = Literal[
    "status-update",
    "transcript",
    "end-of-call-report",
    "call-end",
    "function-call",
]


class VapiMessage(TypedDict, total=False):
    type: str
    timestamp: Union[str, int, float]
    call: VapiCall
    artifact: VapiArtifact
    role: str
    transcript: str
    functionCall: dict[str, Any]
