"""
Error taxonomy shared by the services and the API layer.

Routers map these onto HTTP responses; nothing here is retried.
"""

from __future__ import annotations

from typing import Any, Optional


class CallLoggerError(Exception):
    """Base class for every error raised by this service."""


class ConfigurationError(CallLoggerError):
    """A credential or key needed for the requested operation is missing."""


class UpstreamAPIError(CallLoggerError):
    """A delegated service (Vapi, 3CX, Google Sheets) answered with a failure."""

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.body = body


class CallNotFoundError(CallLoggerError):
    """The PBX reports no active call for the requested phone number."""


class SinkWriteError(CallLoggerError):
    """Appending a call result row to the spreadsheet failed."""
