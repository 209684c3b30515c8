"""
Google Sheets Sink.

Appends one row per call result to the configured spreadsheet. gspread
is synchronous, so each append runs in a worker thread. Writes are
best-effort: every failure surfaces as ``SinkWriteError`` and is never
retried here.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Protocol

import gspread
from google.oauth2.service_account import Credentials

from call_logger.config import Settings
from call_logger.errors import ConfigurationError, SinkWriteError
from call_logger.logging_config import get_logger
from call_logger.schemas.call_result import CallResult

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class ResultSink(Protocol):
    async def append(self, result: CallResult) -> None: ...


class SheetWriter:
    """Append-only writer for the call results sheet."""

    def __init__(
        self,
        *,
        credentials_json: str,
        spreadsheet_id: str,
        range_name: str = "Sheet1!A1:M",
    ) -> None:
        self.credentials_json = credentials_json
        self.spreadsheet_id = spreadsheet_id
        self.range_name = range_name
        self._client: Optional[gspread.Client] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SheetWriter:
        return cls(
            credentials_json=settings.google_credentials,
            spreadsheet_id=settings.google_sheet_id,
            range_name=settings.google_sheet_range,
        )

    def _get_client(self) -> gspread.Client:
        if self._client is not None:
            return self._client

        if not self.credentials_json or not self.spreadsheet_id:
            raise ConfigurationError(
                "Google Sheets is not configured. Set GOOGLE_CREDENTIALS and GOOGLE_SHEET_ID."
            )
        try:
            info = json.loads(self.credentials_json)
        except ValueError as e:
            raise ConfigurationError("GOOGLE_CREDENTIALS is not valid JSON") from e

        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        self._client = gspread.authorize(creds)
        logger.info("sheets_client_authorized", spreadsheet_id=self.spreadsheet_id)
        return self._client

    def _append_row(self, row: list[Any]) -> dict[str, Any]:
        spreadsheet = self._get_client().open_by_key(self.spreadsheet_id)
        return spreadsheet.values_append(
            self.range_name,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            body={"values": [row]},
        )

    async def append(self, result: CallResult) -> None:
        """Append ``result`` as a single row in column order A..M."""
        row = result.to_sheet_row()
        try:
            response = await asyncio.to_thread(self._append_row, row)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(
                "sheet_append_failed",
                customer_name=result.customer_name,
                error=str(e),
            )
            raise SinkWriteError(f"Failed to append row to Google Sheets: {e}") from e

        updated = (response or {}).get("updates", {}).get("updatedRange")
        logger.info("sheet_row_appended", customer_name=result.customer_name, range=updated)
