"""
3CX Call Control Client.

Force-disconnects an active phone call through the PBX REST API. Each
hang-up is a fresh session: log in with username/password, list active
calls, pick the one whose remote party matches the phone number, then
issue DisconnectCall.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import httpx

from call_logger.config import Settings
from call_logger.errors import CallNotFoundError, ConfigurationError, UpstreamAPIError
from call_logger.logging_config import get_logger

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")


def find_call_by_number(
    active_calls: list[dict[str, Any]],
    phone_number: str,
) -> Optional[dict[str, Any]]:
    """
    First active call whose ``OtherPartyNumber`` is the phone number or
    contains its digits.
    """
    digits = _NON_DIGITS.sub("", phone_number)
    for call in active_calls:
        other = call.get("OtherPartyNumber")
        if not isinstance(other, str):
            continue
        if other == phone_number or (digits and digits in other):
            return call
    return None


class ThreeCXClient:
    def __init__(
        self,
        *,
        api_url: str,
        username: str,
        password: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> ThreeCXClient:
        return cls(
            api_url=settings.cx_api_url,
            username=settings.cx_username,
            password=settings.cx_password,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.username and self.password)

    async def _login(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            f"{self.api_url}/api/login",
            json={"username": self.username, "password": self.password},
        )
        if response.is_error:
            logger.error("pbx_login_failed", status=response.status_code)
            raise UpstreamAPIError(
                "Failed to authenticate with 3CX",
                service="3cx",
                status_code=response.status_code,
            )
        data = response.json()
        session_id = data.get("SessionId") if isinstance(data, dict) else None
        if not session_id:
            raise UpstreamAPIError("3CX login returned no session", service="3cx")
        return session_id

    async def _active_calls(self, client: httpx.AsyncClient, session_id: str) -> list[dict[str, Any]]:
        response = await client.get(
            f"{self.api_url}/api/ActiveCalls",
            headers={"Cookie": f"session={session_id}"},
        )
        if response.is_error:
            logger.error("pbx_active_calls_failed", status=response.status_code)
            raise UpstreamAPIError(
                "Failed to get active calls from 3CX",
                service="3cx",
                status_code=response.status_code,
            )
        calls = response.json()
        return calls if isinstance(calls, list) else []

    async def _disconnect(self, client: httpx.AsyncClient, session_id: str, pbx_call_id: Any) -> None:
        response = await client.post(
            f"{self.api_url}/api/DisconnectCall",
            json={"CallId": pbx_call_id},
            headers={"Cookie": f"session={session_id}"},
        )
        if response.is_error:
            logger.error("pbx_disconnect_failed", status=response.status_code, pbx_call_id=pbx_call_id)
            raise UpstreamAPIError(
                "Failed to disconnect call via 3CX",
                service="3cx",
                status_code=response.status_code,
            )

    async def hang_up(self, phone_number: str) -> Any:
        """
        Disconnect the active call with ``phone_number``.

        Returns the PBX call id that was disconnected. Raises
        CallNotFoundError when no active call matches.
        """
        if not self.configured:
            raise ConfigurationError(
                "3CX credentials not configured. Please set CX_API_URL, CX_USERNAME, and CX_PASSWORD"
            )

        logger.info("pbx_hang_up_requested", phone_number=phone_number)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            session_id = await self._login(client)
            active_calls = await self._active_calls(client, session_id)

            target = find_call_by_number(active_calls, phone_number)
            if target is None:
                logger.warning("pbx_call_not_found", phone_number=phone_number, active=len(active_calls))
                raise CallNotFoundError("Call not found in active calls")

            await self._disconnect(client, session_id, target.get("Id"))

        logger.info("pbx_call_disconnected", pbx_call_id=target.get("Id"))
        return target.get("Id")
