"""
Vapi REST Client.

Starts outbound phone calls with the server-held private key. The
browser only ever sees the public key (see ``/api/config``).
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from call_logger.config import Settings
from call_logger.errors import ConfigurationError, UpstreamAPIError
from call_logger.logging_config import get_logger

logger = get_logger(__name__)


class VapiClient:
    def __init__(
        self,
        *,
        private_key: str,
        assistant_id: str,
        phone_number_id: str,
        api_url: str = "https://api.vapi.ai",
        timeout: Optional[float] = None,
    ) -> None:
        self.private_key = private_key
        self.assistant_id = assistant_id
        self.phone_number_id = phone_number_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> VapiClient:
        return cls(
            private_key=settings.vapi_private_key,
            assistant_id=settings.vapi_assistant_id,
            phone_number_id=settings.vapi_phone_number_id,
            api_url=settings.vapi_api_url,
            timeout=settings.http_timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.private_key}",
            "Content-Type": "application/json",
        }

    def build_phone_call_payload(self, customer_name: str, phone_number: str) -> dict[str, Any]:
        return {
            "assistantId": self.assistant_id,
            "phoneNumberId": self.phone_number_id,
            "customer": {
                "number": phone_number,
                "name": customer_name,
            },
            # Lets the assistant greet by name and gives the webhook a fallback name
            "assistantOverrides": {
                "variableValues": {
                    "customerName": customer_name,
                },
            },
        }

    async def start_phone_call(self, customer_name: str, phone_number: str) -> Optional[str]:
        """
        Ask Vapi to dial ``phone_number``.

        Returns the Vapi call id. Raises ConfigurationError when the
        private key is missing and UpstreamAPIError on a non-2xx reply.
        """
        if not self.private_key:
            raise ConfigurationError(
                "VAPI_PRIVATE_KEY is not configured. Phone calls require a private key."
            )

        logger.info("phone_call_requested", phone_number=phone_number, customer_name=customer_name)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.api_url}/call/phone",
                json=self.build_phone_call_payload(customer_name, phone_number),
                headers=self._headers(),
            )

        try:
            body: Any = response.json()
        except ValueError:
            body = {"message": response.text}

        if response.is_error:
            logger.error("vapi_api_error", status=response.status_code, body=body)
            message = body.get("message") if isinstance(body, dict) else None
            if isinstance(message, list):
                message = "; ".join(str(m) for m in message)
            raise UpstreamAPIError(
                message or "Failed to initiate call with Vapi",
                service="vapi",
                status_code=response.status_code,
                body=body,
            )

        call_id = None
        if isinstance(body, dict):
            call_id = body.get("id") or (body.get("call") or {}).get("id")
        logger.info("phone_call_initiated", vapi_call_id=call_id)
        return call_id
