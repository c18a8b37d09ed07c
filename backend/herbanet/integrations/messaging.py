# backend/herbanet/integrations/messaging.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from herbanet.core.config import settings
from herbanet.core.errors import UpstreamFailure, ValidationError
from herbanet.core.phone import normalize_indonesian_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MessagingGateway(Protocol):
    async def send_message(self, phone: str, text: str) -> SendResult: ...


class WablasMessagingGateway:
    """
    WhatsApp delivery through the Wablas HTTP API.
    Numbers are normalized to 62XXXXXXXXXX before anything goes on the wire.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.MESSAGING_API_BASE_URL).rstrip("/")
        self.token = token or settings.MESSAGING_API_TOKEN
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self._client = client

    async def send_message(self, phone: str, text: str) -> SendResult:
        number = normalize_indonesian_phone(phone)
        if not text or not text.strip():
            raise ValidationError("Message text is required")

        client = self._client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        try:
            resp = await client.post(
                "/send-message",
                json={"phone": number, "message": text},
                headers={"Authorization": self.token},
            )
        except httpx.TimeoutException as e:
            raise UpstreamFailure("Messaging gateway timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Messaging gateway unreachable: {e.__class__.__name__}") from e
        finally:
            if client is not self._client:
                await client.aclose()

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 400 or not body.get("status"):
            error = body.get("message") or f"HTTP {resp.status_code}"
            logger.warning("Message to %s not delivered: %s", number, error)
            return SendResult(success=False, error=str(error))

        messages = (body.get("data") or {}).get("messages") or []
        message_id = messages[0].get("id") if messages else None
        return SendResult(success=True, message_id=str(message_id) if message_id is not None else None)
