# backend/herbanet/integrations/transfer.py
"""
Bank transfer gateway used to pay out withdrawals.

The core only depends on the TransferGateway protocol; FlipTransferGateway is the
production adapter (disbursement API, HTTP basic auth with the secret key).
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

import httpx

from herbanet.core.config import settings
from herbanet.core.errors import UpstreamFailure, ValidationError
from herbanet.core.money import CENT, require_positive

logger = logging.getLogger(__name__)


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class TransferOrder:
    account_number: str
    bank_code: str
    amount: Decimal
    recipient_name: str
    remark: str
    idempotency_key: str


@dataclass(frozen=True)
class TransferResult:
    transfer_id: str
    status: TransferStatus
    fee: Optional[Decimal] = None


class TransferGateway(Protocol):
    async def transfer(self, order: TransferOrder) -> TransferResult: ...

    async def check_status(self, transfer_id: str) -> TransferStatus: ...


def compute_transfer_fee(
    amount,
    min_fee: Optional[Decimal] = None,
    rate: Optional[Decimal] = None,
) -> Decimal:
    """max(min_fee, amount * rate), rounded to the cent. Charged on top of the amount."""
    min_fee = settings.TRANSFER_MIN_FEE if min_fee is None else min_fee
    rate = settings.TRANSFER_FEE_RATE if rate is None else rate
    value = require_positive(amount)
    fee = max(Decimal(min_fee), value * Decimal(rate))
    return fee.quantize(CENT, rounding=ROUND_HALF_UP)


# Disbursement status -> our status; unknown values stay PENDING until reconciled.
_FLIP_STATUS = {
    "DONE": TransferStatus.SUCCESS,
    "SUCCESS": TransferStatus.SUCCESS,
    "CANCELLED": TransferStatus.FAILED,
    "FAILED": TransferStatus.FAILED,
}


class FlipTransferGateway:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.TRANSFER_API_BASE_URL).rstrip("/")
        self.api_key = api_key or settings.TRANSFER_API_KEY
        self.timeout = timeout or settings.GATEWAY_TIMEOUT_SECONDS
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, auth=(self.api_key, ""))

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        client = self._http()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamFailure("Transfer gateway timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Transfer gateway unreachable: {e.__class__.__name__}") from e
        finally:
            if client is not self._client:
                await client.aclose()

        if resp.status_code >= 400:
            logger.warning("Transfer gateway %s %s -> HTTP %s", method, path, resp.status_code)
            raise UpstreamFailure(f"Transfer gateway rejected the request (HTTP {resp.status_code})")
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamFailure("Transfer gateway returned an unreadable response") from e

    async def transfer(self, order: TransferOrder) -> TransferResult:
        if not order.account_number or not order.bank_code:
            raise ValidationError("Bank account number and bank code are required for a transfer")

        body = await self._request(
            "POST",
            "/disbursement",
            data={
                "account_number": order.account_number,
                "bank_code": order.bank_code,
                "amount": str(int(order.amount)),
                "remark": order.remark[:18],
                "recipient_name": order.recipient_name,
            },
            headers={"idempotency-key": order.idempotency_key},
        )
        transfer_id = body.get("id")
        if transfer_id is None:
            raise UpstreamFailure("Transfer gateway response has no transfer id")

        fee = body.get("fee")
        return TransferResult(
            transfer_id=str(transfer_id),
            status=_FLIP_STATUS.get(str(body.get("status", "")).upper(), TransferStatus.PENDING),
            fee=Decimal(str(fee)) if fee is not None else None,
        )

    async def check_status(self, transfer_id: str) -> TransferStatus:
        body = await self._request("GET", f"/disbursement/{transfer_id}")
        return _FLIP_STATUS.get(str(body.get("status", "")).upper(), TransferStatus.PENDING)
