# tests/test_gateways.py
from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from herbanet.core.errors import UpstreamFailure, ValidationError
from herbanet.core.notifications import Notifier
from herbanet.core.phone import normalize_indonesian_phone
from herbanet.integrations.messaging import WablasMessagingGateway
from herbanet.integrations.transfer import (
    FlipTransferGateway,
    TransferOrder,
    TransferStatus,
    compute_transfer_fee,
)


@pytest.mark.parametrize(
    "raw",
    ["081234567890", "81234567890", "6281234567890", "+62 812-3456-7890", "0812.3456.7890"],
)
def test_phone_normalization_accepts_common_forms(raw):
    assert normalize_indonesian_phone(raw) == "6281234567890"


@pytest.mark.parametrize("raw", ["", "   ", None, "021-555-1234", "0812", "08123456789012345", "08abc"])
def test_phone_normalization_rejects(raw):
    with pytest.raises(ValidationError):
        normalize_indonesian_phone(raw)


def test_transfer_fee_has_floor_and_rate():
    assert compute_transfer_fee("100000", min_fee=Decimal("2500"), rate=Decimal("0.003")) == Decimal("2500.00")
    assert compute_transfer_fee("2000000", min_fee=Decimal("2500"), rate=Decimal("0.003")) == Decimal("6000.00")
    assert compute_transfer_fee("1234567", min_fee=Decimal("0"), rate=Decimal("0.003")) == Decimal("3703.70")
    with pytest.raises(ValidationError):
        compute_transfer_fee("0")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://gateway.test")


@pytest.mark.asyncio
async def test_messaging_sends_normalized_number():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": True, "data": {"messages": [{"id": "abc-1"}]}})

    async with _client(handler) as client:
        gateway = WablasMessagingGateway(token="secret", client=client)
        result = await gateway.send_message("0812 3456 7890", "Halo")

    assert result.success is True
    assert result.message_id == "abc-1"
    assert seen == {"auth": "secret", "body": {"phone": "6281234567890", "message": "Halo"}}


@pytest.mark.asyncio
async def test_messaging_validates_before_network():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"status": True})

    async with _client(handler) as client:
        gateway = WablasMessagingGateway(token="secret", client=client)
        with pytest.raises(ValidationError):
            await gateway.send_message("12345", "Halo")
        with pytest.raises(ValidationError):
            await gateway.send_message("081234567890", "  ")

    assert calls == []


@pytest.mark.asyncio
async def test_messaging_reports_gateway_refusal_and_transport_errors():
    def refusing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": False, "message": "device offline"})

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    async with _client(refusing) as client:
        result = await WablasMessagingGateway(token="t", client=client).send_message("081234567890", "x")
    assert result.success is False
    assert result.error == "device offline"

    async with _client(broken) as client:
        gateway = WablasMessagingGateway(token="t", client=client)
        with pytest.raises(UpstreamFailure):
            await gateway.send_message("081234567890", "x")

        # the notifier logs and swallows delivery failures
        notifier = Notifier(gateway)
        assert await notifier.send("081234567890", "x") is False
        assert await notifier.send(None, "x") is False


@pytest.mark.asyncio
async def test_send_bulk_counts(messaging_gateway):
    notifier = Notifier(messaging_gateway)

    counts = await notifier.send_bulk([("081234567890", "a"), ("", "b"), ("081298765432", "c")])

    assert counts == {"sent": 2, "failed": 1}


ORDER = TransferOrder(
    account_number="1234567890",
    bank_code="bca",
    amount=Decimal("50000.00"),
    recipient_name="Siti",
    remark="WD JB-260001",
    idempotency_key="withdrawal-7",
)


@pytest.mark.asyncio
async def test_transfer_posts_disbursement():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers["idempotency-key"]
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"id": 98765, "status": "PENDING", "fee": 2500})

    async with _client(handler) as client:
        gateway = FlipTransferGateway(api_key="k", client=client)
        result = await gateway.transfer(ORDER)

    assert result.transfer_id == "98765"
    assert result.status == TransferStatus.PENDING
    assert result.fee == Decimal("2500")
    assert seen["path"] == "/disbursement"
    assert seen["key"] == "withdrawal-7"
    assert "amount=50000" in seen["body"]


@pytest.mark.asyncio
async def test_transfer_status_mapping():
    statuses = {"1": "DONE", "2": "CANCELLED", "3": "PENDING"}

    def handler(request: httpx.Request) -> httpx.Response:
        transfer_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"id": transfer_id, "status": statuses[transfer_id]})

    async with _client(handler) as client:
        gateway = FlipTransferGateway(api_key="k", client=client)
        assert await gateway.check_status("1") == TransferStatus.SUCCESS
        assert await gateway.check_status("2") == TransferStatus.FAILED
        assert await gateway.check_status("3") == TransferStatus.PENDING


@pytest.mark.asyncio
async def test_transfer_failures_are_upstream_failures():
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    for handler in (server_error, timeout):
        async with _client(handler) as client:
            gateway = FlipTransferGateway(api_key="k", client=client)
            with pytest.raises(UpstreamFailure):
                await gateway.transfer(ORDER)
