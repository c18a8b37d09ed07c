# tests/test_api.py
from __future__ import annotations

import pytest

from herbanet.core.enums import CommissionKind, PackageTier
from herbanet.core.schedule import upsert_schedule_entry


async def register(client, username: str, sponsor_id=None, **extra) -> dict:
    r = await client.post("/api/v1/users", json={"username": username})
    assert r.status_code == 201, r.text
    payload = {"user_id": r.json()["id"], "full_name": username.title(), "province": "Jawa Barat", **extra}
    if sponsor_id is not None:
        payload["sponsor_id"] = sponsor_id
    r = await client.post("/api/v1/agents", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_register_and_read_network(client):
    s = await register(client, "sari")
    a = await register(client, "andi", sponsor_id=s["id"])

    assert a["agent_code"].startswith("JB-")
    assert a["sponsor_id"] == s["id"]

    r = await client.get(f"/api/v1/agents/{a['id']}/upline")
    assert r.status_code == 200
    assert r.json()["edges"] == [{"agent_id": a["id"], "ancestor_id": s["id"], "level": 1}]

    r = await client.get(f"/api/v1/agents/by-code/{a['agent_code'].lower()}")
    assert r.status_code == 200
    assert r.json()["id"] == a["id"]

    r = await client.get(f"/api/v1/agents/{s['id']}/downlines/1")
    assert [x["id"] for x in r.json()] == [a["id"]]


@pytest.mark.asyncio
async def test_typed_failures_map_to_status_codes(client):
    r = await client.get("/api/v1/agents/9999")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"

    s = await register(client, "sari")
    r = await client.post("/api/v1/agents", json={"user_id": s["user_id"], "full_name": "Again", "province": "Bali"})
    assert r.status_code == 409

    r = await client.post("/api/v1/withdrawals", json={"agent_id": s["id"], "nominal": "1000"})
    assert r.status_code == 422
    assert r.json()["code"] == "insufficient_balance"

    r = await client.post(
        "/api/v1/agents",
        json={"user_id": 1, "full_name": "Bad", "province": "Bali", "national_id": "123"},
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_purchase_to_payout_flow(client, db, transfer_gateway):
    await upsert_schedule_entry(
        db, kind=CommissionKind.SPONSOR, package_tier=PackageTier.SILVER, level=1, nominal=40000
    )
    s = await register(client, "sari", bank_account_number="1234567890", bank_code="bri")
    a = await register(client, "andi", sponsor_id=s["id"])

    r = await client.post(
        "/api/v1/transactions",
        json={"kind": "PACKAGE", "buyer_agent_id": a["id"], "amount": "350000", "box_count": 1},
    )
    assert r.status_code == 201, r.text
    tx_id = r.json()["id"]

    r = await client.post(f"/api/v1/transactions/{tx_id}/status", json={"status": "DONE"})
    assert r.status_code == 200, r.text
    assert r.json()["commission_entries"] == 1

    r = await client.post(f"/api/v1/transactions/{tx_id}/settle")
    assert r.json()["entry_count"] == 1

    r = await client.get(f"/api/v1/withdrawals/agents/{s['id']}/balance")
    assert r.json()["available_balance"] == "40000.00"

    r = await client.post("/api/v1/withdrawals", json={"agent_id": s["id"], "nominal": "40000"})
    assert r.status_code == 201
    wd_id = r.json()["id"]

    r = await client.post(f"/api/v1/withdrawals/{wd_id}/dispatch")
    assert r.json()["status"] == "PROCESSING"
    assert r.json()["transfer_reference"] == "TRF-1"

    r = await client.post(f"/api/v1/withdrawals/{wd_id}/confirm")
    assert r.json()["status"] == "DONE"

    r = await client.post(f"/api/v1/withdrawals/{wd_id}/confirm")
    assert r.status_code == 409

    r = await client.get(f"/api/v1/commissions/agents/{s['id']}")
    assert [e["status"] for e in r.json()] == ["PAID"]


@pytest.mark.asyncio
async def test_reward_endpoints(client):
    s = await register(client, "sari")
    r = await client.post("/api/v1/rewards", json={"name": "Umroh", "required_rank": "MANAGER"})
    reward_id = r.json()["id"]

    r = await client.get(f"/api/v1/rewards/eligible/{s['id']}")
    assert r.json() == []

    r = await client.post(f"/api/v1/agents/{s['id']}/promote", json={"rank": "DIRECTOR"})
    assert r.json()["rank"] == "DIRECTOR"

    r = await client.get(f"/api/v1/rewards/eligible/{s['id']}")
    assert [x["id"] for x in r.json()] == [reward_id]

    r = await client.post(f"/api/v1/rewards/{reward_id}/claims", json={"agent_id": s["id"]})
    assert r.status_code == 201
    claim_id = r.json()["id"]

    r = await client.post(f"/api/v1/rewards/{reward_id}/claims", json={"agent_id": s["id"]})
    assert r.status_code == 409
    assert r.json() == {"detail": "Reward already claimed", "code": "already_claimed"}

    r = await client.patch(f"/api/v1/rewards/claims/{claim_id}", json={"status": "ACCEPTED"})
    assert r.json()["status"] == "ACCEPTED"
