# tests/test_commissions.py
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from herbanet.core.commissions import list_commissions, settle_commissions
from herbanet.core.enums import CommissionKind, PackageTier, TransactionKind, TransactionStatus
from herbanet.core.errors import InvalidState, NotFound, ValidationError
from herbanet.core.schedule import list_schedule, load_payouts, update_schedule_nominal, upsert_schedule_entry
from herbanet.crud.agent import get_agent
from herbanet.models.commission_entry import CommissionEntry
from herbanet.models.transaction import Transaction


async def done_transaction(db, buyer, kind=TransactionKind.PACKAGE, amount="350000") -> Transaction:
    tx = Transaction(
        buyer_agent_id=buyer.id if buyer is not None else None,
        kind=kind,
        status=TransactionStatus.DONE,
        amount=Decimal(amount),
        box_count=1,
        package_tier=buyer.package_tier if buyer is not None else None,
    )
    db.add(tx)
    await db.commit()
    return tx


async def entries_for(db, tx_id):
    res = await db.execute(
        select(CommissionEntry).where(CommissionEntry.transaction_id == tx_id).order_by(CommissionEntry.level)
    )
    return list(res.scalars().all())


@pytest.mark.asyncio
async def test_sponsor_scenario_credits_two_levels(db, make_agent, sponsor_schedule):
    s = await make_agent()
    a = await make_agent(sponsor=s)
    b = await make_agent(sponsor=a)

    tx = await done_transaction(db, b)
    result = await settle_commissions(db, tx.id)

    assert result.entry_count == 2
    assert result.total_credited == Decimal("55000.00")
    rows = await entries_for(db, tx.id)
    assert [(r.agent_id, r.level, r.nominal) for r in rows] == [
        (a.id, 1, Decimal("40000.00")),
        (s.id, 2, Decimal("15000.00")),
    ]
    assert all(r.commission_kind == CommissionKind.SPONSOR for r in rows)

    a = await get_agent(db, a.id)
    s = await get_agent(db, s.id)
    assert a.payable_balance == Decimal("40000.00")
    assert a.total_commission == Decimal("40000.00")
    assert s.payable_balance == Decimal("15000.00")


@pytest.mark.asyncio
async def test_levels_without_schedule_are_not_paid(db, make_agent, sponsor_schedule):
    top = await make_agent()
    mid = await make_agent(sponsor=top)
    low = await make_agent(sponsor=mid)
    buyer = await make_agent(sponsor=low)

    tx = await done_transaction(db, buyer)
    result = await settle_commissions(db, tx.id)

    assert result.entry_count == 2
    assert [r.level for r in await entries_for(db, tx.id)] == [1, 2]
    assert (await get_agent(db, top.id)).payable_balance == Decimal("0.00")


@pytest.mark.asyncio
async def test_settlement_is_idempotent(db, make_agent, sponsor_schedule):
    s = await make_agent()
    a = await make_agent(sponsor=s)
    b = await make_agent(sponsor=a)
    tx = await done_transaction(db, b)

    first = await settle_commissions(db, tx.id)
    second = await settle_commissions(db, tx.id)

    assert first.entry_count == second.entry_count == 2
    assert second.created == []
    assert len(await entries_for(db, tx.id)) == 2
    assert (await get_agent(db, a.id)).payable_balance == Decimal("40000.00")


@pytest.mark.asyncio
async def test_concurrent_settlement_credits_once(db, sessionmaker, make_agent, sponsor_schedule):
    s = await make_agent()
    a = await make_agent(sponsor=s)
    b = await make_agent(sponsor=a)
    tx = await done_transaction(db, b)

    async def settle():
        async with sessionmaker() as session:
            return (await settle_commissions(session, tx.id)).entry_count

    counts = await asyncio.gather(settle(), settle(), settle())

    assert counts == [2, 2, 2]
    assert len(await entries_for(db, tx.id)) == 2
    assert (await get_agent(db, a.id)).payable_balance == Decimal("40000.00")
    assert (await get_agent(db, s.id)).payable_balance == Decimal("15000.00")


@pytest.mark.asyncio
async def test_settlement_requires_done(db, make_agent, sponsor_schedule):
    a = await make_agent()
    b = await make_agent(sponsor=a)
    tx = Transaction(buyer_agent_id=b.id, kind=TransactionKind.PACKAGE, amount=Decimal("1"), box_count=0)
    db.add(tx)
    await db.commit()

    with pytest.raises(InvalidState):
        await settle_commissions(db, tx.id)
    with pytest.raises(NotFound):
        await settle_commissions(db, 9999)


@pytest.mark.asyncio
async def test_non_commission_kinds_and_buyerless_settle_to_zero(db, make_agent, sponsor_schedule):
    a = await make_agent()
    b = await make_agent(sponsor=a)

    stock = await done_transaction(db, b, kind=TransactionKind.STOCK_ORDER)
    customer = await done_transaction(db, None, kind=TransactionKind.CUSTOMER)

    assert (await settle_commissions(db, stock.id)).entry_count == 0
    assert (await settle_commissions(db, customer.id)).entry_count == 0


@pytest.mark.asyncio
async def test_tier_specific_schedule_wins_over_any_tier(db, make_agent):
    await upsert_schedule_entry(db, kind=CommissionKind.REPEAT_ORDER, package_tier=None, level=1, nominal=5000)
    await upsert_schedule_entry(db, kind=CommissionKind.REPEAT_ORDER, package_tier=None, level=2, nominal=2000)
    await upsert_schedule_entry(
        db, kind=CommissionKind.REPEAT_ORDER, package_tier=PackageTier.GOLD, level=1, nominal=7500
    )

    gold = await load_payouts(db, CommissionKind.REPEAT_ORDER, PackageTier.GOLD)
    silver = await load_payouts(db, CommissionKind.REPEAT_ORDER, PackageTier.SILVER)

    assert gold == {1: Decimal("7500.00"), 2: Decimal("2000.00")}
    assert silver == {1: Decimal("5000.00"), 2: Decimal("2000.00")}

    top = await make_agent()
    buyer = await make_agent(sponsor=top, package_tier=PackageTier.GOLD)
    tx = await done_transaction(db, buyer, kind=TransactionKind.REPEAT_ORDER)
    await settle_commissions(db, tx.id)

    rows = await entries_for(db, tx.id)
    assert [(r.agent_id, r.nominal, r.commission_kind) for r in rows] == [
        (top.id, Decimal("7500.00"), CommissionKind.REPEAT_ORDER)
    ]


@pytest.mark.asyncio
async def test_zero_nominal_rows_are_skipped(db, make_agent):
    await upsert_schedule_entry(db, kind=CommissionKind.SPONSOR, package_tier=PackageTier.SILVER, level=1, nominal=0)
    await upsert_schedule_entry(db, kind=CommissionKind.SPONSOR, package_tier=PackageTier.SILVER, level=2, nominal=1000)
    top = await make_agent()
    mid = await make_agent(sponsor=top)
    buyer = await make_agent(sponsor=mid)

    tx = await done_transaction(db, buyer)
    result = await settle_commissions(db, tx.id)

    assert result.entry_count == 1
    assert [(r.agent_id, r.level) for r in await entries_for(db, tx.id)] == [(top.id, 2)]


@pytest.mark.asyncio
async def test_schedule_upsert_overwrites_single_row(db):
    first = await upsert_schedule_entry(db, kind=CommissionKind.SPONSOR, package_tier=None, level=3, nominal=100)
    second = await upsert_schedule_entry(db, kind=CommissionKind.SPONSOR, package_tier=None, level=3, nominal=250)

    assert first.id == second.id
    rows = await list_schedule(db, CommissionKind.SPONSOR)
    assert [(r.level, r.nominal) for r in rows] == [(3, Decimal("250.00"))]

    updated = await update_schedule_nominal(db, first.id, "300")
    assert updated.nominal == Decimal("300.00")

    with pytest.raises(ValidationError):
        await upsert_schedule_entry(db, kind=CommissionKind.SPONSOR, package_tier=None, level=16, nominal=1)
    with pytest.raises(ValidationError):
        await update_schedule_nominal(db, first.id, "-1")
    with pytest.raises(NotFound):
        await update_schedule_nominal(db, 9999, "1")


@pytest.mark.asyncio
async def test_list_commissions_newest_first(db, make_agent, sponsor_schedule):
    a = await make_agent()
    b = await make_agent(sponsor=a)
    first = await done_transaction(db, b)
    second = await done_transaction(db, b)
    await settle_commissions(db, first.id)
    await settle_commissions(db, second.id)

    rows = await list_commissions(db, a.id)
    assert [r.transaction_id for r in rows] == [second.id, first.id]


@pytest.mark.asyncio
async def test_credit_notifications_are_sent_after_commit(db, make_agent, sponsor_schedule, notifier, messaging_gateway):
    s = await make_agent(phone_number="0812-3456-7890")
    a = await make_agent(sponsor=s)
    tx = await done_transaction(db, a)

    await settle_commissions(db, tx.id, notifier=notifier)

    assert len(messaging_gateway.sent) == 1
    phone, text = messaging_gateway.sent[0]
    assert phone == "0812-3456-7890"
    assert "Rp 40.000" in text
