# tests/test_transactions.py
from __future__ import annotations

from decimal import Decimal

import pytest

from herbanet.core.directory import alert_low_stock, register_distributor, register_stokis
from herbanet.core.enums import AgentType, PackageTier, TransactionKind, TransactionStatus
from herbanet.core.errors import InvalidState, ValidationError
from herbanet.core.transactions import (
    advance_transaction,
    create_transaction,
    place_repeat_order,
    upgrade_package,
)
from herbanet.crud.agent import get_agent


@pytest.mark.asyncio
async def test_pipeline_moves_forward_and_settles_on_done(db, make_agent, sponsor_schedule):
    s = await make_agent()
    s_id = s.id
    a = await make_agent(sponsor=s)
    a_id = a.id
    b = await make_agent(sponsor=a)
    tx = await create_transaction(db, kind=TransactionKind.PACKAGE, amount="350000", buyer_agent_id=b.id, box_count=1)
    tx_id = tx.id

    assert tx.status == TransactionStatus.PROCESSING
    assert tx.package_tier == PackageTier.SILVER

    change = await advance_transaction(db, tx_id, TransactionStatus.SHIPPED)
    assert change.transaction.status == TransactionStatus.SHIPPED
    assert change.settlement is None

    with pytest.raises(InvalidState):
        await advance_transaction(db, tx_id, TransactionStatus.PACKED)
    with pytest.raises(InvalidState):
        await advance_transaction(db, tx_id, TransactionStatus.SHIPPED)

    change = await advance_transaction(db, tx_id, TransactionStatus.DONE)
    assert change.transaction.completed_at is not None
    assert change.settlement.entry_count == 2
    assert (await get_agent(db, a_id)).payable_balance == Decimal("40000.00")
    assert (await get_agent(db, s_id)).payable_balance == Decimal("15000.00")

    with pytest.raises(InvalidState):
        await advance_transaction(db, tx_id, TransactionStatus.DONE)


@pytest.mark.asyncio
async def test_upgrade_applies_tier_on_done(db, make_agent):
    agent = await make_agent()
    agent_id = agent.id

    with pytest.raises(ValidationError):
        await upgrade_package(db, agent_id, PackageTier.SILVER, "0")

    tx = await upgrade_package(db, agent_id, PackageTier.PLATINUM, "1500000")
    assert (await get_agent(db, agent_id)).package_tier == PackageTier.SILVER

    await advance_transaction(db, tx.id, TransactionStatus.DONE)
    assert (await get_agent(db, agent_id)).package_tier == PackageTier.PLATINUM


@pytest.mark.asyncio
async def test_stock_order_feeds_agent_type_thresholds(db, make_agent, notifier, messaging_gateway):
    agent = await make_agent(phone_number="081200001111")
    agent_id = agent.id

    with pytest.raises(InvalidState):
        await register_stokis(db, agent_id)

    tx = await create_transaction(
        db, kind=TransactionKind.STOCK_ORDER, amount="5000000", buyer_agent_id=agent_id, box_count=60
    )
    await advance_transaction(db, tx.id, TransactionStatus.DONE)
    assert (await get_agent(db, agent_id)).stock_count == 60

    stokis = await register_stokis(db, agent_id)
    assert stokis.agent_type == AgentType.STOKIS
    with pytest.raises(InvalidState):
        await register_stokis(db, agent_id)
    with pytest.raises(InvalidState):
        await register_distributor(db, agent_id)

    assert await alert_low_stock(db, notifier) == 0


@pytest.mark.asyncio
async def test_low_stock_alert_reaches_stokis_under_minimum(db, make_agent, notifier, messaging_gateway):
    agent = await make_agent(phone_number="081200002222")
    tx = await create_transaction(
        db, kind=TransactionKind.STOCK_ORDER, amount="1", buyer_agent_id=agent.id, box_count=50
    )
    await advance_transaction(db, tx.id, TransactionStatus.DONE)
    await register_stokis(db, agent.id)

    # stock drawn down outside this service
    row = await get_agent(db, agent.id)
    row.stock_count = 10
    await db.commit()

    assert await alert_low_stock(db, notifier) == 1
    assert "10 box" in messaging_gateway.sent[-1][1]


@pytest.mark.asyncio
async def test_transaction_validation(db, make_agent):
    agent = await make_agent()

    with pytest.raises(ValidationError):
        await create_transaction(db, kind=TransactionKind.PACKAGE, amount="-1", buyer_agent_id=agent.id)
    with pytest.raises(ValidationError):
        await create_transaction(db, kind=TransactionKind.REPEAT_ORDER, amount="1")
    with pytest.raises(ValidationError):
        await place_repeat_order(db, agent.id, "100000", box_count=0)

    customer = await create_transaction(db, kind=TransactionKind.CUSTOMER, amount="99000", box_count=1)
    assert customer.buyer_agent_id is None
    assert customer.package_tier is None

    repeat = await place_repeat_order(db, agent.id, "200000", box_count=2)
    assert repeat.kind == TransactionKind.REPEAT_ORDER
