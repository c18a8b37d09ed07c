# backend/herbanet/core/transactions.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.commissions import Settlement, notify_credited, settle_in_unit
from herbanet.core.enums import PackageTier, TransactionKind, TransactionStatus
from herbanet.core.errors import InvalidState, NotFound, ValidationError
from herbanet.core.money import require_non_negative
from herbanet.crud.agent import get_agent, lock_agent
from herbanet.crud.rows import get_fresh, lock_and_get
from herbanet.db.unit_of_work import atomic
from herbanet.models.agent import Agent
from herbanet.models.transaction import Transaction

logger = logging.getLogger(__name__)

_AGENT_KINDS = {
    TransactionKind.PACKAGE,
    TransactionKind.UPGRADE,
    TransactionKind.REPEAT_ORDER,
    TransactionKind.STOCK_ORDER,
}


@dataclass
class StatusChange:
    transaction: Transaction
    settlement: Optional[Settlement] = None


async def get_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
    tx = await get_fresh(db, Transaction, transaction_id)
    if tx is None:
        raise NotFound(f"Transaction {transaction_id} not found")
    return tx


async def create_transaction(
    db: AsyncSession,
    *,
    kind: TransactionKind,
    amount,
    buyer_agent_id: Optional[int] = None,
    box_count: int = 0,
    package_tier: Optional[PackageTier] = None,
    payment_method: Optional[str] = None,
    payment_reference: Optional[str] = None,
    note: Optional[str] = None,
) -> Transaction:
    """New transactions always start in PROCESSING."""
    total = require_non_negative(amount, "amount")
    if box_count < 0:
        raise ValidationError("box_count must not be negative")
    if kind in _AGENT_KINDS and buyer_agent_id is None:
        raise ValidationError(f"{kind.value} transactions need a buyer agent")

    async with atomic(db):
        buyer: Optional[Agent] = None
        if buyer_agent_id is not None:
            buyer = await get_agent(db, buyer_agent_id)

        if kind == TransactionKind.UPGRADE:
            if package_tier is None:
                raise ValidationError("UPGRADE transactions need a target package_tier")
            if not buyer.package_tier.is_upgrade_to(package_tier):
                raise ValidationError(
                    f"Cannot upgrade from {buyer.package_tier.value} to {package_tier.value}"
                )
        elif kind == TransactionKind.PACKAGE and package_tier is None:
            package_tier = buyer.package_tier
        elif kind not in (TransactionKind.PACKAGE, TransactionKind.UPGRADE):
            package_tier = None

        tx = Transaction(
            buyer_agent_id=buyer_agent_id,
            kind=kind,
            status=TransactionStatus.PROCESSING,
            amount=total,
            box_count=box_count,
            package_tier=package_tier,
            payment_method=payment_method,
            payment_reference=payment_reference,
            note=note,
        )
        db.add(tx)

    logger.info("Created %s transaction %s (buyer_agent_id=%s, amount=%s)", kind.value, tx.id, buyer_agent_id, total)
    return tx


async def upgrade_package(db: AsyncSession, agent_id: int, target: PackageTier, amount, **payment) -> Transaction:
    return await create_transaction(
        db,
        kind=TransactionKind.UPGRADE,
        amount=amount,
        buyer_agent_id=agent_id,
        package_tier=target,
        **payment,
    )


async def place_repeat_order(db: AsyncSession, agent_id: int, amount, box_count: int, **payment) -> Transaction:
    if box_count <= 0:
        raise ValidationError("A repeat order needs at least one box")
    return await create_transaction(
        db,
        kind=TransactionKind.REPEAT_ORDER,
        amount=amount,
        buyer_agent_id=agent_id,
        box_count=box_count,
        **payment,
    )


async def _complete(db: AsyncSession, tx: Transaction) -> Settlement:
    """Side effects of reaching DONE, in the same unit as the status change."""
    if tx.buyer_agent_id is not None:
        if tx.kind == TransactionKind.UPGRADE and tx.package_tier is not None:
            buyer = await lock_agent(db, tx.buyer_agent_id)
            # An earlier upgrade may already have taken the agent further.
            if buyer.package_tier.is_upgrade_to(tx.package_tier):
                buyer.package_tier = tx.package_tier
        elif tx.kind == TransactionKind.STOCK_ORDER and tx.box_count:
            await db.execute(
                update(Agent)
                .where(Agent.id == tx.buyer_agent_id)
                .values(stock_count=Agent.stock_count + tx.box_count)
                .execution_options(synchronize_session=False)
            )
        await db.flush()
    return await settle_in_unit(db, tx)


async def advance_transaction(
    db: AsyncSession,
    transaction_id: int,
    status: TransactionStatus,
    notifier=None,
) -> StatusChange:
    """
    Move a transaction forward along the fulfilment pipeline (steps may be skipped).
    Reaching DONE applies the purchase and settles commissions atomically with it.
    """
    settlement: Optional[Settlement] = None
    async with atomic(db):
        tx = await lock_and_get(db, Transaction, transaction_id)
        if tx is None:
            raise NotFound(f"Transaction {transaction_id} not found")
        if status.order <= tx.status.order:
            raise InvalidState(f"Transaction {transaction_id} is {tx.status.value}; cannot move to {status.value}")

        previous = tx.status
        tx.status = status
        if status == TransactionStatus.DONE:
            tx.completed_at = datetime.now(timezone.utc)
            await db.flush()
            settlement = await _complete(db, tx)

    logger.info("Transaction %s: %s -> %s", transaction_id, previous.value, status.value)
    if settlement is not None and settlement.created:
        await notify_credited(db, settlement, notifier)
    return StatusChange(tx, settlement)
