# backend/herbanet/core/commissions.py
"""
Commission settlement.

settle_commissions walks the buyer's materialized upline (levels 1..MAX_NETWORK_DEPTH)
and credits each ancestor the flat nominal the schedule holds for that level. The
ledger key (agent_id, transaction_id, level) makes settlement idempotent: repeating
it, or racing two settlers, never credits a level twice.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.config import settings
from herbanet.core.enums import COMMISSION_KIND_BY_TRANSACTION, CommissionStatus, TransactionStatus
from herbanet.core.errors import InvalidState, NotFound
from herbanet.core.schedule import load_payouts
from herbanet.crud.agent import credit_commission, get_agent
from herbanet.crud.rows import get_fresh, lock_and_get
from herbanet.db.unit_of_work import atomic
from herbanet.models.agent import Agent
from herbanet.models.commission_entry import CommissionEntry
from herbanet.models.network_edge import NetworkEdge
from herbanet.models.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class Settlement:
    transaction_id: int
    entry_count: int
    created: list[CommissionEntry] = field(default_factory=list)

    @property
    def total_credited(self) -> Decimal:
        return sum((e.nominal for e in self.created), Decimal("0.00"))


async def count_entries(db: AsyncSession, transaction_id: int) -> int:
    res = await db.execute(
        select(func.count(CommissionEntry.id)).where(CommissionEntry.transaction_id == transaction_id)
    )
    return int(res.scalar_one())


async def settle_in_unit(db: AsyncSession, tx: Transaction) -> Settlement:
    """
    Write the ledger rows and balance credits for a DONE transaction without committing.
    Callers own the unit of work (settle_commissions, or the DONE transition itself).
    """
    if tx.status != TransactionStatus.DONE:
        raise InvalidState(f"Transaction {tx.id} is {tx.status.value}; commissions settle only once it is DONE")

    existing = await count_entries(db, tx.id)
    if existing:
        return Settlement(tx.id, existing)

    kind = COMMISSION_KIND_BY_TRANSACTION.get(tx.kind)
    if tx.buyer_agent_id is None or kind is None:
        return Settlement(tx.id, 0)

    buyer = await get_agent(db, tx.buyer_agent_id)
    payouts = await load_payouts(db, kind, buyer.package_tier)
    if not payouts:
        logger.warning("No %s commission schedule for tier %s; transaction %s pays nothing",
                       kind.value, buyer.package_tier.value, tx.id)
        return Settlement(tx.id, 0)

    res = await db.execute(
        select(NetworkEdge)
        .where(NetworkEdge.agent_id == buyer.id, NetworkEdge.level <= settings.MAX_NETWORK_DEPTH)
        .order_by(NetworkEdge.level)
    )
    created: list[CommissionEntry] = []
    for edge in res.scalars().all():
        nominal = payouts.get(edge.level)
        if nominal is None or nominal <= 0:
            continue
        entry = CommissionEntry(
            agent_id=edge.ancestor_id,
            transaction_id=tx.id,
            commission_kind=kind,
            level=edge.level,
            nominal=nominal,
            status=CommissionStatus.PENDING,
        )
        db.add(entry)
        created.append(entry)

    # Ledger rows first: a concurrent settler fails here, before any balance moves.
    await db.flush()
    for entry in created:
        await credit_commission(db, entry.agent_id, entry.nominal)

    return Settlement(tx.id, len(created), created)


async def settle_commissions(db: AsyncSession, transaction_id: int, notifier=None) -> Settlement:
    """
    Idempotent: a transaction that already has ledger rows reports their count and
    writes nothing.
    """
    try:
        async with atomic(db):
            tx = await lock_and_get(db, Transaction, transaction_id)
            if tx is None:
                raise NotFound(f"Transaction {transaction_id} not found")
            result = await settle_in_unit(db, tx)
    except IntegrityError:
        # Another settler committed the same ledger keys first; its rows are the settlement.
        existing = await count_entries(db, transaction_id)
        logger.info("Transaction %s was settled concurrently (%s entries)", transaction_id, existing)
        return Settlement(transaction_id, existing)

    if result.created:
        logger.info(
            "Settled transaction %s: %s entries, %s credited",
            transaction_id,
            len(result.created),
            result.total_credited,
        )
        await notify_credited(db, result, notifier)
    return result


async def notify_credited(db: AsyncSession, result: Settlement, notifier) -> None:
    if notifier is None:
        return
    for entry in result.created:
        agent = await get_fresh(db, Agent, entry.agent_id)
        if agent is not None:
            await notifier.commission_credited(agent, entry)


async def list_commissions(db: AsyncSession, agent_id: int) -> list[CommissionEntry]:
    await get_agent(db, agent_id)
    res = await db.execute(
        select(CommissionEntry)
        .where(CommissionEntry.agent_id == agent_id)
        .order_by(CommissionEntry.created_at.desc(), CommissionEntry.id.desc())
    )
    return list(res.scalars().all())
