# backend/herbanet/core/schedule.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.config import settings
from herbanet.core.enums import CommissionKind, PackageTier
from herbanet.core.errors import NotFound, ValidationError
from herbanet.core.money import require_non_negative
from herbanet.crud.rows import lock_and_get
from herbanet.db.unit_of_work import atomic
from herbanet.models.commission_schedule import CommissionScheduleEntry

logger = logging.getLogger(__name__)


def _tier_clause(package_tier: Optional[PackageTier]):
    if package_tier is None:
        return CommissionScheduleEntry.package_tier.is_(None)
    return CommissionScheduleEntry.package_tier == package_tier


async def load_payouts(
    db: AsyncSession, kind: CommissionKind, package_tier: Optional[PackageTier]
) -> dict[int, Decimal]:
    """
    level -> nominal for one commission kind as seen by a buyer of package_tier.
    A row for the buyer's tier wins over the tier-agnostic (NULL) row of the same level.
    """
    stmt = select(CommissionScheduleEntry).where(CommissionScheduleEntry.commission_kind == kind)
    if package_tier is None:
        stmt = stmt.where(CommissionScheduleEntry.package_tier.is_(None))
    else:
        stmt = stmt.where(
            or_(
                CommissionScheduleEntry.package_tier == package_tier,
                CommissionScheduleEntry.package_tier.is_(None),
            )
        )
    res = await db.execute(stmt)

    payouts: dict[int, Decimal] = {}
    specific: set[int] = set()
    for row in res.scalars():
        if row.package_tier is not None:
            payouts[row.level] = row.nominal
            specific.add(row.level)
        elif row.level not in specific:
            payouts[row.level] = row.nominal
    return payouts


async def list_schedule(
    db: AsyncSession,
    kind: Optional[CommissionKind] = None,
) -> list[CommissionScheduleEntry]:
    stmt = select(CommissionScheduleEntry)
    if kind is not None:
        stmt = stmt.where(CommissionScheduleEntry.commission_kind == kind)
    res = await db.execute(
        stmt.order_by(
            CommissionScheduleEntry.commission_kind,
            CommissionScheduleEntry.package_tier,
            CommissionScheduleEntry.level,
        )
    )
    return list(res.scalars().all())


async def upsert_schedule_entry(
    db: AsyncSession,
    *,
    kind: CommissionKind,
    package_tier: Optional[PackageTier],
    level: int,
    nominal,
) -> CommissionScheduleEntry:
    """Insert or overwrite the single row for (kind, tier, level)."""
    if not 1 <= level <= settings.MAX_NETWORK_DEPTH:
        raise ValidationError(f"level must be within 1..{settings.MAX_NETWORK_DEPTH}")
    amount = require_non_negative(nominal, "nominal")

    async with atomic(db):
        res = await db.execute(
            select(CommissionScheduleEntry)
            .where(
                CommissionScheduleEntry.commission_kind == kind,
                _tier_clause(package_tier),
                CommissionScheduleEntry.level == level,
            )
            .with_for_update()
        )
        entry = res.scalar_one_or_none()
        if entry is None:
            entry = CommissionScheduleEntry(
                commission_kind=kind,
                package_tier=package_tier,
                level=level,
                nominal=amount,
            )
            db.add(entry)
        else:
            entry.nominal = amount

    logger.info(
        "Commission schedule %s/%s level %s set to %s",
        kind.value,
        package_tier.value if package_tier else "ANY",
        level,
        amount,
    )
    return entry


async def update_schedule_nominal(db: AsyncSession, entry_id: int, nominal) -> CommissionScheduleEntry:
    amount = require_non_negative(nominal, "nominal")
    async with atomic(db):
        entry = await lock_and_get(db, CommissionScheduleEntry, entry_id)
        if entry is None:
            raise NotFound(f"Commission schedule entry {entry_id} not found")
        entry.nominal = amount
    return entry
