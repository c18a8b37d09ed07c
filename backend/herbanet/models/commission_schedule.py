# backend/herbanet/models/commission_schedule.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import CommissionKind, PackageTier
from herbanet.db.base import Base


class CommissionScheduleEntry(Base):
    """
    Flat nominal payout for (commission kind, package tier or NULL, level).

    NOTE:
      - NULL package_tier means "any tier" (REPEAT_ORDER rows are usually tier-agnostic).
      - SQL unique constraints treat NULLs as distinct, so uniqueness of the NULL-tier rows
        is enforced by core/schedule.py inside the writing transaction.
    """

    __tablename__ = "commission_schedule"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("commission_kind", "package_tier", "level", name="uq_commission_schedule_kind_tier_level"),
        CheckConstraint("level >= 1 AND level <= 15", name="level_range"),
        CheckConstraint("nominal >= 0", name="nominal_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    commission_kind: Mapped[CommissionKind] = mapped_column(
        Enum(CommissionKind, name="commission_kind", native_enum=False, length=20),
        nullable=False,
    )
    package_tier: Mapped[Optional[PackageTier]] = mapped_column(
        Enum(PackageTier, name="package_tier", native_enum=False, length=20),
        nullable=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    nominal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
