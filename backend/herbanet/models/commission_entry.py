# backend/herbanet/models/commission_entry.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import CommissionKind, CommissionStatus
from herbanet.db.base import Base


class CommissionEntry(Base):
    """
    Commission ledger row: one payout to one ancestor for one transaction at one level.

    The (agent_id, transaction_id, level) key is what makes settlement idempotent:
    a second settlement of the same transaction can never credit the same level twice.
    """

    __tablename__ = "commission_entries"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("agent_id", "transaction_id", "level", name="uq_commission_entries_agent_tx_level"),
        CheckConstraint("nominal > 0", name="nominal_positive"),
        Index("ix_commission_entries_agent_status", "agent_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    agent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    transaction_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    commission_kind: Mapped[CommissionKind] = mapped_column(
        Enum(CommissionKind, name="commission_kind", native_enum=False, length=20),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    nominal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus, name="commission_status", native_enum=False, length=20),
        nullable=False,
        default=CommissionStatus.PENDING,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
