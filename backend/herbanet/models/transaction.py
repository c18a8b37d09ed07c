# backend/herbanet/models/transaction.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import PackageTier, TransactionKind, TransactionStatus
from herbanet.db.base import Base


class Transaction(Base):
    """
    Purchase / upgrade / repeat-order event.
    Commission is generated only once status reaches DONE.
    """

    __tablename__ = "transactions"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("box_count >= 0", name="box_count_non_negative"),
        Index("ix_transactions_buyer_created", "buyer_agent_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Not every transaction originates from an agent (CUSTOMER orders).
    buyer_agent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
    )

    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind, name="transaction_kind", native_enum=False, length=20),
        nullable=False,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, name="transaction_status", native_enum=False, length=20),
        nullable=False,
        default=TransactionStatus.PROCESSING,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    box_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # PACKAGE: tier bought; UPGRADE: target tier. Null for the other kinds.
    package_tier: Mapped[Optional[PackageTier]] = mapped_column(
        Enum(PackageTier, name="package_tier", native_enum=False, length=20),
        nullable=True,
    )

    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
