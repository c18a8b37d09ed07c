# backend/herbanet/models/withdrawal_request.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import WithdrawalStatus
from herbanet.db.base import Base


class WithdrawalRequest(Base):
    """
    PENDING -> PROCESSING -> DONE, or PENDING|PROCESSING -> REJECTED.

    Creating a request never moves money; REJECTED requests stop counting against
    the agent's available balance, so a failed payout is retried with a new request.
    """

    __tablename__ = "withdrawal_requests"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("nominal > 0", name="nominal_positive"),
        Index("ix_withdrawal_requests_agent_status", "agent_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    agent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    nominal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    status: Mapped[WithdrawalStatus] = mapped_column(
        Enum(WithdrawalStatus, name="withdrawal_status", native_enum=False, length=20),
        nullable=False,
        default=WithdrawalStatus.PENDING,
        index=True,
    )

    # Set once the transfer gateway accepted the payout.
    transfer_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # Charged on top of the nominal, never deducted from it.
    transfer_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
