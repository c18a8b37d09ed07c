# backend/herbanet/models/agent.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import AgentType, Gender, PackageTier, Rank
from herbanet.db.base import Base


class Agent(Base):
    """
    A member of the distribution network.

    - agent_code ({province}-{yy}{seq:04d}) is assigned once at registration and never changes.
    - sponsor_id is fixed at creation; the sponsor always pre-exists, so the graph is a forest.
    - total_commission / payable_balance only ever grow (credited by commission settlement).
      What an agent can still withdraw is derived on demand, see core/withdrawals.py.
    """

    __tablename__ = "agents"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("total_commission >= 0", name="total_commission_non_negative"),
        CheckConstraint("payable_balance >= 0", name="payable_balance_non_negative"),
        CheckConstraint("stock_count >= 0", name="stock_count_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    agent_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)

    # Profile
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    national_id: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    gender: Mapped[Optional[Gender]] = mapped_column(
        Enum(Gender, name="gender", native_enum=False, length=10), nullable=True
    )
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kelurahan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kecamatan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    province: Mapped[str] = mapped_column(Text, nullable=False)

    # Payout destination (transfer gateway)
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    bank_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bank_account_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Network position
    sponsor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    package_tier: Mapped[PackageTier] = mapped_column(
        Enum(PackageTier, name="package_tier", native_enum=False, length=20),
        nullable=False,
        default=PackageTier.SILVER,
    )
    rank: Mapped[Rank] = mapped_column(
        Enum(Rank, name="agent_rank", native_enum=False, length=32),
        nullable=False,
        default=Rank.AGEN,
    )
    agent_type: Mapped[AgentType] = mapped_column(
        Enum(AgentType, name="agent_type", native_enum=False, length=20),
        nullable=False,
        default=AgentType.AGEN,
    )
    stock_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    total_commission: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00"), server_default="0"
    )
    payable_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00"), server_default="0"
    )

    referral_link: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
