# backend/herbanet/models/reward.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.core.enums import Rank, RewardClaimStatus
from herbanet.db.base import Base


class Reward(Base):
    __tablename__ = "rewards"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    required_rank: Mapped[Rank] = mapped_column(
        Enum(Rank, name="agent_rank", native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class RewardClaim(Base):
    """An agent claims a given reward at most once, whatever the claim's status."""

    __tablename__ = "reward_claims"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("agent_id", "reward_id", name="uq_reward_claims_agent_reward"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    agent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reward_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rewards.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[RewardClaimStatus] = mapped_column(
        Enum(RewardClaimStatus, name="reward_claim_status", native_enum=False, length=20),
        nullable=False,
        default=RewardClaimStatus.PENDING,
    )

    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
