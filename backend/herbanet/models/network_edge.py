# backend/herbanet/models/network_edge.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from herbanet.db.base import Base


class NetworkEdge(Base):
    """
    Materialized upline: "ancestor_id is an ancestor of agent_id at distance level".

    Written once, in the same unit as the agent row, and never updated.
    For one agent the levels form a contiguous run 1..n (n <= 15), one ancestor per level.
    """

    __tablename__ = "network_edges"
    __table_args__ = (
        UniqueConstraint("agent_id", "ancestor_id", "level", name="uq_network_edges_agent_ancestor_level"),
        UniqueConstraint("agent_id", "level", name="uq_network_edges_agent_level"),
        CheckConstraint("level >= 1 AND level <= 15", name="level_range"),
        Index("ix_network_edges_ancestor_level", "ancestor_id", "level"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    agent_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ancestor_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
