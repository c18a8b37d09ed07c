# backend/herbanet/crud/agent.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.errors import NotFound
from herbanet.crud.rows import get_fresh, lock_and_get
from herbanet.models.agent import Agent


async def get_agent(db: AsyncSession, agent_id: int) -> Agent:
    agent = await get_fresh(db, Agent, agent_id)
    if agent is None:
        raise NotFound(f"Agent {agent_id} not found")
    return agent


async def lock_agent(db: AsyncSession, agent_id: int) -> Agent:
    agent = await lock_and_get(db, Agent, agent_id)
    if agent is None:
        raise NotFound(f"Agent {agent_id} not found")
    return agent


async def get_agent_by_user(db: AsyncSession, user_id: int) -> Optional[Agent]:
    stmt = select(Agent).where(Agent.user_id == user_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_agent_by_code(db: AsyncSession, agent_code: str) -> Optional[Agent]:
    stmt = (
        select(Agent)
        .where(Agent.agent_code == agent_code.strip().upper())
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def credit_commission(db: AsyncSession, agent_id: int, nominal: Decimal) -> None:
    """
    SQL-side increment so concurrent settlements for different transactions never lose an update.
    """
    stmt = (
        update(Agent)
        .where(Agent.id == agent_id)
        .values(
            total_commission=Agent.total_commission + nominal,
            payable_balance=Agent.payable_balance + nominal,
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
