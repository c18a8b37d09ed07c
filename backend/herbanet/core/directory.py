# backend/herbanet/core/directory.py
from __future__ import annotations

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.config import settings
from herbanet.core.enums import AgentType, Rank
from herbanet.core.errors import InvalidState, NotFound
from herbanet.crud.agent import get_agent_by_code, lock_agent
from herbanet.db.unit_of_work import atomic
from herbanet.models.agent import Agent

logger = logging.getLogger(__name__)

_AGENT_TYPE_ORDER = (AgentType.AGEN, AgentType.STOKIS, AgentType.DISTRIBUTOR)


async def find_agent_by_code(db: AsyncSession, agent_code: str) -> Agent:
    agent = await get_agent_by_code(db, agent_code)
    if agent is None:
        raise NotFound(f"Agent {agent_code} not found")
    return agent


async def promote_agent(db: AsyncSession, agent_id: int, rank: Rank) -> Agent:
    """Ranks only move up; re-promoting to the current rank is a no-op."""
    async with atomic(db):
        agent = await lock_agent(db, agent_id)
        if rank.order < agent.rank.order:
            raise InvalidState(f"Cannot demote agent from {agent.rank.value} to {rank.value}")
        previous = agent.rank
        agent.rank = rank

    if previous != rank:
        logger.info("Promoted agent %s: %s -> %s", agent.agent_code, previous.value, rank.value)
    return agent


async def _change_agent_type(db: AsyncSession, agent_id: int, target: AgentType, min_box: int) -> Agent:
    async with atomic(db):
        agent = await lock_agent(db, agent_id)
        if _AGENT_TYPE_ORDER.index(agent.agent_type) >= _AGENT_TYPE_ORDER.index(target):
            raise InvalidState(f"Agent is already {agent.agent_type.value}")
        if agent.stock_count < min_box:
            raise InvalidState(
                f"{target.value} requires at least {min_box} boxes in stock; agent holds {agent.stock_count}"
            )
        agent.agent_type = target

    logger.info("Agent %s is now %s", agent.agent_code, target.value)
    return agent


async def register_stokis(db: AsyncSession, agent_id: int) -> Agent:
    return await _change_agent_type(db, agent_id, AgentType.STOKIS, settings.STOKIS_MIN_BOX)


async def register_distributor(db: AsyncSession, agent_id: int) -> Agent:
    return await _change_agent_type(db, agent_id, AgentType.DISTRIBUTOR, settings.DISTRIBUTOR_MIN_BOX)


async def alert_low_stock(db: AsyncSession, notifier) -> int:
    """Send the low-stock reminder to every STOKIS / DISTRIBUTOR under its type minimum."""
    minimums = {
        AgentType.STOKIS: settings.STOKIS_MIN_BOX,
        AgentType.DISTRIBUTOR: settings.DISTRIBUTOR_MIN_BOX,
    }
    res = await db.execute(
        select(Agent)
        .where(
            or_(
                and_(Agent.agent_type == AgentType.STOKIS, Agent.stock_count < settings.STOKIS_MIN_BOX),
                and_(Agent.agent_type == AgentType.DISTRIBUTOR, Agent.stock_count < settings.DISTRIBUTOR_MIN_BOX),
            )
        )
        .order_by(Agent.id)
        .execution_options(populate_existing=True)
    )
    sent = 0
    for agent in res.scalars():
        if await notifier.stock_alert(agent, minimums[agent.agent_type]):
            sent += 1
    return sent
