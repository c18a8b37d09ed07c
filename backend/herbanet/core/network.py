# backend/herbanet/core/network.py
"""
Network placement: agent registration and the materialized upline.

Every agent row is written together with its NetworkEdge rows in one unit of work:
(new, sponsor, 1) plus each of the sponsor's own edges shifted one level down,
dropping anything that would land beyond MAX_NETWORK_DEPTH. Edges are never
recomputed afterwards, so an upline lookup is a single indexed read.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.config import settings
from herbanet.core.enums import Gender, PackageTier, UserRole
from herbanet.core.errors import Conflict, InvalidState, NotFound, ValidationError
from herbanet.core.provinces import province_code
from herbanet.crud.agent import get_agent, get_agent_by_user, lock_agent
from herbanet.db.unit_of_work import atomic
from herbanet.models.agent import Agent
from herbanet.models.network_edge import NetworkEdge
from herbanet.models.user import User

logger = logging.getLogger(__name__)

_MAX_CODE_SEQUENCE = 9999


def format_agent_code(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year % 100:02d}{sequence:04d}"


def referral_link_for(agent_code: str) -> str:
    return f"{settings.REFERRAL_BASE_URL.rstrip('/')}/{agent_code}"


def derive_edges(
    agent_id: int,
    sponsor_id: int,
    sponsor_edges: Sequence[NetworkEdge],
    max_depth: Optional[int] = None,
) -> list[NetworkEdge]:
    """
    Edges of a new agent placed directly under sponsor_id.
    sponsor_edges are the sponsor's own upline edges (any order).
    """
    depth = max_depth or settings.MAX_NETWORK_DEPTH
    edges = [NetworkEdge(agent_id=agent_id, ancestor_id=sponsor_id, level=1)]
    for e in sorted(sponsor_edges, key=lambda x: x.level):
        if e.level < depth:
            edges.append(NetworkEdge(agent_id=agent_id, ancestor_id=e.ancestor_id, level=e.level + 1))
    return edges


async def next_agent_code(db: AsyncSession, province: str, now: Optional[datetime] = None) -> str:
    """
    Next free code for (province, current year): highest existing sequence + 1.
    Two concurrent registrations can compute the same value; the unique index on
    agent_code decides, and register_agent retries the loser.
    """
    now = now or datetime.now(timezone.utc)
    prefix = province_code(province)
    stem = f"{prefix}-{now.year % 100:02d}"
    pattern = re.compile(rf"^{re.escape(stem)}(\d{{4}})$")

    res = await db.execute(select(Agent.agent_code).where(Agent.agent_code.like(f"{stem}%")))
    highest = 0
    for code in res.scalars():
        m = pattern.match(code)
        if m:
            highest = max(highest, int(m.group(1)))

    if highest >= _MAX_CODE_SEQUENCE:
        raise InvalidState(f"Agent code sequence for {stem} is exhausted")
    return format_agent_code(prefix, now.year, highest + 1)


async def _place_agent(
    db: AsyncSession,
    *,
    user_id: int,
    sponsor_id: Optional[int],
    full_name: str,
    province: str,
    package_tier: PackageTier,
    profile: dict,
) -> Agent:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    if await get_agent_by_user(db, user_id) is not None:
        raise Conflict("This user already has an agent account")

    sponsor_edges: list[NetworkEdge] = []
    if sponsor_id is not None:
        sponsor = await db.get(Agent, sponsor_id)
        if sponsor is None:
            raise NotFound(f"Sponsor {sponsor_id} not found")
        res = await db.execute(select(NetworkEdge).where(NetworkEdge.agent_id == sponsor_id))
        sponsor_edges = list(res.scalars().all())

    code = await next_agent_code(db, province)
    agent = Agent(
        user_id=user_id,
        agent_code=code,
        full_name=full_name.strip(),
        province=province.strip(),
        sponsor_id=sponsor_id,
        package_tier=package_tier,
        referral_link=referral_link_for(code),
        **profile,
    )
    db.add(agent)
    await db.flush()

    if sponsor_id is not None:
        db.add_all(derive_edges(agent.id, sponsor_id, sponsor_edges))
    if user.role == UserRole.PELANGGAN:
        user.role = UserRole.AGEN
    await db.flush()
    return agent


async def register_agent(
    db: AsyncSession,
    *,
    user_id: int,
    full_name: str,
    province: str,
    sponsor_id: Optional[int] = None,
    package_tier: PackageTier = PackageTier.SILVER,
    national_id: Optional[str] = None,
    gender: Optional[Gender] = None,
    phone_number: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    kelurahan: Optional[str] = None,
    kecamatan: Optional[str] = None,
    city: Optional[str] = None,
    bank_account_number: Optional[str] = None,
    bank_code: Optional[str] = None,
    bank_account_name: Optional[str] = None,
    notifier=None,
) -> Agent:
    """
    Create an agent, assign its code, and materialize its upline edges atomically.

    A lost race on agent_code (or a serialization failure) rolls the whole unit back
    and retries with a freshly computed code, up to AGENT_CODE_MAX_RETRIES attempts.
    """
    if not full_name or not full_name.strip():
        raise ValidationError("full_name is required")
    if not province or not province.strip():
        raise ValidationError("province is required")

    profile = dict(
        national_id=national_id,
        gender=gender,
        phone_number=phone_number,
        email=email,
        address=address,
        kelurahan=kelurahan,
        kecamatan=kecamatan,
        city=city,
        bank_account_number=bank_account_number,
        bank_code=bank_code,
        bank_account_name=bank_account_name,
    )

    last_error: Optional[Exception] = None
    for attempt in range(1, settings.AGENT_CODE_MAX_RETRIES + 1):
        try:
            async with atomic(db):
                agent = await _place_agent(
                    db,
                    user_id=user_id,
                    sponsor_id=sponsor_id,
                    full_name=full_name,
                    province=province,
                    package_tier=package_tier,
                    profile=profile,
                )
        except (IntegrityError, OperationalError) as e:
            last_error = e
            # The unique user_id index also raises IntegrityError; that one is final.
            if await get_agent_by_user(db, user_id) is not None:
                raise Conflict("This user already has an agent account") from e
            logger.warning(
                "Agent registration attempt %s/%s collided (user_id=%s): %s",
                attempt,
                settings.AGENT_CODE_MAX_RETRIES,
                user_id,
                e.__class__.__name__,
            )
            continue

        logger.info(
            "Registered agent %s (id=%s, sponsor_id=%s, attempt=%s)",
            agent.agent_code,
            agent.id,
            sponsor_id,
            attempt,
        )
        if notifier is not None:
            await notifier.agent_registered(agent)
        return agent

    raise Conflict("Could not allocate a unique agent code, please retry") from last_error


async def get_upline_chain(db: AsyncSession, agent_id: int) -> list[NetworkEdge]:
    """Ancestor edges of agent_id ordered by level (1 = direct sponsor)."""
    await get_agent(db, agent_id)
    res = await db.execute(
        select(NetworkEdge)
        .where(NetworkEdge.agent_id == agent_id, NetworkEdge.level <= settings.MAX_NETWORK_DEPTH)
        .order_by(NetworkEdge.level)
    )
    return list(res.scalars().all())


async def get_downlines(db: AsyncSession, agent_id: int) -> list[NetworkEdge]:
    """Every agent below agent_id (within the materialized depth), nearest first."""
    await get_agent(db, agent_id)
    res = await db.execute(
        select(NetworkEdge)
        .where(NetworkEdge.ancestor_id == agent_id)
        .order_by(NetworkEdge.level, NetworkEdge.agent_id)
    )
    return list(res.scalars().all())


async def get_downlines_at_level(db: AsyncSession, agent_id: int, level: int) -> list[Agent]:
    if not 1 <= level <= settings.MAX_NETWORK_DEPTH:
        raise ValidationError(f"level must be within 1..{settings.MAX_NETWORK_DEPTH}")
    await get_agent(db, agent_id)
    res = await db.execute(
        select(Agent)
        .join(NetworkEdge, NetworkEdge.agent_id == Agent.id)
        .where(NetworkEdge.ancestor_id == agent_id, NetworkEdge.level == level)
        .order_by(Agent.id)
        .execution_options(populate_existing=True)
    )
    return list(res.scalars().all())


async def delete_agent(db: AsyncSession, agent_id: int) -> None:
    """
    Remove an agent and split its subtree off the tree.

    Direct downlines become roots (sponsor_id NULL). Every descendant loses the edges
    that pass through the removed agent (its level and above), and keeps the edges to
    ancestors between itself and the removed agent, so each remaining chain is still a
    contiguous 1..n run that matches the sponsor links.
    """
    async with atomic(db):
        await lock_agent(db, agent_id)

        res = await db.execute(
            select(NetworkEdge.level, NetworkEdge.agent_id).where(NetworkEdge.ancestor_id == agent_id)
        )
        by_level: dict[int, list[int]] = {}
        for level, descendant_id in res.all():
            by_level.setdefault(level, []).append(descendant_id)

        for level, descendant_ids in by_level.items():
            await db.execute(
                delete(NetworkEdge)
                .where(NetworkEdge.agent_id.in_(descendant_ids), NetworkEdge.level >= level)
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(NetworkEdge)
            .where(NetworkEdge.agent_id == agent_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Agent)
            .where(Agent.sponsor_id == agent_id)
            .values(sponsor_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Agent).where(Agent.id == agent_id).execution_options(synchronize_session=False)
        )

    logger.info("Deleted agent id=%s (%s descendants detached)", agent_id, sum(len(v) for v in by_level.values()))
