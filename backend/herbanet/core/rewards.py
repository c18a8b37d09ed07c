# backend/herbanet/core/rewards.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.enums import Rank, RewardClaimStatus
from herbanet.core.errors import AlreadyClaimed, InvalidState, NotFound, ValidationError
from herbanet.crud.agent import get_agent
from herbanet.crud.rows import get_fresh, lock_and_get
from herbanet.db.unit_of_work import atomic
from herbanet.models.reward import Reward, RewardClaim

logger = logging.getLogger(__name__)


async def create_reward(
    db: AsyncSession,
    *,
    name: str,
    required_rank: Rank,
    description: Optional[str] = None,
    is_active: bool = True,
) -> Reward:
    if not name or not name.strip():
        raise ValidationError("Reward name is required")
    async with atomic(db):
        reward = Reward(
            name=name.strip(),
            required_rank=required_rank,
            description=description,
            is_active=is_active,
        )
        db.add(reward)
    return reward


async def list_rewards(db: AsyncSession, active_only: bool = False) -> list[Reward]:
    stmt = select(Reward)
    if active_only:
        stmt = stmt.where(Reward.is_active.is_(True))
    res = await db.execute(stmt.order_by(Reward.id))
    return list(res.scalars().all())


async def check_eligibility(db: AsyncSession, agent_id: int) -> list[Reward]:
    """
    Active rewards the agent's rank reaches (required rank at or below it) that the
    agent has not claimed yet. Promotion can only grow this set.
    """
    agent = await get_agent(db, agent_id)
    claimed = select(RewardClaim.reward_id).where(RewardClaim.agent_id == agent_id)
    res = await db.execute(
        select(Reward).where(
            Reward.is_active.is_(True),
            Reward.required_rank.in_(agent.rank.ranks_at_or_below()),
            Reward.id.not_in(claimed),
        )
    )
    return sorted(res.scalars().all(), key=lambda r: (r.required_rank.order, r.id))


async def claim_reward(db: AsyncSession, agent_id: int, reward_id: int, notifier=None) -> RewardClaim:
    try:
        async with atomic(db):
            agent = await get_agent(db, agent_id)
            reward = await get_fresh(db, Reward, reward_id)
            if reward is None:
                raise NotFound(f"Reward {reward_id} not found")
            if not reward.is_active:
                raise InvalidState(f"Reward '{reward.name}' is no longer available")
            if not agent.rank.at_least(reward.required_rank):
                raise InvalidState(
                    f"Reward '{reward.name}' requires rank {reward.required_rank.value}; "
                    f"agent is {agent.rank.value}"
                )
            res = await db.execute(
                select(RewardClaim.id).where(RewardClaim.agent_id == agent_id, RewardClaim.reward_id == reward_id)
            )
            if res.first() is not None:
                raise AlreadyClaimed("Reward already claimed")

            claim = RewardClaim(agent_id=agent_id, reward_id=reward_id, status=RewardClaimStatus.PENDING)
            db.add(claim)
    except IntegrityError as e:
        # Lost a race against a concurrent claim of the same pair.
        raise AlreadyClaimed("Reward already claimed") from e

    logger.info("Agent %s claimed reward %s (%s)", agent.agent_code, reward.id, reward.name)
    if notifier is not None:
        await notifier.reward_claimed(agent, reward)
    return claim


async def list_claims(
    db: AsyncSession,
    agent_id: Optional[int] = None,
    status: Optional[RewardClaimStatus] = None,
) -> list[RewardClaim]:
    stmt = select(RewardClaim)
    if agent_id is not None:
        stmt = stmt.where(RewardClaim.agent_id == agent_id)
    if status is not None:
        stmt = stmt.where(RewardClaim.status == status)
    res = await db.execute(stmt.order_by(RewardClaim.claimed_at.desc(), RewardClaim.id.desc()))
    return list(res.scalars().all())


async def update_claim_status(db: AsyncSession, claim_id: int, status: RewardClaimStatus) -> RewardClaim:
    """Admin decision on a claim: PENDING -> ACCEPTED | REJECTED, once."""
    if status == RewardClaimStatus.PENDING:
        raise ValidationError("A claim can only be ACCEPTED or REJECTED")
    async with atomic(db):
        claim = await lock_and_get(db, RewardClaim, claim_id)
        if claim is None:
            raise NotFound(f"Reward claim {claim_id} not found")
        if claim.status != RewardClaimStatus.PENDING:
            raise InvalidState(f"Reward claim {claim_id} is already {claim.status.value}")
        claim.status = status
    logger.info("Reward claim %s -> %s", claim_id, status.value)
    return claim
