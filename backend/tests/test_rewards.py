# tests/test_rewards.py
from __future__ import annotations

import asyncio

import pytest

from herbanet.core.directory import promote_agent
from herbanet.core.enums import Rank, RewardClaimStatus
from herbanet.core.errors import AlreadyClaimed, InvalidState, NotFound, ValidationError
from herbanet.core.rewards import (
    check_eligibility,
    claim_reward,
    create_reward,
    list_claims,
    update_claim_status,
)


async def reward_ladder(db):
    return {
        rank: await create_reward(db, name=f"{rank.value} trip", required_rank=rank)
        for rank in (Rank.MANAGER, Rank.EXECUTIVE_MANAGER, Rank.DIRECTOR, Rank.EXECUTIVE_DIRECTOR)
    }


@pytest.mark.asyncio
async def test_promotion_only_grows_eligibility(db, make_agent):
    ladder = await reward_ladder(db)
    agent = await make_agent()
    await promote_agent(db, agent.id, Rank.MANAGER)

    before = {r.id for r in await check_eligibility(db, agent.id)}
    assert before == {ladder[Rank.MANAGER].id}

    await promote_agent(db, agent.id, Rank.DIRECTOR)
    after = {r.id for r in await check_eligibility(db, agent.id)}

    assert before <= after
    assert after == {ladder[Rank.MANAGER].id, ladder[Rank.EXECUTIVE_MANAGER].id, ladder[Rank.DIRECTOR].id}


@pytest.mark.asyncio
async def test_claimed_and_inactive_rewards_drop_out(db, make_agent):
    ladder = await reward_ladder(db)
    retired = await create_reward(db, name="Old gadget", required_rank=Rank.AGEN, is_active=False)
    agent = await make_agent()
    await promote_agent(db, agent.id, Rank.EXECUTIVE_MANAGER)

    await claim_reward(db, agent.id, ladder[Rank.MANAGER].id)

    eligible = [r.id for r in await check_eligibility(db, agent.id)]
    assert eligible == [ladder[Rank.EXECUTIVE_MANAGER].id]
    with pytest.raises(InvalidState):
        await claim_reward(db, agent.id, retired.id)


@pytest.mark.asyncio
async def test_claim_twice_is_already_claimed(db, make_agent):
    ladder = await reward_ladder(db)
    agent = await make_agent()
    await promote_agent(db, agent.id, Rank.MANAGER)

    claim = await claim_reward(db, agent.id, ladder[Rank.MANAGER].id)
    assert claim.status == RewardClaimStatus.PENDING

    with pytest.raises(AlreadyClaimed) as exc:
        await claim_reward(db, agent.id, ladder[Rank.MANAGER].id)
    assert exc.value.detail == "Reward already claimed"


@pytest.mark.asyncio
async def test_concurrent_claims_insert_one_row(db, sessionmaker, make_agent):
    ladder = await reward_ladder(db)
    agent = await make_agent()
    await promote_agent(db, agent.id, Rank.MANAGER)
    reward_id = ladder[Rank.MANAGER].id

    async def attempt():
        async with sessionmaker() as session:
            try:
                await claim_reward(session, agent.id, reward_id)
                return "claimed"
            except AlreadyClaimed:
                return "duplicate"

    outcomes = await asyncio.gather(attempt(), attempt(), attempt())

    assert sorted(outcomes) == ["claimed", "duplicate", "duplicate"]
    assert len(await list_claims(db, agent_id=agent.id)) == 1


@pytest.mark.asyncio
async def test_rank_below_requirement_cannot_claim(db, make_agent):
    ladder = await reward_ladder(db)
    agent = await make_agent()
    agent_id = agent.id

    with pytest.raises(InvalidState):
        await claim_reward(db, agent_id, ladder[Rank.DIRECTOR].id)
    with pytest.raises(NotFound):
        await claim_reward(db, agent_id, 9999)


@pytest.mark.asyncio
async def test_claim_decisions(db, make_agent):
    ladder = await reward_ladder(db)
    agent = await make_agent()
    await promote_agent(db, agent.id, Rank.MANAGER)
    claim = await claim_reward(db, agent.id, ladder[Rank.MANAGER].id)

    with pytest.raises(ValidationError):
        await update_claim_status(db, claim.id, RewardClaimStatus.PENDING)

    accepted = await update_claim_status(db, claim.id, RewardClaimStatus.ACCEPTED)
    assert accepted.status == RewardClaimStatus.ACCEPTED

    with pytest.raises(InvalidState):
        await update_claim_status(db, claim.id, RewardClaimStatus.REJECTED)
    assert [c.id for c in await list_claims(db, status=RewardClaimStatus.ACCEPTED)] == [claim.id]


@pytest.mark.asyncio
async def test_promotion_never_demotes(db, make_agent):
    agent = await make_agent()
    agent_id = agent.id
    await promote_agent(db, agent_id, Rank.DIRECTOR)

    with pytest.raises(InvalidState):
        await promote_agent(db, agent_id, Rank.MANAGER)
    same = await promote_agent(db, agent_id, Rank.DIRECTOR)
    assert same.rank == Rank.DIRECTOR
