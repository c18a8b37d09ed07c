# backend/herbanet/api/v1/rewards.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.api.deps.gateways import get_notifier
from herbanet.core.enums import RewardClaimStatus
from herbanet.core.notifications import Notifier
from herbanet.core.rewards import (
    check_eligibility,
    claim_reward,
    create_reward,
    list_claims,
    list_rewards,
    update_claim_status,
)
from herbanet.db.session import get_db
from herbanet.schemas.reward import (
    RewardClaimCreate,
    RewardClaimDecision,
    RewardClaimOut,
    RewardCreate,
    RewardOut,
)

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("", response_model=RewardOut, status_code=status.HTTP_201_CREATED)
async def create_reward_endpoint(payload: RewardCreate, db: AsyncSession = Depends(get_db)):
    return await create_reward(db, **payload.model_dump())


@router.get("", response_model=List[RewardOut])
async def list_rewards_endpoint(active_only: bool = False, db: AsyncSession = Depends(get_db)):
    return await list_rewards(db, active_only=active_only)


@router.get("/eligible/{agent_id}", response_model=List[RewardOut])
async def eligible_rewards_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await check_eligibility(db, agent_id)


@router.get("/claims", response_model=List[RewardClaimOut])
async def list_claims_endpoint(
    agent_id: Optional[int] = None,
    claim_status: Optional[RewardClaimStatus] = None,
    db: AsyncSession = Depends(get_db),
):
    return await list_claims(db, agent_id=agent_id, status=claim_status)


@router.patch("/claims/{claim_id}", response_model=RewardClaimOut)
async def decide_claim_endpoint(claim_id: int, payload: RewardClaimDecision, db: AsyncSession = Depends(get_db)):
    return await update_claim_status(db, claim_id, payload.status)


@router.post("/{reward_id}/claims", response_model=RewardClaimOut, status_code=status.HTTP_201_CREATED)
async def claim_reward_endpoint(
    reward_id: int,
    payload: RewardClaimCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await claim_reward(db, payload.agent_id, reward_id, notifier=notifier)
