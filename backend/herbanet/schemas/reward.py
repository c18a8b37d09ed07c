# backend/herbanet/schemas/reward.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herbanet.core.enums import Rank, RewardClaimStatus


class RewardCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    required_rank: Rank
    description: Optional[str] = None
    is_active: bool = True


class RewardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    required_rank: Rank
    description: Optional[str] = None
    is_active: bool


class RewardClaimCreate(BaseModel):
    agent_id: int


class RewardClaimDecision(BaseModel):
    status: RewardClaimStatus


class RewardClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: int
    reward_id: int
    status: RewardClaimStatus
    claimed_at: datetime
