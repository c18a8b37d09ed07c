# backend/herbanet/schemas/commission.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herbanet.core.enums import CommissionKind, CommissionStatus, PackageTier


class ScheduleEntryUpsert(BaseModel):
    model_config = ConfigDict(extra="forbid")

    commission_kind: CommissionKind
    # None = applies to every tier
    package_tier: Optional[PackageTier] = None
    level: int = Field(ge=1, le=15)
    nominal: Decimal = Field(ge=0, max_digits=15, decimal_places=2)


class ScheduleNominalUpdate(BaseModel):
    nominal: Decimal = Field(ge=0, max_digits=15, decimal_places=2)


class ScheduleEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    commission_kind: CommissionKind
    package_tier: Optional[PackageTier] = None
    level: int
    nominal: Decimal


class CommissionEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: int
    transaction_id: int
    commission_kind: CommissionKind
    level: int
    nominal: Decimal
    status: CommissionStatus
    paid_at: Optional[datetime] = None
    created_at: datetime


class SettlementOut(BaseModel):
    transaction_id: int
    entry_count: int
    total_credited: Decimal
