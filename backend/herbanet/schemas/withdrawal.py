# backend/herbanet/schemas/withdrawal.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herbanet.core.enums import WithdrawalStatus


class WithdrawalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    agent_id: int
    nominal: Decimal = Field(gt=0, max_digits=15, decimal_places=2)


class WithdrawalReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class WithdrawalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: int
    nominal: Decimal
    status: WithdrawalStatus
    transfer_reference: Optional[str] = None
    transfer_fee: Optional[Decimal] = None
    note: Optional[str] = None
    submitted_at: datetime
    dispatched_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None


class BalanceOut(BaseModel):
    agent_id: int
    total_commission: Decimal
    payable_balance: Decimal
    available_balance: Decimal


class ReconcileOut(BaseModel):
    confirmed: int
    rejected: int
    pending: int
    skipped: int
    errors: int
