# backend/herbanet/schemas/transaction.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herbanet.core.enums import PackageTier, TransactionKind, TransactionStatus


class TransactionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: TransactionKind
    buyer_agent_id: Optional[int] = None
    amount: Decimal = Field(ge=0, max_digits=15, decimal_places=2)
    box_count: int = Field(default=0, ge=0)
    package_tier: Optional[PackageTier] = None
    payment_method: Optional[str] = Field(default=None, max_length=40)
    payment_reference: Optional[str] = Field(default=None, max_length=100)
    note: Optional[str] = None


class TransactionAdvance(BaseModel):
    status: TransactionStatus


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    buyer_agent_id: Optional[int] = None
    kind: TransactionKind
    status: TransactionStatus
    amount: Decimal
    box_count: int
    package_tier: Optional[PackageTier] = None
    payment_method: Optional[str] = None
    note: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class TransactionStatusOut(BaseModel):
    transaction: TransactionOut
    commission_entries: int = 0
