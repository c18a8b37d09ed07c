# backend/herbanet/schemas/agent.py
from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from herbanet.core.enums import AgentType, Gender, PackageTier, Rank

_NIK_RE = re.compile(r"^\d{16}$")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(value.strip().split())
    return v or None


class AgentRegister(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    sponsor_id: Optional[int] = None
    full_name: str = Field(min_length=1, max_length=200)
    province: str = Field(min_length=1, max_length=100)
    package_tier: PackageTier = PackageTier.SILVER

    national_id: Optional[str] = Field(default=None, max_length=16)
    gender: Optional[Gender] = None
    phone_number: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    kelurahan: Optional[str] = None
    kecamatan: Optional[str] = None
    city: Optional[str] = None

    bank_account_number: Optional[str] = Field(default=None, max_length=50)
    bank_code: Optional[str] = Field(default=None, max_length=20)
    bank_account_name: Optional[str] = None

    @field_validator("full_name", "province", "address", "kelurahan", "kecamatan", "city", "bank_account_name")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v)

    @field_validator("national_id")
    @classmethod
    def validate_national_id(cls, v: Optional[str]) -> Optional[str]:
        v = _clean_text(v)
        if v is not None and not _NIK_RE.match(v):
            raise ValueError("National id (NIK) must be exactly 16 digits.")
        return v


class AgentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    agent_code: str
    full_name: str
    province: str
    city: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None

    sponsor_id: Optional[int] = None
    package_tier: PackageTier
    rank: Rank
    agent_type: AgentType
    stock_count: int

    total_commission: Decimal
    payable_balance: Decimal
    referral_link: str
    created_at: datetime


class NetworkEdgeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    agent_id: int
    ancestor_id: int
    level: int


class UplineOut(BaseModel):
    agent_id: int
    edges: List[NetworkEdgeOut]


class PromoteRequest(BaseModel):
    rank: Rank
