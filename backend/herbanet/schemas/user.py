# backend/herbanet/schemas/user.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from herbanet.core.enums import UserRole


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50)
    role: UserRole = UserRole.PELANGGAN
    phone_number: Optional[str] = Field(default=None, max_length=20)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole
    phone_number: Optional[str] = None
    is_active: bool
    created_at: datetime
