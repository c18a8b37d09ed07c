# backend/herbanet/api/v1/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.users import create_user, get_user
from herbanet.db.session import get_db
from herbanet.schemas.user import UserCreate, UserOut

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    return await create_user(db, username=payload.username, role=payload.role, phone_number=payload.phone_number)


@router.get("/{user_id}", response_model=UserOut)
async def get_user_endpoint(user_id: int, db: AsyncSession = Depends(get_db)):
    return await get_user(db, user_id)
