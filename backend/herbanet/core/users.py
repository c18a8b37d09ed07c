# backend/herbanet/core/users.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.enums import UserRole
from herbanet.core.errors import Conflict, NotFound, ValidationError
from herbanet.db.unit_of_work import atomic
from herbanet.models.user import User


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    role: UserRole = UserRole.PELANGGAN,
    phone_number: Optional[str] = None,
) -> User:
    username = (username or "").strip().lower()
    if not username:
        raise ValidationError("username is required")
    try:
        async with atomic(db):
            exists = (await db.execute(select(User.id).where(User.username == username))).first()
            if exists:
                raise Conflict(f"Username '{username}' is taken")
            user = User(username=username, role=role, phone_number=phone_number, is_active=True)
            db.add(user)
    except IntegrityError as e:
        raise Conflict(f"Username '{username}' is taken") from e
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user
