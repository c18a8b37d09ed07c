# backend/herbanet/crud/rows.py
from __future__ import annotations

from typing import Optional, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


async def get_fresh(db: AsyncSession, model: type[ModelT], row_id: int) -> Optional[ModelT]:
    """
    Load a row by primary key, overwriting whatever the identity map holds.
    Balances are moved with SQL-side increments, so cached instances can be stale.
    """
    stmt = select(model).where(model.id == row_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def lock_and_get(db: AsyncSession, model: type[ModelT], row_id: int) -> Optional[ModelT]:
    """
    Take the write lock on one row, then return its current state.

    A no-op UPDATE takes the row lock on PostgreSQL and the database write lock on
    SQLite (which has no SELECT ... FOR UPDATE), so the read below happens inside the
    serialized section on both backends.
    """
    stmt = (
        update(model)
        .where(model.id == row_id)
        .values(updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    if not res.rowcount:
        return None
    return await get_fresh(db, model, row_id)
