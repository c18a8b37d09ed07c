# backend/herbanet/db/unit_of_work.py
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back on any exception.

    Usage:
        async with atomic(db):
            db.add(row)
    """
    try:
        yield db
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.debug("Rolled back unit of work: %r", e)
        raise
