# backend/herbanet/api/v1/commissions.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.commissions import list_commissions
from herbanet.core.enums import CommissionKind
from herbanet.core.schedule import list_schedule, update_schedule_nominal, upsert_schedule_entry
from herbanet.db.session import get_db
from herbanet.schemas.commission import (
    CommissionEntryOut,
    ScheduleEntryOut,
    ScheduleEntryUpsert,
    ScheduleNominalUpdate,
)

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.get("/schedule", response_model=List[ScheduleEntryOut])
async def list_schedule_endpoint(kind: Optional[CommissionKind] = None, db: AsyncSession = Depends(get_db)):
    return await list_schedule(db, kind)


@router.put("/schedule", response_model=ScheduleEntryOut)
async def upsert_schedule_endpoint(payload: ScheduleEntryUpsert, db: AsyncSession = Depends(get_db)):
    return await upsert_schedule_entry(
        db,
        kind=payload.commission_kind,
        package_tier=payload.package_tier,
        level=payload.level,
        nominal=payload.nominal,
    )


@router.patch("/schedule/{entry_id}", response_model=ScheduleEntryOut)
async def update_schedule_endpoint(
    entry_id: int,
    payload: ScheduleNominalUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await update_schedule_nominal(db, entry_id, payload.nominal)


@router.get("/agents/{agent_id}", response_model=List[CommissionEntryOut])
async def list_agent_commissions_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await list_commissions(db, agent_id)
