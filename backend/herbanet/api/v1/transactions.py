# backend/herbanet/api/v1/transactions.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.api.deps.gateways import get_notifier
from herbanet.core.commissions import settle_commissions
from herbanet.core.notifications import Notifier
from herbanet.core.transactions import advance_transaction, create_transaction, get_transaction
from herbanet.db.session import get_db
from herbanet.schemas.commission import SettlementOut
from herbanet.schemas.transaction import (
    TransactionAdvance,
    TransactionCreate,
    TransactionOut,
    TransactionStatusOut,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction_endpoint(payload: TransactionCreate, db: AsyncSession = Depends(get_db)):
    return await create_transaction(db, **payload.model_dump())


@router.get("/{transaction_id}", response_model=TransactionOut)
async def get_transaction_endpoint(transaction_id: int, db: AsyncSession = Depends(get_db)):
    return await get_transaction(db, transaction_id)


@router.post("/{transaction_id}/status", response_model=TransactionStatusOut)
async def advance_transaction_endpoint(
    transaction_id: int,
    payload: TransactionAdvance,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    change = await advance_transaction(db, transaction_id, payload.status, notifier=notifier)
    return TransactionStatusOut(
        transaction=TransactionOut.model_validate(change.transaction),
        commission_entries=change.settlement.entry_count if change.settlement else 0,
    )


@router.post("/{transaction_id}/settle", response_model=SettlementOut)
async def settle_transaction_endpoint(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    result = await settle_commissions(db, transaction_id, notifier=notifier)
    return SettlementOut(
        transaction_id=result.transaction_id,
        entry_count=result.entry_count,
        total_credited=result.total_credited,
    )
