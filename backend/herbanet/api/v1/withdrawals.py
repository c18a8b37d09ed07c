# backend/herbanet/api/v1/withdrawals.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.api.deps.gateways import get_notifier, get_transfer_gateway
from herbanet.core.notifications import Notifier
from herbanet.core.withdrawals import (
    available_balance,
    confirm_withdrawal,
    dispatch_withdrawal,
    get_withdrawal,
    list_withdrawals,
    reconcile_stuck_withdrawals,
    reconcile_withdrawal,
    reject_withdrawal,
    request_withdrawal,
)
from herbanet.crud.agent import get_agent
from herbanet.db.session import get_db
from herbanet.integrations.transfer import TransferGateway
from herbanet.schemas.withdrawal import (
    BalanceOut,
    ReconcileOut,
    WithdrawalCreate,
    WithdrawalOut,
    WithdrawalReject,
)

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post("", response_model=WithdrawalOut, status_code=status.HTTP_201_CREATED)
async def request_withdrawal_endpoint(payload: WithdrawalCreate, db: AsyncSession = Depends(get_db)):
    return await request_withdrawal(db, payload.agent_id, payload.nominal)


@router.get("/agents/{agent_id}", response_model=List[WithdrawalOut])
async def list_agent_withdrawals_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    return await list_withdrawals(db, agent_id)


@router.get("/agents/{agent_id}/balance", response_model=BalanceOut)
async def agent_balance_endpoint(agent_id: int, db: AsyncSession = Depends(get_db)):
    agent = await get_agent(db, agent_id)
    return BalanceOut(
        agent_id=agent.id,
        total_commission=agent.total_commission,
        payable_balance=agent.payable_balance,
        available_balance=await available_balance(db, agent_id),
    )


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile_stuck_endpoint(
    db: AsyncSession = Depends(get_db),
    gateway: TransferGateway = Depends(get_transfer_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    return await reconcile_stuck_withdrawals(db, gateway, notifier=notifier)


@router.get("/{request_id}", response_model=WithdrawalOut)
async def get_withdrawal_endpoint(request_id: int, db: AsyncSession = Depends(get_db)):
    return await get_withdrawal(db, request_id)


@router.post("/{request_id}/dispatch", response_model=WithdrawalOut)
async def dispatch_withdrawal_endpoint(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: TransferGateway = Depends(get_transfer_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    return await dispatch_withdrawal(db, request_id, gateway, notifier=notifier)


@router.post("/{request_id}/confirm", response_model=WithdrawalOut)
async def confirm_withdrawal_endpoint(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await confirm_withdrawal(db, request_id, notifier=notifier)


@router.post("/{request_id}/reject", response_model=WithdrawalOut)
async def reject_withdrawal_endpoint(
    request_id: int,
    payload: WithdrawalReject,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await reject_withdrawal(db, request_id, payload.reason, notifier=notifier)


@router.post("/{request_id}/reconcile", response_model=WithdrawalOut)
async def reconcile_withdrawal_endpoint(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: TransferGateway = Depends(get_transfer_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    return await reconcile_withdrawal(db, request_id, gateway, notifier=notifier)
