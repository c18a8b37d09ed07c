# backend/herbanet/core/withdrawals.py
"""
Withdrawal lifecycle.

    PENDING --dispatch--> PROCESSING --confirm--> DONE
       |                      |
       +------reject----------+--> REJECTED

What an agent may still withdraw is never stored; it is payable_balance minus every
request that is not REJECTED, computed inside the same locked unit that creates a
request. Dispatch is two-phase: the PROCESSING transition is committed before the
gateway is called, so a payout can never be sent for a request the database does
not know is in flight. Requests stuck in PROCESSING are settled by reconciliation.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from herbanet.core.config import settings
from herbanet.core.enums import CommissionStatus, WithdrawalStatus
from herbanet.core.errors import InsufficientBalance, InvalidState, NotFound, UpstreamFailure, ValidationError
from herbanet.core.money import ZERO, require_positive, to_money
from herbanet.crud.agent import get_agent, lock_agent
from herbanet.crud.rows import get_fresh, lock_and_get
from herbanet.db.unit_of_work import atomic
from herbanet.integrations.transfer import (
    TransferGateway,
    TransferOrder,
    TransferStatus,
    compute_transfer_fee,
)
from herbanet.models.agent import Agent
from herbanet.models.commission_entry import CommissionEntry
from herbanet.models.withdrawal_request import WithdrawalRequest

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _sum_withdrawals(db: AsyncSession, agent_id: int, *statuses: WithdrawalStatus) -> Decimal:
    res = await db.execute(
        select(func.coalesce(func.sum(WithdrawalRequest.nominal), 0)).where(
            WithdrawalRequest.agent_id == agent_id,
            WithdrawalRequest.status.in_(statuses),
        )
    )
    return to_money(res.scalar_one())


async def available_balance(db: AsyncSession, agent_id: int) -> Decimal:
    """payable_balance minus every PENDING, PROCESSING or DONE request."""
    agent = await get_agent(db, agent_id)
    committed = await _sum_withdrawals(
        db, agent_id, WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING, WithdrawalStatus.DONE
    )
    return to_money(agent.payable_balance) - committed


async def get_withdrawal(db: AsyncSession, request_id: int) -> WithdrawalRequest:
    req = await get_fresh(db, WithdrawalRequest, request_id)
    if req is None:
        raise NotFound(f"Withdrawal request {request_id} not found")
    return req


async def _lock_request(db: AsyncSession, request_id: int) -> WithdrawalRequest:
    req = await lock_and_get(db, WithdrawalRequest, request_id)
    if req is None:
        raise NotFound(f"Withdrawal request {request_id} not found")
    return req


async def list_withdrawals(db: AsyncSession, agent_id: int) -> list[WithdrawalRequest]:
    await get_agent(db, agent_id)
    res = await db.execute(
        select(WithdrawalRequest)
        .where(WithdrawalRequest.agent_id == agent_id)
        .order_by(WithdrawalRequest.submitted_at.desc(), WithdrawalRequest.id.desc())
    )
    return list(res.scalars().all())


async def request_withdrawal(db: AsyncSession, agent_id: int, nominal) -> WithdrawalRequest:
    amount = require_positive(nominal, "nominal")

    async with atomic(db):
        # Serializes concurrent requests of one agent; the balance check below is then exact.
        agent = await lock_agent(db, agent_id)
        committed = await _sum_withdrawals(
            db, agent_id, WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING, WithdrawalStatus.DONE
        )
        available = to_money(agent.payable_balance) - committed
        if amount > available:
            raise InsufficientBalance(f"Insufficient balance: available {available}, requested {amount}")

        req = WithdrawalRequest(agent_id=agent_id, nominal=amount, status=WithdrawalStatus.PENDING)
        db.add(req)

    logger.info("Withdrawal request %s: agent %s asked for %s", req.id, agent.agent_code, amount)
    return req


def _missing_bank_details(agent: Agent) -> bool:
    return not (agent.bank_account_number and agent.bank_code)


async def _reject(db: AsyncSession, request_id: int, note: str) -> WithdrawalRequest:
    async with atomic(db):
        req = await _lock_request(db, request_id)
        if req.status.is_terminal:
            return req
        req.status = WithdrawalStatus.REJECTED
        req.note = note
        req.processed_at = _now()
    logger.warning("Withdrawal request %s rejected: %s", request_id, note)
    return req


async def dispatch_withdrawal(
    db: AsyncSession,
    request_id: int,
    gateway: TransferGateway,
    notifier=None,
) -> WithdrawalRequest:
    # Phase 1: claim the request (PENDING -> PROCESSING) and commit before any money moves.
    async with atomic(db):
        req = await _lock_request(db, request_id)
        if req.status != WithdrawalStatus.PENDING:
            raise InvalidState(
                f"Withdrawal request {request_id} is {req.status.value}; only PENDING requests can be dispatched"
            )
        agent = await get_agent(db, req.agent_id)
        if _missing_bank_details(agent):
            req.status = WithdrawalStatus.REJECTED
            req.note = "Agent has no bank account on file"
            req.processed_at = _now()
        else:
            req.status = WithdrawalStatus.PROCESSING
            req.dispatched_at = _now()
            req.transfer_fee = compute_transfer_fee(req.nominal)

    if req.status == WithdrawalStatus.REJECTED:
        logger.warning("Withdrawal request %s rejected: %s", request_id, req.note)
        if notifier is not None:
            await notifier.withdrawal_processed(agent, req)
        return req

    # Phase 2: talk to the gateway outside any open transaction.
    order = TransferOrder(
        account_number=agent.bank_account_number,
        bank_code=agent.bank_code,
        amount=req.nominal,
        recipient_name=agent.bank_account_name or agent.full_name,
        remark=f"WD {agent.agent_code}",
        idempotency_key=f"withdrawal-{req.id}",
    )
    try:
        result = await asyncio.wait_for(gateway.transfer(order), timeout=settings.GATEWAY_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Transfer for withdrawal %s timed out", request_id)
        req = await _reject(db, request_id, "Transfer timed out")
        if notifier is not None:
            await notifier.withdrawal_processed(agent, req)
        return req
    except (UpstreamFailure, ValidationError) as e:
        req = await _reject(db, request_id, f"Transfer failed: {e.detail}")
        if notifier is not None:
            await notifier.withdrawal_processed(agent, req)
        return req
    except Exception:
        # Unknown gateway error: the request still must not stay PROCESSING.
        logger.exception("Transfer for withdrawal %s raised an unexpected error", request_id)
        await _reject(db, request_id, "Transfer failed: unexpected gateway error")
        raise

    # Phase 3: record what the gateway told us.
    if result.status == TransferStatus.FAILED:
        req = await _reject(db, request_id, "Transfer refused by gateway")
        if notifier is not None:
            await notifier.withdrawal_processed(agent, req)
        return req

    async with atomic(db):
        req = await _lock_request(db, request_id)
        req.transfer_reference = result.transfer_id
        if result.fee is not None:
            req.transfer_fee = to_money(result.fee)
    logger.info("Withdrawal %s sent to gateway as %s (%s)", request_id, result.transfer_id, result.status.value)

    if result.status == TransferStatus.SUCCESS:
        return await confirm_withdrawal(db, request_id, notifier=notifier)
    return req


async def _mark_commissions_paid(db: AsyncSession, agent_id: int, now: datetime) -> int:
    """
    Oldest PENDING ledger rows become PAID while the DONE withdrawals cover them.
    An entry is never split: one that does not fit stays PENDING for the next payout.
    """
    withdrawn = await _sum_withdrawals(db, agent_id, WithdrawalStatus.DONE)
    res = await db.execute(
        select(func.coalesce(func.sum(CommissionEntry.nominal), 0)).where(
            CommissionEntry.agent_id == agent_id,
            CommissionEntry.status == CommissionStatus.PAID,
        )
    )
    remaining = withdrawn - to_money(res.scalar_one())
    if remaining <= ZERO:
        return 0

    res = await db.execute(
        select(CommissionEntry)
        .where(CommissionEntry.agent_id == agent_id, CommissionEntry.status == CommissionStatus.PENDING)
        .order_by(CommissionEntry.created_at, CommissionEntry.id)
    )
    marked = 0
    for entry in res.scalars():
        if entry.nominal > remaining:
            break
        entry.status = CommissionStatus.PAID
        entry.paid_at = now
        remaining -= entry.nominal
        marked += 1
    return marked


async def confirm_withdrawal(db: AsyncSession, request_id: int, notifier=None) -> WithdrawalRequest:
    async with atomic(db):
        req = await _lock_request(db, request_id)
        if req.status != WithdrawalStatus.PROCESSING:
            raise InvalidState(
                f"Withdrawal request {request_id} is {req.status.value}; only PROCESSING requests can be confirmed"
            )
        # One payout reconciliation per agent at a time.
        await lock_agent(db, req.agent_id)
        now = _now()
        req.status = WithdrawalStatus.DONE
        req.processed_at = now
        await db.flush()
        marked = await _mark_commissions_paid(db, req.agent_id, now)

    logger.info("Withdrawal %s confirmed; %s commission entries marked PAID", request_id, marked)
    if notifier is not None:
        agent = await get_fresh(db, Agent, req.agent_id)
        if agent is not None:
            await notifier.withdrawal_processed(agent, req)
    return req


async def reject_withdrawal(
    db: AsyncSession,
    request_id: int,
    reason: Optional[str] = None,
    notifier=None,
) -> WithdrawalRequest:
    async with atomic(db):
        req = await _lock_request(db, request_id)
        if req.status.is_terminal:
            raise InvalidState(f"Withdrawal request {request_id} is already {req.status.value}")
        req.status = WithdrawalStatus.REJECTED
        req.note = reason
        req.processed_at = _now()

    logger.info("Withdrawal %s rejected (%s)", request_id, reason or "no reason given")
    if notifier is not None:
        agent = await get_fresh(db, Agent, req.agent_id)
        if agent is not None:
            await notifier.withdrawal_processed(agent, req)
    return req


async def reconcile_withdrawal(
    db: AsyncSession,
    request_id: int,
    gateway: TransferGateway,
    notifier=None,
) -> WithdrawalRequest:
    """Ask the gateway what became of a PROCESSING request and apply the answer."""
    req = await get_withdrawal(db, request_id)
    if req.status != WithdrawalStatus.PROCESSING:
        raise InvalidState(f"Withdrawal request {request_id} is {req.status.value}; nothing to reconcile")
    if not req.transfer_reference:
        raise InvalidState(f"Withdrawal request {request_id} has no transfer reference yet")

    status = await asyncio.wait_for(
        gateway.check_status(req.transfer_reference),
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
    if status == TransferStatus.SUCCESS:
        return await confirm_withdrawal(db, request_id, notifier=notifier)
    if status == TransferStatus.FAILED:
        return await reject_withdrawal(db, request_id, "Transfer failed at gateway", notifier=notifier)
    return req


async def reconcile_stuck_withdrawals(
    db: AsyncSession,
    gateway: TransferGateway,
    now: Optional[datetime] = None,
    notifier=None,
) -> dict[str, int]:
    """
    Sweep requests that have sat in PROCESSING longer than WITHDRAWAL_STUCK_AFTER_MINUTES.
    Without a transfer reference the dispatch never reached the gateway, so the request
    is rejected; otherwise the gateway decides.
    """
    cutoff = (now or _now()) - timedelta(minutes=settings.WITHDRAWAL_STUCK_AFTER_MINUTES)
    res = await db.execute(
        select(WithdrawalRequest.id, WithdrawalRequest.transfer_reference)
        .where(
            WithdrawalRequest.status == WithdrawalStatus.PROCESSING,
            WithdrawalRequest.dispatched_at < cutoff,
        )
        .order_by(WithdrawalRequest.id)
    )
    stuck = res.all()

    outcome = {"confirmed": 0, "rejected": 0, "pending": 0, "skipped": 0, "errors": 0}
    for request_id, reference in stuck:
        try:
            if reference:
                req = await reconcile_withdrawal(db, request_id, gateway, notifier=notifier)
            else:
                req = await reject_withdrawal(
                    db, request_id, "Transfer dispatch did not complete", notifier=notifier
                )
        except InvalidState as e:
            # Settled by someone else since the listing.
            logger.info("Skipping withdrawal %s: %s", request_id, e.detail)
            outcome["skipped"] += 1
            continue
        except (UpstreamFailure, asyncio.TimeoutError) as e:
            logger.warning("Could not reconcile withdrawal %s: %r", request_id, e)
            outcome["errors"] += 1
            continue
        if req.status == WithdrawalStatus.DONE:
            outcome["confirmed"] += 1
        elif req.status == WithdrawalStatus.REJECTED:
            outcome["rejected"] += 1
        else:
            outcome["pending"] += 1

    if stuck:
        logger.info("Reconciled %s stuck withdrawals: %s", len(stuck), outcome)
    return outcome
