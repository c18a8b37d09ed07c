# backend/herbanet/core/notifications.py
"""
WhatsApp notifications for agents.

Sent only after the owning unit of work committed. Delivery is best effort: a failed
or rejected message is logged and reported as False, it never undoes the business
operation that triggered it.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from herbanet.core.enums import WithdrawalStatus
from herbanet.core.errors import UpstreamFailure, ValidationError
from herbanet.integrations.messaging import MessagingGateway
from herbanet.models.agent import Agent
from herbanet.models.commission_entry import CommissionEntry
from herbanet.models.reward import Reward
from herbanet.models.withdrawal_request import WithdrawalRequest

logger = logging.getLogger(__name__)


def format_rupiah(amount) -> str:
    value = Decimal(amount).quantize(Decimal("1"))
    return "Rp " + f"{value:,}".replace(",", ".")


class Notifier:
    def __init__(self, gateway: MessagingGateway):
        self.gateway = gateway

    async def send(self, phone, text: str) -> bool:
        if not phone:
            logger.debug("Skipping notification: no phone number")
            return False
        try:
            result = await self.gateway.send_message(phone, text)
        except (ValidationError, UpstreamFailure) as e:
            logger.warning("Notification to %s failed: %s", phone, e.detail)
            return False
        return result.success

    async def send_bulk(self, recipients: Iterable[tuple[str, str]]) -> dict[str, int]:
        """recipients: (phone, text) pairs. Returns sent / failed counts."""
        counts = {"sent": 0, "failed": 0}
        for phone, text in recipients:
            if await self.send(phone, text):
                counts["sent"] += 1
            else:
                counts["failed"] += 1
        return counts

    async def agent_registered(self, agent: Agent) -> bool:
        text = (
            f"Selamat bergabung, {agent.full_name}!\n"
            f"Kode agen Anda: {agent.agent_code}\n"
            f"Link referral: {agent.referral_link}"
        )
        return await self.send(agent.phone_number, text)

    async def commission_credited(self, agent: Agent, entry: CommissionEntry) -> bool:
        text = (
            f"Halo {agent.full_name}, komisi {entry.commission_kind.value} level {entry.level} "
            f"sebesar {format_rupiah(entry.nominal)} telah masuk ke saldo Anda."
        )
        return await self.send(agent.phone_number, text)

    async def reward_claimed(self, agent: Agent, reward: Reward) -> bool:
        text = (
            f"Halo {agent.full_name}, klaim reward '{reward.name}' Anda sudah kami terima "
            f"dan sedang diproses."
        )
        return await self.send(agent.phone_number, text)

    async def withdrawal_processed(self, agent: Agent, req: WithdrawalRequest) -> bool:
        amount = format_rupiah(req.nominal)
        if req.status == WithdrawalStatus.DONE:
            text = f"Halo {agent.full_name}, penarikan {amount} telah berhasil ditransfer."
        elif req.status == WithdrawalStatus.REJECTED:
            reason = f" Alasan: {req.note}" if req.note else ""
            text = f"Halo {agent.full_name}, penarikan {amount} ditolak.{reason}"
        else:
            text = f"Halo {agent.full_name}, penarikan {amount} sedang diproses."
        return await self.send(agent.phone_number, text)

    async def stock_alert(self, agent: Agent, minimum: int) -> bool:
        text = (
            f"Halo {agent.full_name}, stok Anda tinggal {agent.stock_count} box "
            f"(minimum {minimum} box). Segera lakukan pemesanan ulang."
        )
        return await self.send(agent.phone_number, text)
