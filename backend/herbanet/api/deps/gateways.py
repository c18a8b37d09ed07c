# backend/herbanet/api/deps/gateways.py
from __future__ import annotations

from herbanet.core.notifications import Notifier
from herbanet.integrations.messaging import WablasMessagingGateway
from herbanet.integrations.transfer import FlipTransferGateway, TransferGateway


def get_transfer_gateway() -> TransferGateway:
    return FlipTransferGateway()


def get_notifier() -> Notifier:
    return Notifier(WablasMessagingGateway())
