# backend/herbanet/core/enums.py

from __future__ import annotations

import enum


class Rank(str, enum.Enum):
    AGEN = "AGEN"
    MANAGER = "MANAGER"
    EXECUTIVE_MANAGER = "EXECUTIVE_MANAGER"
    DIRECTOR = "DIRECTOR"
    EXECUTIVE_DIRECTOR = "EXECUTIVE_DIRECTOR"
    SENIOR_EXECUTIVE_DIRECTOR = "SENIOR_EXECUTIVE_DIRECTOR"

    @property
    def order(self) -> int:
        return _RANK_ORDER.index(self)

    def at_least(self, other: "Rank") -> bool:
        return self.order >= other.order

    def ranks_at_or_below(self) -> list["Rank"]:
        return list(_RANK_ORDER[: self.order + 1])


_RANK_ORDER = (
    Rank.AGEN,
    Rank.MANAGER,
    Rank.EXECUTIVE_MANAGER,
    Rank.DIRECTOR,
    Rank.EXECUTIVE_DIRECTOR,
    Rank.SENIOR_EXECUTIVE_DIRECTOR,
)


class PackageTier(str, enum.Enum):
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

    @property
    def order(self) -> int:
        return _TIER_ORDER.index(self)

    def is_upgrade_to(self, other: "PackageTier") -> bool:
        return other.order > self.order


_TIER_ORDER = (PackageTier.SILVER, PackageTier.GOLD, PackageTier.PLATINUM)


class AgentType(str, enum.Enum):
    AGEN = "AGEN"
    STOKIS = "STOKIS"
    DISTRIBUTOR = "DISTRIBUTOR"


class UserRole(str, enum.Enum):
    PELANGGAN = "PELANGGAN"
    AGEN = "AGEN"
    ADMIN = "ADMIN"


class Gender(str, enum.Enum):
    PRIA = "PRIA"
    WANITA = "WANITA"


class TransactionKind(str, enum.Enum):
    PACKAGE = "PACKAGE"
    UPGRADE = "UPGRADE"
    REPEAT_ORDER = "REPEAT_ORDER"
    STOCK_ORDER = "STOCK_ORDER"
    CUSTOMER = "CUSTOMER"


class TransactionStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    ARRIVED_AT_CITY = "ARRIVED_AT_CITY"
    RECEIVED = "RECEIVED"
    DONE = "DONE"

    @property
    def order(self) -> int:
        return _STATUS_PIPELINE.index(self)


_STATUS_PIPELINE = (
    TransactionStatus.PROCESSING,
    TransactionStatus.PACKED,
    TransactionStatus.SHIPPED,
    TransactionStatus.ARRIVED_AT_CITY,
    TransactionStatus.RECEIVED,
    TransactionStatus.DONE,
)


class CommissionKind(str, enum.Enum):
    SPONSOR = "SPONSOR"
    REPEAT_ORDER = "REPEAT_ORDER"
    UPGRADE = "UPGRADE"


# Transaction kinds that pay commission upline; anything else settles to nothing.
COMMISSION_KIND_BY_TRANSACTION: dict[TransactionKind, CommissionKind] = {
    TransactionKind.PACKAGE: CommissionKind.SPONSOR,
    TransactionKind.REPEAT_ORDER: CommissionKind.REPEAT_ORDER,
    TransactionKind.UPGRADE: CommissionKind.UPGRADE,
}


class CommissionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class WithdrawalStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in {WithdrawalStatus.DONE, WithdrawalStatus.REJECTED}


class RewardClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
