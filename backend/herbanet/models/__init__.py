# Import models here so Alembic can discover metadata.
from herbanet.models.user import User  # noqa: F401

# Network
from herbanet.models.agent import Agent  # noqa: F401
from herbanet.models.network_edge import NetworkEdge  # noqa: F401

# Orders and commission ledger
from herbanet.models.transaction import Transaction  # noqa: F401
from herbanet.models.commission_schedule import CommissionScheduleEntry  # noqa: F401
from herbanet.models.commission_entry import CommissionEntry  # noqa: F401
from herbanet.models.withdrawal_request import WithdrawalRequest  # noqa: F401

# Rewards
from herbanet.models.reward import Reward, RewardClaim  # noqa: F401
