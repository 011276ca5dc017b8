"""
vestvault contracts:
- AssetToken: reference fungible asset ledger
- LockedBalances: reference locking subsystem
- AccountRegistry: accounts and delegate signers
- VestingInstance: release-schedule engine
- VestingFactory: instance creation and beneficiary lookup
"""

from .accounts import AccountRegistry
from .asset_ledger import AssetToken
from .locked_balance import LockedBalances, PendingWithdrawal
from .release_schedule import (
    ReleaseMode,
    ReleaseSchedule,
    VestingScheduleData,
    create_release_schedule,
    releasable_amount,
    vested_amount,
)
from .vesting_factory import VestingFactory
from .vesting_instance import InstanceEvent, VestingInstance

__all__ = [
    "AccountRegistry",
    "AssetToken",
    "InstanceEvent",
    "LockedBalances",
    "PendingWithdrawal",
    "ReleaseMode",
    "ReleaseSchedule",
    "VestingFactory",
    "VestingInstance",
    "VestingScheduleData",
    "create_release_schedule",
    "releasable_amount",
    "vested_amount",
]
