from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from vestvault.core import config
from vestvault.core.interfaces import AssetLedger, CallResult
from vestvault.core.runtime import ExecutionEnvironment

logger = logging.getLogger(__name__)


@dataclass
class PendingWithdrawal:
    value: int
    available_at: int

    def to_dict(self) -> dict[str, int]:
        return {"value": self.value, "available_at": self.available_at}


@dataclass
class LockedAccount:
    nonvoting: int = 0
    pending: List[PendingWithdrawal] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.nonvoting + sum(p.value for p in self.pending)


class LockedBalances:
    """
    Locking subsystem holding part of an account's balance.

    ``lock`` pulls funds from the account into the subsystem's ledger address;
    ``unlock`` starts the unlocking period by turning locked value into a
    pending withdrawal; ``relock`` cancels a pending withdrawal and
    ``withdraw`` pays an available one back to the account.
    """

    def __init__(
        self,
        ledger: AssetLedger,
        env: ExecutionEnvironment,
        unlocking_period_seconds: int = config.UNLOCKING_PERIOD_SECONDS,
        address: str = "",
    ):
        if not isinstance(unlocking_period_seconds, int) or unlocking_period_seconds < 0:
            raise ValueError("Unlocking period must be a non-negative integer.")

        self.ledger = ledger
        self.env = env
        self.unlocking_period_seconds = unlocking_period_seconds
        self.address = address or "0x" + hashlib.sha3_256(b"locked-balances").digest()[-20:].hex()
        self.accounts: dict[str, LockedAccount] = {}
        env.register(self)

    def _account(self, account: str) -> LockedAccount:
        return self.accounts.setdefault(account.lower(), LockedAccount())

    def lock(self, account: str, amount: int) -> CallResult:
        if not isinstance(amount, int) or amount <= 0:
            return CallResult.fail(f"lock amount must be positive, got {amount!r}")
        moved = self.ledger.transfer(account, self.address, amount)
        if not moved:
            return CallResult.fail(f"lock transfer failed: {moved.reason}")

        entry = self._account(account)
        entry.nonvoting += amount
        logger.info("Account %s locked %s (nonvoting %s).", account, amount, entry.nonvoting)
        return CallResult.ok(amount=amount, nonvoting=entry.nonvoting)

    def unlock(self, account: str, amount: int) -> CallResult:
        entry = self.accounts.get(account.lower())
        if not isinstance(amount, int) or amount <= 0:
            return CallResult.fail(f"unlock amount must be positive, got {amount!r}")
        if entry is None or entry.nonvoting < amount:
            available = entry.nonvoting if entry else 0
            return CallResult.fail(f"unlock amount exceeds locked balance ({amount} > {available})")

        available_at = self.env.now() + self.unlocking_period_seconds
        entry.nonvoting -= amount
        entry.pending.append(PendingWithdrawal(amount, available_at))
        logger.info(
            "Account %s unlocking %s; withdrawable at %s.", account, amount, available_at
        )
        return CallResult.ok(amount=amount, available_at=available_at, index=len(entry.pending) - 1)

    def relock(self, account: str, index: int) -> CallResult:
        entry = self.accounts.get(account.lower())
        if entry is None or not 0 <= index < len(entry.pending):
            return CallResult.fail(f"bad pending withdrawal index {index}")

        pending = entry.pending.pop(index)
        entry.nonvoting += pending.value
        logger.info("Account %s relocked pending withdrawal %s (%s).", account, index, pending.value)
        return CallResult.ok(index=index, amount=pending.value)

    def withdraw(self, account: str, index: int) -> CallResult:
        entry = self.accounts.get(account.lower())
        if entry is None or not 0 <= index < len(entry.pending):
            return CallResult.fail(f"bad pending withdrawal index {index}")

        pending = entry.pending[index]
        now = self.env.now()
        if now < pending.available_at:
            return CallResult.fail(
                f"pending withdrawal not available yet (remaining {pending.available_at - now} seconds)"
            )

        entry.pending.pop(index)
        paid = self.ledger.transfer(self.address, account, pending.value)
        if not paid:
            entry.pending.insert(index, pending)
            return CallResult.fail(f"withdrawal transfer failed: {paid.reason}")
        logger.info("Account %s withdrew pending %s (%s).", account, index, pending.value)
        return CallResult.ok(index=index, amount=pending.value)

    def get_account_total_locked(self, account: str) -> int:
        entry = self.accounts.get(account.lower())
        return entry.total if entry else 0

    def get_account_nonvoting_locked(self, account: str) -> int:
        entry = self.accounts.get(account.lower())
        return entry.nonvoting if entry else 0

    def get_pending_withdrawals(self, account: str) -> list[PendingWithdrawal]:
        entry = self.accounts.get(account.lower())
        return list(entry.pending) if entry else []

    def snapshot(self) -> Dict[str, Any]:
        return {
            addr: {"nonvoting": e.nonvoting, "pending": [p.to_dict() for p in e.pending]}
            for addr, e in self.accounts.items()
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.accounts = {
            addr: LockedAccount(
                nonvoting=data["nonvoting"],
                pending=[PendingWithdrawal(**p) for p in data["pending"]],
            )
            for addr, data in snapshot.items()
        }
