"""
Release-schedule engine.

One VestingInstance exists per beneficiary. It holds the escrowed balance at
its own ledger address and exposes:
- Withdrawal of the releasable amount (beneficiary only)
- Revocation with refund of the unvested remainder (revoker only)
- Pass-through wrappers moving part of the balance into and out of a locking
  subsystem (beneficiary only)
- Delegate signer authorization through an account registry (beneficiary only)

Accounting:
    total_balance = remaining_unlocked + remaining_locked + released
    vested(t) is computed against total_balance, so partial withdrawals and
    funds parked in the locking subsystem do not change the curve.

Invariants:
- released <= vested(now)
- remaining_locked <= releasable(now); lock() refuses to exceed it and
  withdraw() only pays out the releasable amount that is not locked, so a
  revocation refund can always be paid from the unlocked balance.

Every state-changing call runs as one atomic transaction of the execution
environment and holds a reentrancy guard. Bookkeeping (released, revoked,
revoke_time) is written before any outgoing transfer.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.exceptions import (
    ExternalCallFailureError,
    InvalidArgumentError,
    InvalidStateError,
    UnauthorizedError,
)
from vestvault.core.interfaces import AssetLedger, CallResult, LockingSubsystem, SignerRegistry
from vestvault.core.runtime import ExecutionEnvironment
from vestvault.core.contracts.release_schedule import (
    ReleaseSchedule,
    releasable_amount,
    vested_amount,
)

logger = logging.getLogger(__name__)


@dataclass
class InstanceEvent:
    """An event emitted by a vesting instance (Withdrawn, Revoked, Locked, ...)."""

    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.event_type, **self.payload}


class VestingInstance:
    """
    Escrow for one beneficiary's release schedule.

    Holds its balance at ``address`` on the ledger. The beneficiary withdraws,
    locks and delegates; the revoker revokes; the owner may only hand over
    ownership.
    """

    def __init__(
        self,
        address: str,
        schedule: ReleaseSchedule,
        ledger: AssetLedger,
        env: ExecutionEnvironment,
        locking: Optional[LockingSubsystem] = None,
        signer_registry: Optional[SignerRegistry] = None,
    ) -> None:
        self.address = address.lower()
        self.schedule = schedule
        self.ledger = ledger
        self.env = env
        self.locking = locking
        self.signer_registry = signer_registry
        self.events: list[InstanceEvent] = []
        self._entered = False
        env.register(self)

    # ==================== Identities ====================

    @property
    def beneficiary(self) -> str:
        return self.schedule.beneficiary

    @property
    def revoker(self) -> str:
        return self.schedule.revoker

    @property
    def owner(self) -> str:
        return self.schedule.owner

    @property
    def released(self) -> int:
        return self.schedule.released

    @property
    def revoked(self) -> bool:
        return self.schedule.revoked

    @property
    def revoke_time(self) -> int:
        return self.schedule.revoke_time

    # ==================== View Functions ====================

    def get_remaining_unlocked_balance(self) -> int:
        return self.ledger.balance_of(self.address)

    def get_remaining_locked_balance(self) -> int:
        if self.locking is None:
            return 0
        return self.locking.get_account_total_locked(self.address)

    def get_remaining_total_balance(self) -> int:
        """The escrowed balance: unlocked funds plus funds held by the locking subsystem."""
        return self.get_remaining_unlocked_balance() + self.get_remaining_locked_balance()

    def get_total_balance(self) -> int:
        """Remaining balance plus everything already released to the beneficiary."""
        return self.get_remaining_total_balance() + self.schedule.released

    def get_vested_amount(self, timestamp: Optional[int] = None) -> int:
        if timestamp is None:
            timestamp = self.env.now()
        return vested_amount(self.schedule, self.get_total_balance(), timestamp)

    def get_releasable_amount(self, timestamp: Optional[int] = None) -> int:
        if timestamp is None:
            timestamp = self.env.now()
        return releasable_amount(self.schedule, self.get_total_balance(), timestamp)

    def get_withdrawable_amount(self, timestamp: Optional[int] = None) -> int:
        """Releasable amount that is not currently parked in the locking subsystem."""
        return max(0, self.get_releasable_amount(timestamp) - self.get_remaining_locked_balance())

    def is_settled(self) -> bool:
        """True once nothing is left in escrow, locked or not."""
        return self.get_remaining_total_balance() == 0

    # ==================== Withdrawal & Revocation ====================

    def withdraw(self, caller: str) -> int:
        """
        Pay the currently withdrawable amount to the beneficiary.

        Args:
            caller: Address invoking the operation (must be the beneficiary)

        Returns:
            Amount transferred

        Raises:
            UnauthorizedError: If caller is not the beneficiary
            InvalidStateError: If nothing is withdrawable
            ExternalCallFailureError: If the ledger transfer fails
        """
        with self._transaction():
            self._require_beneficiary(caller, "withdraw")
            now = self.env.now()
            amount = self.get_withdrawable_amount(now)
            if amount == 0:
                raise InvalidStateError(
                    "Nothing releasable to withdraw",
                    details={"instance": self.address, "time": now},
                )

            self.schedule.released += amount
            self._call(
                self.ledger.transfer(self.address, self.beneficiary, amount),
                "withdrawal transfer",
            )
            self._emit("Withdrawn", beneficiary=self.beneficiary, amount=amount, time=now)

            logger.info(
                "Vesting withdrawal",
                extra={
                    "event": "vesting.withdraw",
                    "instance": self.address[:10],
                    "beneficiary": self.beneficiary[:10],
                    "amount": amount,
                    "released": self.schedule.released,
                },
            )
            return amount

    def revoke(self, caller: str, requested_time: int) -> int:
        """
        Stop future vesting and refund the unvested remainder.

        The effective revocation time is max(requested_time, now); a revoker
        cannot backdate a revocation. The vested but unwithdrawn remainder stays
        in the instance for the beneficiary.

        Returns:
            Refund amount sent to the refund destination

        Raises:
            UnauthorizedError: If caller is not the revoker
            InvalidStateError: If the schedule is not revocable or already revoked
        """
        with self._transaction():
            self._require_revoker(caller)
            if isinstance(requested_time, bool) or not isinstance(requested_time, int):
                raise InvalidArgumentError("Revocation time must be an integer timestamp")
            if not self.schedule.revocable:
                raise InvalidStateError("Release schedule is not revocable")
            if self.schedule.revoked:
                raise InvalidStateError(
                    "Release schedule already revoked",
                    details={"revoke_time": self.schedule.revoke_time},
                )

            revoke_timestamp = max(requested_time, self.env.now())
            balance = self.get_remaining_total_balance()
            releasable_at_revoke = self.get_releasable_amount(revoke_timestamp)
            refund = balance - releasable_at_revoke

            self.schedule.revoked = True
            self.schedule.revoke_time = revoke_timestamp
            if refund > 0:
                self._call(
                    self.ledger.transfer(self.address, self.schedule.refund_destination, refund),
                    "refund transfer",
                )
            self._emit(
                "Revoked",
                revoker=self.revoker,
                refund_destination=self.schedule.refund_destination,
                refund_amount=refund,
                time=revoke_timestamp,
            )

            logger.info(
                "Vesting revoked",
                extra={
                    "event": "vesting.revoke",
                    "instance": self.address[:10],
                    "revoke_time": revoke_timestamp,
                    "refund": refund,
                    "still_releasable": releasable_at_revoke,
                },
            )
            return refund

    # ==================== Locking Subsystem Wrappers ====================

    def lock(self, caller: str, value: int) -> CallResult:
        """Move ``value`` of the releasable, unlocked balance into the locking subsystem."""
        with self._transaction():
            self._require_beneficiary(caller, "lock")
            locking = self._require_locking()
            self._require_positive(value, "Lock value")
            now = self.env.now()
            available = self.get_withdrawable_amount(now)
            if value > available:
                raise InvalidStateError(
                    f"Lock value exceeds releasable balance ({value} > {available})",
                    details={"releasable": self.get_releasable_amount(now)},
                )
            result = self._call(locking.lock(self.address, value), "lock")
            self._emit("Locked", amount=value, time=now)
            return result

    def unlock(self, caller: str, value: int) -> CallResult:
        with self._transaction():
            self._require_beneficiary(caller, "unlock")
            locking = self._require_locking()
            self._require_positive(value, "Unlock value")
            result = self._call(locking.unlock(self.address, value), "unlock")
            self._emit("Unlocked", amount=value, time=self.env.now())
            return result

    def relock(self, caller: str, index: int) -> CallResult:
        with self._transaction():
            self._require_beneficiary(caller, "relock")
            locking = self._require_locking()
            result = self._call(locking.relock(self.address, index), "relock")
            self._emit("Relocked", index=index, time=self.env.now())
            return result

    def withdraw_pending_locked(self, caller: str, index: int) -> CallResult:
        """Return an available pending withdrawal from the locking subsystem to this instance."""
        with self._transaction():
            self._require_beneficiary(caller, "withdraw_pending_locked")
            locking = self._require_locking()
            result = self._call(locking.withdraw(self.address, index), "locked withdrawal")
            self._emit("LockedWithdrawn", index=index, time=self.env.now())
            return result

    # ==================== Signer Authorization ====================

    def authorize_vote_signer(
        self, caller: str, signer_public_key: str, signature: str
    ) -> CallResult:
        """
        Authorize a delegate key to vote on behalf of this instance.

        ``signature`` is the signer's signature over
        signer_commitment(instance_address, "vote").
        """
        with self._transaction():
            self._require_beneficiary(caller, "authorize_vote_signer")
            registry = self._require_signer_registry()
            result = self._call(
                registry.authorize_vote_signer(self.address, signer_public_key, signature),
                "vote signer authorization",
            )
            self._emit(
                "VoterAuthorized",
                authorizer=self.address,
                delegate=result.data.get("signer", ""),
                time=self.env.now(),
            )
            return result

    def authorize_validation_signer(
        self, caller: str, signer_public_key: str, signature: str
    ) -> CallResult:
        with self._transaction():
            self._require_beneficiary(caller, "authorize_validation_signer")
            registry = self._require_signer_registry()
            result = self._call(
                registry.authorize_validation_signer(self.address, signer_public_key, signature),
                "validation signer authorization",
            )
            self._emit(
                "ValidatorAuthorized",
                authorizer=self.address,
                delegate=result.data.get("signer", ""),
                time=self.env.now(),
            )
            return result

    # ==================== Admin Functions ====================

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand administrative ownership to ``new_owner`` (owner only)."""
        with self._transaction():
            if (caller or "").lower() != self.schedule.owner:
                raise UnauthorizedError("Caller is not the owner")
            new_owner_norm = (new_owner or "").lower()
            if not new_owner_norm or new_owner_norm == ZERO_ADDRESS:
                raise InvalidArgumentError("New owner cannot be the zero address")
            if new_owner_norm in (self.schedule.beneficiary, self.schedule.revoker):
                raise InvalidArgumentError(
                    "New owner must be distinct from the beneficiary and the revoker"
                )
            self.schedule.owner = new_owner_norm
            logger.info("Instance %s ownership transferred to %s.", self.address, new_owner_norm)

    # ==================== Helpers ====================

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        if self._entered:
            raise InvalidStateError("Reentrant call into vesting instance")
        self._entered = True
        try:
            with self.env.atomic():
                yield
        finally:
            self._entered = False

    def _require_beneficiary(self, caller: str, operation: str) -> None:
        if (caller or "").lower() != self.schedule.beneficiary:
            logger.warning(
                "Unauthorized %s attempt on %s by %s", operation, self.address, caller,
                extra={"event": "vesting.unauthorized", "operation": operation},
            )
            raise UnauthorizedError(f"Only the beneficiary may call {operation}")

    def _require_revoker(self, caller: str) -> None:
        if (caller or "").lower() != self.schedule.revoker:
            logger.warning(
                "Unauthorized revoke attempt on %s by %s", self.address, caller,
                extra={"event": "vesting.unauthorized", "operation": "revoke"},
            )
            raise UnauthorizedError("Only the revoker may revoke")

    def _require_positive(self, value: Any, name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidArgumentError(f"{name} must be a positive integer")

    def _require_locking(self) -> LockingSubsystem:
        if self.locking is None:
            raise InvalidStateError("No locking subsystem configured")
        return self.locking

    def _require_signer_registry(self) -> SignerRegistry:
        if self.signer_registry is None:
            raise InvalidStateError("No signer registry configured")
        return self.signer_registry

    def _call(self, result: CallResult, operation: str) -> CallResult:
        if not result.success:
            logger.warning(
                "External %s failed: %s", operation, result.reason,
                extra={"event": "vesting.external_failure", "instance": self.address[:10]},
            )
            raise ExternalCallFailureError(f"{operation} failed: {result.reason}", result=result)
        return result

    def _emit(self, event_type: str, **payload: Any) -> None:
        self.events.append(InstanceEvent(event_type, payload))

    # ==================== Transactions & Serialization ====================

    def snapshot(self) -> Dict[str, Any]:
        return {"schedule": dataclasses.replace(self.schedule), "event_count": len(self.events)}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.schedule = dataclasses.replace(snapshot["schedule"])
        del self.events[snapshot["event_count"]:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "schedule": self.schedule.to_dict(),
            "remaining_unlocked_balance": self.get_remaining_unlocked_balance(),
            "remaining_locked_balance": self.get_remaining_locked_balance(),
            "events": [e.to_dict() for e in self.events],
        }
