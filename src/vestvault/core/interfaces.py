"""
vestvault - Collaborator Interfaces

Protocol interfaces for the external capabilities a release schedule consumes:
the asset ledger, the locking subsystem and the account/signer registry.
Using Protocol allows structural subtyping, so tests and alternative backends
can be injected without inheriting from the reference contracts.

Every state-changing collaborator call returns a CallResult instead of raising.
The engine turns a failed result into ExternalCallFailureError, which aborts
the surrounding transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, runtime_checkable


@dataclass(frozen=True)
class CallResult:
    """Structured outcome of a collaborator call."""

    success: bool
    reason: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "CallResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, reason: str, **data: Any) -> "CallResult":
        return cls(success=False, reason=reason, data=data)

    def __bool__(self) -> bool:
        return self.success


@runtime_checkable
class Transactional(Protocol):
    """State holder that can be captured and rolled back by the execution environment."""

    def snapshot(self) -> Dict[str, Any]:
        """Return a deep copy of the mutable state."""
        ...

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Replace the mutable state with one produced by snapshot()."""
        ...


@runtime_checkable
class AssetLedger(Protocol):
    """
    Fungible asset ledger.

    Used by the factory to fund instances and by instances to pay out
    withdrawals and refunds.
    """

    def transfer(self, sender: str, recipient: str, amount: int) -> CallResult:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Returns:
            Failed result on insufficient balance or invalid recipient/amount
        """
        ...

    def balance_of(self, account: str) -> int:
        ...


@runtime_checkable
class LockingSubsystem(Protocol):
    """
    Staking/locking subsystem that holds part of an account's balance.

    The subsystem owns locked-balance bookkeeping. ``get_account_total_locked``
    covers both locked value and pending withdrawals.
    """

    def lock(self, account: str, amount: int) -> CallResult:
        ...

    def unlock(self, account: str, amount: int) -> CallResult:
        ...

    def relock(self, account: str, index: int) -> CallResult:
        ...

    def withdraw(self, account: str, index: int) -> CallResult:
        ...

    def get_account_total_locked(self, account: str) -> int:
        ...


@runtime_checkable
class SignerRegistry(Protocol):
    """Account registry that associates delegate signer keys with accounts."""

    def create_account(self, account: str) -> CallResult:
        ...

    def is_account(self, account: str) -> bool:
        ...

    def authorize_vote_signer(
        self, account: str, signer_public_key: str, signature: str
    ) -> CallResult:
        """
        Authorize the holder of ``signer_public_key`` to vote for ``account``.

        Args:
            account: Account granting the authorization
            signer_public_key: Uncompressed secp256k1 public key (hex, 64 bytes)
            signature: Signer's signature over signer_commitment(account, "vote")

        Returns:
            Successful result with ``signer`` (derived address) in data
        """
        ...

    def authorize_validation_signer(
        self, account: str, signer_public_key: str, signature: str
    ) -> CallResult:
        ...
