"""
Reference fungible asset ledger.

An in-process ledger implementing the AssetLedger capability that vesting
instances and the factory consume:
- Balance queries and transfers returning CallResult
- Owner-only minting for funding sponsors
- Transfer event log
- Snapshot/restore so a failed transaction leaves balances untouched

It deliberately has no allowances, permits or burning; the vesting engine only
needs transfers and balances.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.exceptions import InvalidArgumentError, UnauthorizedError
from vestvault.core.interfaces import CallResult

logger = logging.getLogger(__name__)


@dataclass
class TransferRecord:
    """A Transfer event emitted by the ledger."""

    from_address: str
    to_address: str
    value: int


@dataclass
class AssetToken:
    """
    In-memory fungible asset.

    All addresses are normalized to lowercase. Transfers never raise for
    business-rule failures; they return a failed CallResult that callers
    propagate as ExternalCallFailureError.
    """

    name: str
    symbol: str
    owner: str = ""
    address: str = ""

    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)
    events: list[TransferRecord] = field(default_factory=list)

    UINT256_MAX: int = 2**256 - 1

    def __post_init__(self) -> None:
        if not self.address:
            addr_hash = hashlib.sha3_256(f"asset:{self.name}:{self.symbol}".encode()).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(self._normalize(account), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> CallResult:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address whose balance is debited
            recipient: Address receiving tokens
            amount: Amount to transfer (positive)

        Returns:
            CallResult; failed on zero recipient, bad amount or insufficient balance
        """
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)

        if not recipient_norm or recipient_norm == ZERO_ADDRESS:
            return CallResult.fail("transfer to the zero address")
        if not isinstance(amount, int) or amount <= 0 or amount > self.UINT256_MAX:
            return CallResult.fail(f"invalid transfer amount {amount!r}")

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            logger.warning(
                "Transfer rejected: insufficient balance",
                extra={
                    "event": "ledger.transfer_rejected",
                    "from": sender_norm[:10],
                    "amount": amount,
                    "balance": sender_balance,
                },
            )
            return CallResult.fail(
                f"transfer amount exceeds balance ({amount} > {sender_balance})"
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount
        self.events.append(TransferRecord(sender_norm, recipient_norm, amount))

        logger.debug(
            "Ledger transfer",
            extra={
                "event": "ledger.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            },
        )
        return CallResult.ok(amount=amount)

    def mint(self, minter: str, to: str, amount: int) -> None:
        """
        Mint new tokens (owner only).

        Raises:
            UnauthorizedError: If minter is not the owner
            InvalidArgumentError: If recipient or amount is invalid
        """
        if self._normalize(minter) != self.owner:
            raise UnauthorizedError("Ledger: caller is not owner")
        to_norm = self._normalize(to)
        if not to_norm or to_norm == ZERO_ADDRESS:
            raise InvalidArgumentError("Ledger: mint to the zero address")
        if not isinstance(amount, int) or amount <= 0:
            raise InvalidArgumentError("Ledger: mint amount must be a positive integer")
        if self.total_supply + amount > self.UINT256_MAX:
            raise InvalidArgumentError("Ledger: mint exceeds uint256 supply")

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self.events.append(TransferRecord(ZERO_ADDRESS, to_norm, amount))

        logger.info(
            "Ledger mint",
            extra={
                "event": "ledger.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            },
        )

    # ==================== Transactions ====================

    def snapshot(self) -> Dict[str, Any]:
        return {
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
            "event_count": len(self.events),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.total_supply = snapshot["total_supply"]
        self.balances = dict(snapshot["balances"])
        del self.events[snapshot["event_count"]:]

    # ==================== Helpers ====================

    def _normalize(self, address: str) -> str:
        return address.lower() if address else ""

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "owner": self.owner,
            "address": self.address,
            "total_supply": self.total_supply,
            "balances": dict(self.balances),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetToken":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            owner=data.get("owner", ""),
            address=data.get("address", ""),
            total_supply=data.get("total_supply", 0),
        )
        token.balances = dict(data.get("balances", {}))
        return token
