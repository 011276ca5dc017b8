"""
Vesting instance factory and beneficiary registry.

The factory is the only creator of VestingInstance objects. Creation,
account registration and funding happen in a single transaction: if the
sponsor cannot fund the schedule nothing is recorded, so lookups never return
an unfunded instance.

A beneficiary holds at most one active (unsettled) instance. Once an instance
is settled, i.e. its escrow is fully drained, a new one may be created for the
same beneficiary; earlier instances remain listed by instances_for().
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.exceptions import (
    ExternalCallFailureError,
    InvalidArgumentError,
    InvalidStateError,
)
from vestvault.core.interfaces import AssetLedger, LockingSubsystem, SignerRegistry
from vestvault.core.runtime import ExecutionEnvironment
from vestvault.core.contracts.release_schedule import VestingScheduleData, create_release_schedule
from vestvault.core.contracts.vesting_instance import VestingInstance

logger = logging.getLogger(__name__)


class VestingFactory:
    """
    Deploys and funds vesting instances and records beneficiary -> instance.

    Instances operate autonomously after creation; all later calls go to the
    instance directly.
    """

    def __init__(
        self,
        ledger: AssetLedger,
        env: ExecutionEnvironment,
        locking: Optional[LockingSubsystem] = None,
        signer_registry: Optional[SignerRegistry] = None,
        address: str = "",
    ) -> None:
        self.ledger = ledger
        self.env = env
        self.locking = locking
        self.signer_registry = signer_registry
        self.address = (
            address or "0x" + hashlib.sha3_256(b"vesting-factory").digest()[-20:].hex()
        ).lower()

        self.deployed_instances: dict[str, VestingInstance] = {}
        self.beneficiary_to_instance: dict[str, str] = {}
        self.history: dict[str, list[str]] = {}
        self._nonce = 0
        env.register(self)

    def create_vesting_instance(
        self, caller: str, data: VestingScheduleData
    ) -> VestingInstance:
        """
        Create a release schedule for ``data.beneficiary`` funded by ``caller``.

        Args:
            caller: Sponsor whose ledger balance funds the schedule
            data: Schedule parameters

        Returns:
            The funded VestingInstance

        Raises:
            InvalidArgumentError: If any construction invariant is violated
            InvalidStateError: If the beneficiary already has an active schedule
            ExternalCallFailureError: If account registration or funding fails
        """
        with self.env.atomic():
            creator = (caller or "").lower()
            if not creator or creator == ZERO_ADDRESS:
                raise InvalidArgumentError("Creator cannot be the zero address")

            schedule = create_release_schedule(data, self.env.now(), creator)

            existing = self.get_vesting_contract_for_beneficiary(schedule.beneficiary)
            if existing is not None and not existing.is_settled():
                raise InvalidStateError(
                    f"Beneficiary {schedule.beneficiary} already has an active release schedule",
                    details={"instance": existing.address},
                )

            self._nonce += 1
            address = self._derive_address(schedule.beneficiary, self._nonce)
            instance = VestingInstance(
                address,
                schedule,
                ledger=self.ledger,
                env=self.env,
                locking=self.locking,
                signer_registry=self.signer_registry,
            )

            if self.signer_registry is not None:
                registered = self.signer_registry.create_account(instance.address)
                if not registered:
                    raise ExternalCallFailureError(
                        f"Account registration failed: {registered.reason}", result=registered
                    )

            funded = self.ledger.transfer(creator, instance.address, schedule.total_amount)
            if not funded:
                raise ExternalCallFailureError(
                    f"Funding transfer failed: {funded.reason}", result=funded
                )

            self.deployed_instances[instance.address] = instance
            self.beneficiary_to_instance[schedule.beneficiary] = instance.address
            self.history.setdefault(schedule.beneficiary, []).append(instance.address)

            logger.info(
                "Vesting instance created",
                extra={
                    "event": "vesting.created",
                    "instance": instance.address[:10],
                    "beneficiary": schedule.beneficiary[:10],
                    "amount": schedule.total_amount,
                    "mode": schedule.release_mode.value,
                    "revocable": schedule.revocable,
                },
            )
            return instance

    def get_vesting_contract_for_beneficiary(self, beneficiary: str) -> Optional[VestingInstance]:
        """
        Return the beneficiary's current instance, or None.

        Raises:
            InvalidArgumentError: If beneficiary is null
        """
        key = (beneficiary or "").lower()
        if not key or key == ZERO_ADDRESS:
            raise InvalidArgumentError("Beneficiary cannot be the zero address")
        address = self.beneficiary_to_instance.get(key)
        return self.deployed_instances.get(address) if address else None

    def instances_for(self, beneficiary: str) -> list[VestingInstance]:
        """All instances ever created for ``beneficiary``, oldest first."""
        return [
            self.deployed_instances[a] for a in self.history.get((beneficiary or "").lower(), [])
        ]

    def _derive_address(self, beneficiary: str, nonce: int) -> str:
        digest = hashlib.sha3_256(f"{self.address}:{beneficiary}:{nonce}".encode()).digest()
        return f"0x{digest[-20:].hex()}"

    def snapshot(self) -> Dict[str, Any]:
        return {
            "deployed_instances": dict(self.deployed_instances),
            "beneficiary_to_instance": dict(self.beneficiary_to_instance),
            "history": {k: list(v) for k, v in self.history.items()},
            "nonce": self._nonce,
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.deployed_instances = dict(snapshot["deployed_instances"])
        self.beneficiary_to_instance = dict(snapshot["beneficiary_to_instance"])
        self.history = {k: list(v) for k, v in snapshot["history"].items()}
        self._nonce = snapshot["nonce"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "beneficiaries": dict(self.beneficiary_to_instance),
            "instances": [i.to_dict() for i in self.deployed_instances.values()],
        }
