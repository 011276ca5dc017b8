"""
Account and signer registry.

Accounts may delegate voting and validation to separate signer keys. A signer
proves consent by signing ``signer_commitment(account, role)`` with its
secp256k1 key; the registry verifies the signature, derives the signer address
from the public key and records the association.

Rules enforced on authorization:
- The account must be registered
- The signature must verify against the supplied public key
- A signer may act for at most one account and may not itself be an account
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.crypto_utils import (
    address_from_public_key,
    signer_commitment,
    verify_signature_hex,
)
from vestvault.core.interfaces import CallResult
from vestvault.core.runtime import ExecutionEnvironment

logger = logging.getLogger(__name__)

VOTE_ROLE = "vote"
VALIDATION_ROLE = "validation"


class AccountRegistry:
    def __init__(self, env: ExecutionEnvironment | None = None) -> None:
        self.accounts: set[str] = set()
        # {role: {account: signer}}
        self.signers: dict[str, dict[str, str]] = {VOTE_ROLE: {}, VALIDATION_ROLE: {}}
        # {signer: account}
        self.signer_to_account: dict[str, str] = {}
        if env is not None:
            env.register(self)

    def create_account(self, account: str) -> CallResult:
        account_norm = (account or "").lower()
        if not account_norm or account_norm == ZERO_ADDRESS:
            return CallResult.fail("account address is null")
        if account_norm in self.accounts:
            return CallResult.fail(f"account {account_norm} already exists")
        if account_norm in self.signer_to_account:
            return CallResult.fail(f"{account_norm} is already an authorized signer")
        self.accounts.add(account_norm)
        logger.info("Account %s registered.", account_norm)
        return CallResult.ok(account=account_norm)

    def is_account(self, account: str) -> bool:
        return (account or "").lower() in self.accounts

    def authorize_vote_signer(
        self, account: str, signer_public_key: str, signature: str
    ) -> CallResult:
        return self._authorize(account, VOTE_ROLE, signer_public_key, signature)

    def authorize_validation_signer(
        self, account: str, signer_public_key: str, signature: str
    ) -> CallResult:
        return self._authorize(account, VALIDATION_ROLE, signer_public_key, signature)

    def get_vote_signer(self, account: str) -> str:
        """Authorized vote signer, or the account itself when none is set."""
        account_norm = account.lower()
        return self.signers[VOTE_ROLE].get(account_norm, account_norm)

    def get_validation_signer(self, account: str) -> str:
        account_norm = account.lower()
        return self.signers[VALIDATION_ROLE].get(account_norm, account_norm)

    def signer_to_account_of(self, signer: str) -> str | None:
        signer_norm = signer.lower()
        if signer_norm in self.accounts:
            return signer_norm
        return self.signer_to_account.get(signer_norm)

    def _authorize(
        self, account: str, role: str, signer_public_key: str, signature: str
    ) -> CallResult:
        account_norm = (account or "").lower()
        if account_norm not in self.accounts:
            return CallResult.fail(f"unknown account {account_norm}")

        try:
            signer = address_from_public_key(signer_public_key)
        except ValueError as exc:
            return CallResult.fail(f"malformed signer public key: {exc}")

        if not verify_signature_hex(
            signer_public_key, signer_commitment(account_norm, role), signature
        ):
            logger.warning(
                "Signer authorization rejected: invalid signature",
                extra={"event": "accounts.bad_signature", "account": account_norm[:10], "role": role},
            )
            return CallResult.fail("invalid signer proof-of-possession signature")

        if signer in self.accounts:
            return CallResult.fail(f"signer {signer} is itself an account")
        bound_to = self.signer_to_account.get(signer)
        if bound_to is not None and bound_to != account_norm:
            return CallResult.fail(f"signer {signer} already authorized for another account")

        previous = self.signers[role].get(account_norm)
        if previous is not None and previous != signer:
            still_used = any(
                mapping.get(account_norm) == previous
                for other_role, mapping in self.signers.items()
                if other_role != role
            )
            if not still_used:
                self.signer_to_account.pop(previous, None)

        self.signers[role][account_norm] = signer
        self.signer_to_account[signer] = account_norm
        logger.info("Account %s authorized %s signer %s.", account_norm, role, signer)
        return CallResult.ok(account=account_norm, signer=signer, role=role)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "accounts": set(self.accounts),
            "signers": {role: dict(m) for role, m in self.signers.items()},
            "signer_to_account": dict(self.signer_to_account),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self.accounts = set(snapshot["accounts"])
        self.signers = {role: dict(m) for role, m in snapshot["signers"].items()}
        self.signer_to_account = dict(snapshot["signer_to_account"])
