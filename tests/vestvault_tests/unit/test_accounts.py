"""
Tests for the account and signer registry, including proof-of-possession
verification with secp256k1 keys.
"""

import pytest

from vestvault.core.config import ZERO_ADDRESS
from vestvault.core.contracts import AccountRegistry
from vestvault.core.crypto_utils import (
    address_from_public_key,
    generate_secp256k1_keypair_hex,
    sign_message_hex,
    signer_commitment,
    verify_signature_hex,
)
from vestvault.core.interfaces import SignerRegistry

from vesting_fixtures import BENEFICIARY, STRANGER, signer_proof

ACCOUNT = "0x" + "1" * 40


@pytest.fixture
def registry():
    registry = AccountRegistry()
    registry.create_account(ACCOUNT)
    return registry


def test_satisfies_signer_registry_protocol(registry):
    assert isinstance(registry, SignerRegistry)


class TestAccounts:
    def test_create_account(self, registry):
        assert registry.is_account(ACCOUNT)
        assert registry.is_account(ACCOUNT.upper().replace("0X", "0x"))

    def test_duplicate_account_fails(self, registry):
        result = registry.create_account(ACCOUNT)
        assert not result
        assert "already exists" in result.reason

    @pytest.mark.parametrize("account", ["", None, ZERO_ADDRESS])
    def test_null_account_fails(self, registry, account):
        assert not registry.create_account(account)

    def test_signer_cannot_become_account(self, registry):
        public_key, signature = signer_proof(b"signer", ACCOUNT, "vote")
        registry.authorize_vote_signer(ACCOUNT, public_key, signature)

        assert not registry.create_account(address_from_public_key(public_key))


class TestSignerAuthorization:
    def test_default_signer_is_account(self, registry):
        assert registry.get_vote_signer(ACCOUNT) == ACCOUNT
        assert registry.get_validation_signer(ACCOUNT) == ACCOUNT

    def test_authorize_vote_signer(self, registry):
        public_key, signature = signer_proof(b"signer", ACCOUNT, "vote")

        result = registry.authorize_vote_signer(ACCOUNT, public_key, signature)

        signer = address_from_public_key(public_key)
        assert result.success
        assert result.data == {"account": ACCOUNT, "signer": signer, "role": "vote"}
        assert registry.get_vote_signer(ACCOUNT) == signer
        assert registry.signer_to_account_of(signer) == ACCOUNT
        assert registry.get_validation_signer(ACCOUNT) == ACCOUNT

    def test_unknown_account_fails(self, registry):
        public_key, signature = signer_proof(b"signer", STRANGER, "vote")
        assert not registry.authorize_vote_signer(STRANGER, public_key, signature)

    def test_signature_for_other_account_fails(self, registry):
        public_key, signature = signer_proof(b"signer", BENEFICIARY, "vote")

        result = registry.authorize_vote_signer(ACCOUNT, public_key, signature)

        assert not result
        assert "signature" in result.reason

    def test_malformed_public_key_fails(self, registry):
        result = registry.authorize_validation_signer(ACCOUNT, "abcd", "00" * 64)
        assert "malformed" in result.reason

    def test_signer_bound_to_one_account(self, registry):
        other = "0x" + "2" * 40
        registry.create_account(other)
        public_key, signature = signer_proof(b"shared", ACCOUNT, "vote")
        registry.authorize_vote_signer(ACCOUNT, public_key, signature)

        _, other_signature = signer_proof(b"shared", other, "vote")
        result = registry.authorize_vote_signer(other, public_key, other_signature)

        assert not result
        assert "another account" in result.reason

    def test_same_signer_for_both_roles(self, registry):
        vote_key, vote_sig = signer_proof(b"both", ACCOUNT, "vote")
        _, validation_sig = signer_proof(b"both", ACCOUNT, "validation")

        assert registry.authorize_vote_signer(ACCOUNT, vote_key, vote_sig)
        assert registry.authorize_validation_signer(ACCOUNT, vote_key, validation_sig)

    def test_replacing_signer_releases_previous(self, registry):
        first_key, first_sig = signer_proof(b"first", ACCOUNT, "vote")
        second_key, second_sig = signer_proof(b"second", ACCOUNT, "vote")
        registry.authorize_vote_signer(ACCOUNT, first_key, first_sig)

        registry.authorize_vote_signer(ACCOUNT, second_key, second_sig)

        first = address_from_public_key(first_key)
        assert registry.signer_to_account_of(first) is None
        assert registry.create_account(first).success

    def test_snapshot_restore(self, registry):
        state = registry.snapshot()
        public_key, signature = signer_proof(b"signer", ACCOUNT, "vote")
        registry.authorize_vote_signer(ACCOUNT, public_key, signature)

        registry.restore(state)

        assert registry.get_vote_signer(ACCOUNT) == ACCOUNT
        assert registry.signer_to_account == {}


class TestCryptoUtils:
    def test_random_keypair_signs_and_verifies(self):
        private_key, public_key = generate_secp256k1_keypair_hex()
        message = signer_commitment(ACCOUNT, "vote")
        signature = sign_message_hex(private_key, message)

        assert verify_signature_hex(public_key, message, signature)
        assert not verify_signature_hex(public_key, signer_commitment(ACCOUNT, "validation"), signature)

    def test_verify_rejects_garbage(self):
        _, public_key = generate_secp256k1_keypair_hex()
        assert not verify_signature_hex(public_key, b"msg", "zz")
        assert not verify_signature_hex(public_key, b"msg", "00" * 64)
        assert not verify_signature_hex("00", b"msg", "00" * 64)

    def test_commitment_is_case_insensitive(self):
        assert signer_commitment(ACCOUNT.upper(), "vote") == signer_commitment(ACCOUNT, "vote")
