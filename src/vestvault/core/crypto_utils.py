"""Helpers for secp256k1 signer keys, proof-of-possession signatures and addresses."""

from __future__ import annotations

import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

_CURVE = ec.SECP256K1()
_CURVE_ORDER = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

def _normalize_private_value(value: int) -> int:
    normalized = value % _CURVE_ORDER
    if normalized == 0:
        normalized = 1
    return normalized

def _private_key_to_hex(private_key: ec.EllipticCurvePrivateKey) -> str:
    return private_key.private_numbers().private_value.to_bytes(32, "big").hex()

def _public_key_to_hex(public_key: ec.EllipticCurvePublicKey) -> str:
    numbers = public_key.public_numbers()
    return (numbers.x.to_bytes(32, "big") + numbers.y.to_bytes(32, "big")).hex()

def load_private_key_from_hex(private_hex: str) -> ec.EllipticCurvePrivateKey:
    return ec.derive_private_key(_normalize_private_value(int(private_hex, 16)), _CURVE)

def load_public_key_from_hex(public_hex: str) -> ec.EllipticCurvePublicKey:
    raw = bytes.fromhex(public_hex)
    if len(raw) != 64:
        raise ValueError("Public key hex must be 64 bytes (uncompressed without prefix).")
    return ec.EllipticCurvePublicKey.from_encoded_point(_CURVE, b"\x04" + raw)

def generate_secp256k1_keypair_hex() -> tuple[str, str]:
    private_key = ec.generate_private_key(_CURVE)
    return _private_key_to_hex(private_key), _public_key_to_hex(private_key.public_key())

def deterministic_keypair_from_seed(seed: bytes) -> tuple[str, str]:
    if len(seed) < 32:
        seed = seed.ljust(32, b"\x00")
    private_key = ec.derive_private_key(
        _normalize_private_value(int.from_bytes(seed[:32], "big")), _CURVE
    )
    return _private_key_to_hex(private_key), _public_key_to_hex(private_key.public_key())

def address_from_public_key(public_hex: str) -> str:
    """
    Derive the 0x-prefixed 20-byte address of an uncompressed public key.

    The address is the tail of the SHA-256 digest of the raw public key bytes.
    """
    raw = bytes.fromhex(public_hex)
    if len(raw) != 64:
        raise ValueError("Public key hex must be 64 bytes (uncompressed without prefix).")
    return "0x" + hashlib.sha256(raw).digest()[-20:].hex()

def signer_commitment(account: str, role: str) -> bytes:
    """
    Message a signer key signs to consent to acting for ``account`` in ``role``.

    Binding the role keeps a vote-signer proof from being replayed as a
    validation-signer proof.
    """
    return hashlib.sha256(f"vestvault:authorize:{role}:{account.lower()}".encode()).digest()

def _is_canonical(r: int, s: int) -> bool:
    return 1 <= r < _CURVE_ORDER and 1 <= s <= _CURVE_ORDER // 2

def sign_message_hex(private_hex: str, message: bytes) -> str:
    private_key = load_private_key_from_hex(private_hex)
    r, s = decode_dss_signature(private_key.sign(message, ec.ECDSA(hashes.SHA256())))
    # low-S form
    if s > _CURVE_ORDER // 2:
        s = _CURVE_ORDER - s
    return (r.to_bytes(32, "big") + s.to_bytes(32, "big")).hex()

def verify_signature_hex(public_hex: str, message: bytes, signature_hex: str) -> bool:
    try:
        public_key = load_public_key_from_hex(public_hex)
        raw_signature = bytes.fromhex(signature_hex)
    except ValueError:
        return False
    if len(raw_signature) != 64:
        return False
    r = int.from_bytes(raw_signature[:32], "big")
    s = int.from_bytes(raw_signature[32:], "big")
    if not _is_canonical(r, s):
        return False
    try:
        public_key.verify(encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))
        return True
    except InvalidSignature:
        return False
