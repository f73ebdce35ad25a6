"""
Monero key material.

The private view key is the Keccak-256 hash of the private spend key
reduced modulo the Ed25519 order; public keys are the scalar-base
products on Ed25519.  Keccak here is the pre-standard padding
(``Crypto.Hash.keccak``), not SHA3-256.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from Crypto.Hash import keccak
from Crypto.PublicKey.ECC import EccPoint

from monerokit_core.mnemonic import ED25519_ORDER, decode_legacy_mnemonic

if TYPE_CHECKING:
    from monerokit_core.seed import Seed

# Ed25519 base point (RFC 8032)
_BASE_X = 15112221349535400772501151409588531511454012693041857206046113283949847762202
_BASE_Y = 46316835694926478169428394003475163141307993866256225615783033603165251855960


@dataclass(frozen=True)
class Keys:
    """Hex-encoded 32-byte Monero keys."""
    private_spend_key: str
    public_spend_key: str
    private_view_key: str
    public_view_key: str

    def __repr__(self) -> str:
        return f"Keys(public_spend_key={self.public_spend_key}, public_view_key={self.public_view_key})"


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def scalar_reduce(data: bytes) -> bytes:
    """Little-endian reduction of an arbitrary buffer modulo the Ed25519 order."""
    return (int.from_bytes(data, "little") % ED25519_ORDER).to_bytes(32, "little")


def public_key(private_key: bytes) -> bytes:
    """Compressed Edwards encoding of ``private_key · G``."""
    if len(private_key) != 32:
        raise ValueError(f"Private key must be 32 bytes, got {len(private_key)}")
    scalar = int.from_bytes(private_key, "little")
    point = EccPoint(_BASE_X, _BASE_Y, curve="Ed25519") * scalar
    x, y = (int(c) for c in point.xy)
    return (y | ((x & 1) << 255)).to_bytes(32, "little")


def derive_keys(private_spend_key: bytes) -> Keys:
    """Derive the full key set from a reduced 32-byte spend key."""
    if int.from_bytes(private_spend_key, "little") >= ED25519_ORDER:
        raise ValueError("Private spend key is not reduced")
    private_view_key = scalar_reduce(keccak256(private_spend_key))
    return Keys(
        private_spend_key=private_spend_key.hex(),
        public_spend_key=public_key(private_spend_key).hex(),
        private_view_key=private_view_key.hex(),
        public_view_key=public_key(private_view_key).hex(),
    )


def keys_from_seed(seed: Seed) -> Keys:
    """
    Derive keys for a mnemonic seed.

    Watch-only seeds carry no spend key, and legacy phrases with a seed
    offset are decrypted by the wallet engine, so both are rejected.
    """
    legacy = seed.to_legacy()
    if legacy.passphrase:
        raise ValueError("Keys for a seed offset must be derived by the wallet engine")
    return derive_keys(decode_legacy_mnemonic(legacy.words))
