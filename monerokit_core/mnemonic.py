"""
BIP-39 → Monero legacy mnemonic conversion.

Reproduces the derivation used by Cake Wallet so that a BIP-39 phrase
restores to the same Monero wallet there and here:

  1. BIP-39 seed (PBKDF2-HMAC-SHA512, 2048 rounds)
  2. BIP-32 private key at m/44'/128'/account'/0/0
  3. Little-endian reduction modulo the Ed25519 group order (no hashing)
  4. Monero legacy encoding: 24 words from 8 little-endian uint32 chunks,
     plus a CRC32 checksum word

Any deviation from these steps yields a different wallet, so the golden
vectors in ``tests/test_mnemonic.py`` must keep passing byte for byte.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import struct
import unicodedata
import zlib
from typing import Sequence

# Ed25519 group order (identical to the Monero curve order)
ED25519_ORDER = 2**252 + 27742317777372353535851937790883648493

# Monero coin type in SLIP-44
MONERO_COIN_TYPE = 128

BIP39_WORD_COUNTS = (12, 18, 24)
LEGACY_WORD_COUNT = 25
CHECKSUM_PREFIX_LENGTH = 3
WORDLIST_SIZE = 1626


# ===================================================================
#  Errors
# ===================================================================

class ConversionError(ValueError):
    """Base class for mnemonic conversion failures."""


class InvalidWordCount(ConversionError):
    def __init__(self, count: int, allowed: Sequence[int] = BIP39_WORD_COUNTS):
        self.count = count
        self.allowed = tuple(allowed)
        super().__init__(
            f"Invalid word count {count}: expected one of {self.allowed}"
        )


class KeyEncodingError(ConversionError):
    """A derived key cannot be represented as a 32-byte scalar."""


class InvalidLegacyMnemonic(ConversionError):
    """A 25-word phrase that does not decode to a spend key."""


# ===================================================================
#  Monero English wordlist
# ===================================================================

_WORDLIST: list[str] | None = None
_WORD_INDEX: dict[str, int] | None = None


def _load_wordlist() -> list[str]:
    path = os.path.join(os.path.dirname(__file__), "monero_english.txt")
    with open(path, encoding="utf-8") as f:
        words = [line.strip() for line in f if line.strip()]
    if len(words) != WORDLIST_SIZE:
        raise RuntimeError(
            f"Monero wordlist at {path} has {len(words)} words, "
            f"expected {WORDLIST_SIZE}"
        )
    return words


def get_wordlist() -> list[str]:
    global _WORDLIST
    if _WORDLIST is None:
        _WORDLIST = _load_wordlist()
    return _WORDLIST


def _get_word_index() -> dict[str, int]:
    global _WORD_INDEX
    if _WORD_INDEX is None:
        _WORD_INDEX = {w: i for i, w in enumerate(get_wordlist())}
    return _WORD_INDEX


# ===================================================================
#  BIP-39 seed
# ===================================================================

def mnemonic_to_seed(words: Sequence[str], passphrase: str = "") -> bytes:
    """Convert a mnemonic word sequence to a 64-byte seed (BIP-39)."""
    mnemonic = unicodedata.normalize("NFKD", " ".join(words))
    salt = unicodedata.normalize("NFKD", "mnemonic" + passphrase)
    return hashlib.pbkdf2_hmac(
        "sha512", mnemonic.encode("utf-8"), salt.encode("utf-8"), 2048, dklen=64,
    )


# ===================================================================
#  HD Key Derivation (BIP-32)
# ===================================================================

class HDNode:
    """
    Hierarchical Deterministic key derivation node.

    Standard BIP-32 private derivation over secp256k1.
    Path notation: m/44'/128'/account'/0/0
    """

    HARDENED = 0x80000000

    def __init__(self, private_key: bytes, chain_code: bytes, depth: int = 0,
                 index: int = 0):
        self.private_key = private_key
        self.chain_code = chain_code
        self.depth = depth
        self.index = index

    @classmethod
    def from_seed(cls, seed: bytes) -> HDNode:
        """Create master node from a BIP-39 seed."""
        I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        from ecdsa import SECP256k1
        if not 0 < int.from_bytes(I[:32], "big") < SECP256k1.order:
            raise KeyEncodingError("Master key out of range")
        return cls(private_key=I[:32], chain_code=I[32:])

    def _get_compressed_pub(self) -> bytes:
        """Get compressed (33-byte) public key."""
        from ecdsa import SigningKey, SECP256k1
        sk = SigningKey.from_string(self.private_key, curve=SECP256k1)
        raw = sk.get_verifying_key().to_string()
        x = raw[:32]
        y = raw[32:]
        prefix = b"\x02" if y[-1] % 2 == 0 else b"\x03"
        return prefix + x

    def derive_child(self, index: int) -> HDNode:
        """Derive a child node at the given index."""
        if index >= self.HARDENED:
            data = b"\x00" + self.private_key + struct.pack(">I", index)
        else:
            data = self._get_compressed_pub() + struct.pack(">I", index)

        I = hmac.new(self.chain_code, data, hashlib.sha512).digest()

        from ecdsa import SECP256k1
        tweak = int.from_bytes(I[:32], "big")
        child_key_int = (tweak + int.from_bytes(self.private_key, "big")) % SECP256k1.order
        if tweak >= SECP256k1.order or child_key_int == 0:
            raise KeyEncodingError(f"Invalid child key at index {index}")

        return HDNode(
            private_key=private_key_to_bytes(child_key_int),
            chain_code=I[32:],
            depth=self.depth + 1,
            index=index,
        )

    def derive_path(self, path: str) -> HDNode:
        """
        Derive from a BIP-44 path string like "m/44'/128'/0'/0/0".
        """
        if path == "m":
            return self
        if path.startswith("m/"):
            path = path[2:]

        node = self
        for component in path.split("/"):
            if component.endswith("'"):
                index = int(component[:-1]) + self.HARDENED
            else:
                index = int(component)
            node = node.derive_child(index)
        return node


def private_key_to_bytes(value: int) -> bytes:
    """Big-endian 32-byte encoding of a private key scalar."""
    try:
        return value.to_bytes(32, "big")
    except OverflowError as exc:
        raise KeyEncodingError(
            f"Private key exceeds 32 bytes: {(value.bit_length() + 7) // 8}"
        ) from exc


# ===================================================================
#  Ed25519 reduction
# ===================================================================

def reduce_private_key(key: bytes) -> bytes:
    """
    Reduce a 32-byte key modulo the Ed25519 order.

    The buffer is read as a little-endian integer.  No Keccak step: the
    Ledger derivation hashes first, this one does not.
    """
    if len(key) != 32:
        raise KeyEncodingError(f"Private key must be 32 bytes, got {len(key)}")
    value = int.from_bytes(key, "little") % ED25519_ORDER
    return value.to_bytes(32, "little")


# ===================================================================
#  Monero legacy mnemonic
# ===================================================================

def checksum_word(words: Sequence[str]) -> str:
    """Pick the checksum word for a 24-word legacy phrase."""
    if len(words) != LEGACY_WORD_COUNT - 1:
        raise InvalidWordCount(len(words), (LEGACY_WORD_COUNT - 1,))
    trimmed = "".join(w[:CHECKSUM_PREFIX_LENGTH] for w in words)
    checksum = zlib.crc32(trimmed.encode("utf-8"))
    return words[checksum % len(words)]


def encode_legacy_mnemonic(key: bytes) -> list[str]:
    """Encode a 32-byte spend key as the 25-word Monero legacy mnemonic."""
    if len(key) != 32:
        raise KeyEncodingError(f"Spend key must be 32 bytes, got {len(key)}")

    wordlist = get_wordlist()
    n = len(wordlist)
    words: list[str] = []
    for (val,) in struct.iter_unpack("<I", key):
        w1 = val % n
        w2 = (val // n + w1) % n
        w3 = (val // n // n + w2) % n
        words += [wordlist[w1], wordlist[w2], wordlist[w3]]

    words.append(checksum_word(words))
    return words


def decode_legacy_mnemonic(words: Sequence[str]) -> bytes:
    """
    Decode a 25-word legacy mnemonic back to its 32-byte spend key.

    Verifies the checksum word and that every word triple is a valid
    encoding of a uint32.
    """
    if len(words) != LEGACY_WORD_COUNT:
        raise InvalidWordCount(len(words), (LEGACY_WORD_COUNT,))

    index = _get_word_index()
    words = [w.strip().lower() for w in words]
    unknown = [w for w in words if w not in index]
    if unknown:
        raise InvalidLegacyMnemonic(f"{len(unknown)} word(s) not in the Monero wordlist")

    if checksum_word(words[:24]) != words[24]:
        raise InvalidLegacyMnemonic("Checksum word mismatch")

    n = WORDLIST_SIZE
    out = bytearray()
    for i in range(0, 24, 3):
        w1, w2, w3 = (index[w] for w in words[i:i + 3])
        val = w1 + n * ((n - w1 + w2) % n) + n * n * ((n - w2 + w3) % n)
        if val % n != w1 or val >= 2**32:
            raise InvalidLegacyMnemonic(f"Invalid word triple at position {i}")
        out += struct.pack("<I", val)
    return bytes(out)


# ===================================================================
#  Conversion entry point
# ===================================================================

def bip39_to_spend_key(words: Sequence[str], passphrase: str = "",
                       account_index: int = 0) -> bytes:
    """Derive the reduced 32-byte Monero spend key from a BIP-39 phrase."""
    if len(words) not in BIP39_WORD_COUNTS:
        raise InvalidWordCount(len(words))
    if account_index < 0 or account_index >= HDNode.HARDENED:
        raise ConversionError(f"Account index out of range: {account_index}")

    seed = mnemonic_to_seed(words, passphrase)
    master = HDNode.from_seed(seed)
    node = master.derive_path(f"m/44'/{MONERO_COIN_TYPE}'/{account_index}'/0/0")
    return reduce_private_key(node.private_key)


def bip39_to_legacy_mnemonic(words: Sequence[str], passphrase: str = "",
                             account_index: int = 0) -> str:
    """
    Convert a 12/18/24-word BIP-39 mnemonic to a 25-word Monero legacy
    mnemonic.

    Wordlist membership of the BIP-39 words is not checked here.
    """
    spend_key = bip39_to_spend_key(words, passphrase, account_index)
    return " ".join(encode_legacy_mnemonic(spend_key))
