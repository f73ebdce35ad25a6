"""
Wallet seed material.

A seed is one of:
  - ``Bip39``         : 12/18/24-word BIP-39 phrase plus passphrase
  - ``LegacyMnemonic``: Monero's own 25-word phrase plus seed offset
  - ``WatchOnly``     : public address and private view key

Word counts are checked at construction.  Only the mnemonic variants
can be turned into a legacy mnemonic; that is the form the wallet engine
restores from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from monerokit_core.mnemonic import (
    BIP39_WORD_COUNTS,
    LEGACY_WORD_COUNT,
    bip39_to_legacy_mnemonic,
)


def _split(words: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(words, str):
        return tuple(words.split())
    return tuple(words)


@dataclass(frozen=True)
class Bip39:
    words: tuple[str, ...]
    passphrase: str = field(default="", repr=False)

    def __post_init__(self):
        object.__setattr__(self, "words", _split(self.words))
        if len(self.words) not in BIP39_WORD_COUNTS:
            raise ValueError(f"Illegal Bip39 seed: {len(self.words)} words")

    def __repr__(self) -> str:
        return f"Bip39(<{len(self.words)} words>)"

    def to_legacy(self, account_index: int = 0) -> LegacyMnemonic:
        converted = bip39_to_legacy_mnemonic(self.words, self.passphrase, account_index)
        return LegacyMnemonic(tuple(converted.split()), "")


@dataclass(frozen=True)
class LegacyMnemonic:
    words: tuple[str, ...]
    passphrase: str = field(default="", repr=False)

    def __post_init__(self):
        object.__setattr__(self, "words", _split(self.words))
        if len(self.words) != LEGACY_WORD_COUNT:
            raise ValueError(f"Illegal legacy mnemonic: {len(self.words)} words")

    def __repr__(self) -> str:
        return f"LegacyMnemonic(<{len(self.words)} words>)"

    def to_legacy(self, account_index: int = 0) -> LegacyMnemonic:
        return self

    @property
    def mnemonic(self) -> str:
        return " ".join(self.words)


@dataclass(frozen=True)
class WatchOnly:
    address: str
    view_private_key: str = field(repr=False)

    def __post_init__(self):
        if not self.address:
            raise ValueError("Watch-only seed requires an address")
        if not self.view_private_key:
            raise ValueError("Watch-only seed requires a private view key")

    def to_legacy(self, account_index: int = 0) -> LegacyMnemonic:
        raise ValueError("WatchOnly can't be converted to a legacy mnemonic")


Seed = Union[Bip39, LegacyMnemonic, WatchOnly]
