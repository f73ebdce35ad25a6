"""
Value records shared by the session and the wallet engine adapter.

Amounts are integer atomic units (1 XMR = 10**12 atomic units).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from functools import total_ordering

ATOMIC_UNITS_PER_XMR = 10**12

# Sentinel amount meaning "send the whole unlocked balance"
SWEEP_ALL = -1

# Ring decoys requested from the engine; 0 lets the engine apply the
# protocol minimum.
MIXIN = 0


@dataclass(frozen=True)
class Balance:
    all: int = 0
    unlocked: int = 0

    def __post_init__(self):
        if self.all < 0 or self.unlocked < 0:
            raise ValueError(f"Negative balance: {self}")
        if self.unlocked > self.all:
            raise ValueError(f"Unlocked balance exceeds total: {self}")

    @classmethod
    def from_engine(cls, all_amount: int, unlocked: int) -> Balance:
        """Build a balance from raw engine values, clamping unlocked to the total."""
        all_amount = max(int(all_amount), 0)
        return cls(all_amount, min(max(int(unlocked), 0), all_amount))


_DEFAULT_LABEL = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]{2}:[0-9]{2}:[0-9]{2}$")


@total_ordering
@dataclass(eq=False)
class Subaddress:
    """
    A wallet subaddress.

    Sorting is descending by ``(account_index, address_index)``: the most
    recent subaddress comes first.
    """
    account_index: int
    address_index: int
    address: str
    label: str = ""
    amount: int = 0
    txs_count: int = 0

    def _key(self) -> tuple[int, int]:
        return (self.account_index, self.address_index)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Subaddress):
            return NotImplemented
        return (self._key(), self.address, self.label) == (other._key(), other.address, other.label)

    def __lt__(self, other: Subaddress) -> bool:
        return self._key() > other._key()

    def __hash__(self) -> int:
        return hash((self._key(), self.address))

    @property
    def squashed_address(self) -> str:
        if len(self.address) > 16:
            return f"{self.address[:8]}…{self.address[-8:]}"
        return self.address

    @property
    def display_label(self) -> str:
        if not self.label or _DEFAULT_LABEL.match(self.label):
            return f"#{self.address_index}"
        return self.label


class Direction(Enum):
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class TransactionInfo:
    """One entry of the engine's transaction history."""
    hash: str
    direction: Direction
    amount: int
    fee: int = 0
    block_height: int = 0
    timestamp: int = 0
    confirmations: int = 0
    is_pending: bool = False
    is_failed: bool = False
    account_index: int = 0
    subaddress_indices: tuple[int, ...] = ()
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "direction": self.direction.value,
            "amount": self.amount,
            "fee": self.fee,
            "block_height": self.block_height,
            "timestamp": self.timestamp,
            "confirmations": self.confirmations,
            "is_pending": self.is_pending,
            "is_failed": self.is_failed,
            "account_index": self.account_index,
            "subaddress_indices": list(self.subaddress_indices),
            "notes": self.notes,
        }


class Priority(IntEnum):
    DEFAULT = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    LAST = 4


@dataclass
class TxRequest:
    """Transaction request handed to the engine."""
    destination: str
    amount: int
    mixin: int = MIXIN
    priority: Priority = Priority.MEDIUM
    user_notes: str | None = None
    subaddress_indices: list[int] = field(default_factory=list)

    @property
    def is_sweep_all(self) -> bool:
        return self.amount == SWEEP_ALL
