"""
Wallet engine collaborator interface.

The engine (a wrapper around the native Monero wallet library) owns the
wallet files, network I/O, address derivation and transaction
construction.  This package only drives it through the interface below.
Engine adapters raise :class:`EngineError` for failures; the session
passes those through to callers of ``send`` / ``estimate_fee`` unchanged.

Refresh callbacks arrive on the engine's own refresh thread through the
:class:`RefreshObserver` the session registers with ``set_observer``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

from monerokit_core.models import Subaddress, TransactionInfo, TxRequest
from monerokit_core.node import NodeDescriptor


class EngineError(Exception):
    """Failure reported by the wallet engine."""


class ConnectionStatus(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    WRONG_VERSION = "wrong_version"


@dataclass(frozen=True)
class EngineStatus:
    ok: bool = True
    error: str = ""

    def __str__(self) -> str:
        return "Status_Ok" if self.ok else f"Status_Error: {self.error}"


@dataclass(frozen=True)
class WalletSnapshot:
    """Wallet state handed to :meth:`RefreshObserver.on_refreshed`."""
    status: EngineStatus
    is_synchronized: bool
    blockchain_height: int
    balance: int = 0
    unlocked_balance: int = 0
    history: Sequence[TransactionInfo] | None = field(default=None)


class WalletHandle(Protocol):
    """Open wallet returned by the engine."""

    @property
    def status(self) -> EngineStatus: ...


class PendingTransaction(Protocol):
    @property
    def tx_id(self) -> str: ...

    @property
    def fee(self) -> int: ...


class RefreshObserver(Protocol):
    def on_refreshed(self, snapshot: WalletSnapshot, full: bool) -> bool: ...

    def on_initial_history(self, txs: Sequence[TransactionInfo], balance: Any = None) -> None: ...


class WalletEngine(Protocol):
    """Operations this package consumes from the wallet engine."""

    # ── wallet files ─────────────────────────────────────────────────
    def wallet_exists(self, path: str) -> bool: ...

    def open_wallet(self, path: str, password: str) -> Optional[WalletHandle]: ...

    def recover_wallet(self, path: str, password: str, mnemonic: str,
                       offset: str, restore_height: int) -> WalletHandle: ...

    def create_watch_only_wallet(self, path: str, password: str, language: str,
                                 restore_height: int, address: str,
                                 view_key: str, spend_key: str = "") -> WalletHandle: ...

    def close_wallet(self, handle: WalletHandle) -> bool: ...

    def store_wallet(self, handle: WalletHandle) -> bool: ...

    # ── daemon / refresh ─────────────────────────────────────────────
    def set_daemon(self, node: NodeDescriptor) -> None: ...

    def set_observer(self, observer: Optional[RefreshObserver]) -> None: ...

    def start_refresh(self, handle: WalletHandle, trusted_daemon: bool) -> Optional[EngineStatus]: ...

    def pause_refresh(self, handle: WalletHandle) -> None: ...

    def get_daemon_height(self) -> int: ...

    def get_connection_status(self) -> ConnectionStatus: ...

    # ── transactions ─────────────────────────────────────────────────
    def create_transaction(self, handle: WalletHandle, request: TxRequest) -> PendingTransaction: ...

    def commit_transaction(self, handle: WalletHandle, pending: PendingTransaction) -> bool: ...

    def estimate_fee(self, handle: WalletHandle, request: TxRequest) -> int: ...

    # ── addresses ────────────────────────────────────────────────────
    def get_subaddresses(self, handle: WalletHandle) -> list[Subaddress]: ...

    def new_subaddress(self, handle: WalletHandle) -> str: ...

    def generate_address(self, mnemonic: str, offset: str,
                         account_index: int, address_index: int) -> str: ...

    def is_address_valid(self, address: str) -> bool: ...

    def is_private_view_key_valid(self, view_key: str, address: str) -> Optional[str]:
        """None when the key belongs to the address, else the engine's error text."""

    def is_private_spend_key_valid(self, spend_key: str, address: str) -> Optional[str]: ...