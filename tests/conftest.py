"""
Shared pytest fixtures for the monerokit test suite.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from monerokit_core.arbiter import SessionArbiter
from monerokit_core.config import SyncConfig
from monerokit_core.engine import ConnectionStatus, EngineStatus
from monerokit_core.models import Subaddress
from monerokit_core.seed import Bip39, LegacyMnemonic, WatchOnly
from monerokit_core.session import WalletSession

BIP39_12 = ("abandon " * 11 + "about").split()
BIP39_24 = ("abandon " * 23 + "art").split()

LEGACY_FROM_BIP39_12 = (
    "subtly emerge cucumber wield jester neutral echo guide problems hiding "
    "necklace tapestry offend tell erase ugly envy turnip click iguana pebbles "
    "idols listen nail cucumber"
)

NODE_URI = "xmr-node.cakewallet.com:18081/mainnet/cake"


@dataclass
class FakeHandle:
    path: str
    status: EngineStatus = field(default_factory=EngineStatus)


@dataclass
class FakePending:
    tx_id: str
    fee: int


class FakeEngine:
    """
    In-memory wallet engine.

    Recovery writes the three wallet files like the native engine does.
    Every call is recorded; knobs on the instance inject failures.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.calls: list[tuple] = []
        self.observer = None
        self.daemon = None
        self.daemon_height = 1_000
        self.connection_status = ConnectionStatus.CONNECTED

        # failure injection
        self.recover_status = EngineStatus()
        self.open_returns_none = False
        self.open_status = EngineStatus()
        self.refresh_status: EngineStatus | None = EngineStatus()
        self.start_refresh_error: Exception | None = None
        self.pause_error: Exception | None = None
        self.create_error: Exception | None = None
        self.commit_ok = True

        self.fee = 1_234
        self.requests: list = []
        self.store_count = 0
        self.store_gate: threading.Event | None = None
        self.store_entered = threading.Event()
        self.daemon_gate: threading.Event | None = None
        self.daemon_entered = threading.Event()
        self.subaddresses: list[Subaddress] = []

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name, *args))

    def call_names(self) -> list[str]:
        with self._lock:
            return [c[0] for c in self.calls]

    def count(self, name: str) -> int:
        return self.call_names().count(name)

    @staticmethod
    def _write_files(path: str, address: str) -> None:
        Path(path).write_text("cache")
        Path(path + ".keys").write_text("keys")
        Path(path + ".address.txt").write_text(address)

    # ── wallet files ─────────────────────────────────────────────────

    def wallet_exists(self, path):
        return Path(path + ".keys").exists()

    def open_wallet(self, path, password):
        self._record("open_wallet", path)
        if self.open_returns_none:
            return None
        return FakeHandle(path, self.open_status)

    def recover_wallet(self, path, password, mnemonic, offset, restore_height):
        self._record("recover_wallet", path, mnemonic, offset, restore_height)
        if self.recover_status.ok:
            self._write_files(path, "4recovered")
        return FakeHandle(path, self.recover_status)

    def create_watch_only_wallet(self, path, password, language, restore_height,
                                 address, view_key, spend_key=""):
        self._record("create_watch_only_wallet", path, address, restore_height)
        self._write_files(path, address)
        return FakeHandle(path)

    def close_wallet(self, handle):
        self._record("close_wallet", handle.path)
        return True

    def store_wallet(self, handle):
        self._record("store_wallet", handle.path)
        self.store_entered.set()
        if self.store_gate is not None:
            self.store_gate.wait(5)
        with self._lock:
            self.store_count += 1
        return True

    # ── daemon / refresh ─────────────────────────────────────────────

    def set_daemon(self, node):
        self._record("set_daemon", str(node))
        self.daemon_entered.set()
        if self.daemon_gate is not None:
            self.daemon_gate.wait(5)
        self.daemon = node

    def set_observer(self, observer):
        self._record("set_observer", observer is not None)
        self.observer = observer

    def start_refresh(self, handle, trusted_daemon):
        self._record("start_refresh", trusted_daemon)
        if self.start_refresh_error is not None:
            raise self.start_refresh_error
        return self.refresh_status

    def pause_refresh(self, handle):
        self._record("pause_refresh")
        if self.pause_error is not None:
            raise self.pause_error

    def get_daemon_height(self):
        return self.daemon_height

    def get_connection_status(self):
        return self.connection_status

    # ── transactions ─────────────────────────────────────────────────

    def create_transaction(self, handle, request):
        self._record("create_transaction")
        self.requests.append(request)
        if self.create_error is not None:
            raise self.create_error
        return FakePending("tx-0001", self.fee)

    def commit_transaction(self, handle, pending):
        self._record("commit_transaction", pending.tx_id)
        return self.commit_ok

    def estimate_fee(self, handle, request):
        self.requests.append(request)
        if self.create_error is not None:
            raise self.create_error
        return self.fee

    # ── addresses ────────────────────────────────────────────────────

    def get_subaddresses(self, handle):
        return list(self.subaddresses)

    def new_subaddress(self, handle):
        index = len(self.subaddresses)
        address = f"8new{index}"
        self.subaddresses.append(Subaddress(0, index, address))
        return address

    def generate_address(self, mnemonic, offset, account_index, address_index):
        return f"8gen-{account_index}-{address_index}"

    def is_address_valid(self, address):
        return address[:1] in ("4", "8")

    @staticmethod
    def _key_error(key, address, kind):
        if address[:1] not in ("4", "8"):
            return "Invalid address"
        if len(key) != 64 or any(c not in "0123456789abcdef" for c in key):
            return f"Invalid {kind} key"
        return None

    def is_private_view_key_valid(self, view_key, address):
        return self._key_error(view_key, address, "view")

    def is_private_spend_key_valid(self, spend_key, address):
        return self._key_error(spend_key, address, "spend")

    # ── test helpers ─────────────────────────────────────────────────

    def refresh(self, snapshot, full=True):
        """Deliver a refresh the way the engine's refresh thread does."""
        return self.observer.on_refreshed(snapshot, full)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def arbiter():
    """A private arbiter so tests never share the process-wide one."""
    return SessionArbiter()


@pytest.fixture
def fast_sync():
    return SyncConfig(poll_interval=0.05, stop_settle_delay=0.0)


@pytest.fixture
def bip39_seed():
    return Bip39(BIP39_12)


@pytest.fixture
def legacy_seed():
    return LegacyMnemonic(LEGACY_FROM_BIP39_12)


@pytest.fixture
def watch_only_seed():
    return WatchOnly("4watchonlyaddress", "ab" * 32)


@pytest.fixture
def make_session(engine, arbiter, fast_sync, tmp_path):
    """Factory building sessions that share the test's engine and arbiter."""

    def _make(seed=None, wallet_id="wallet-1", **kwargs):
        kwargs.setdefault("wallet_dir", tmp_path / "wallets")
        kwargs.setdefault("node", NODE_URI)
        kwargs.setdefault("arbiter", arbiter)
        kwargs.setdefault("sync_config", fast_sync)
        return WalletSession(seed or Bip39(BIP39_12), wallet_id, engine, **kwargs)

    return _make


