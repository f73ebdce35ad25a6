"""
Wallet session lifecycle for monerokit.

A :class:`WalletSession` binds one seed to one wallet directory and drives
the process-wide wallet engine for as long as it holds the engine:

1. **Arbitration**: ``start()`` asks the :class:`SessionArbiter` for the
   engine.  While another session runs it publishes ``Connecting(waiting=True)``
   and waits for a release, re-polling every ``poll_interval`` seconds.  A
   newer start request makes this one obsolete; it then gives up quietly.

2. **Bring-up**: wallet files are created from the seed on first use
   (BIP-39 seeds are converted to the legacy 25-word form first), the
   wallet is opened, the node is validated and the engine starts
   refreshing.  Failures are published as ``NotSynced(error)``, not raised.

3. **Refresh**: the engine calls :meth:`WalletSession.on_refreshed` from
   its own thread.  The callback only hands the snapshot to a
   drop-oldest channel; a single consumer task on the session's event
   loop turns snapshots into sync state, balance, transactions and
   new-block notifications.  The wallet is stored once, on the first
   fully synchronised snapshot after each start.

4. **Shutdown**: ``stop()`` lets in-flight engine work settle, stops the
   engine, and releases the arbiter so a waiting session can run.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

from monerokit_core.arbiter import ArbiterState, SessionArbiter, default_arbiter
from monerokit_core.config import SyncConfig
from monerokit_core.engine import (
    ConnectionStatus,
    EngineError,
    PendingTransaction,
    WalletEngine,
    WalletHandle,
    WalletSnapshot,
)
from monerokit_core.keys import Keys, keys_from_seed
from monerokit_core.models import (
    MIXIN,
    SWEEP_ALL,
    Balance,
    Priority,
    Subaddress,
    TransactionInfo,
    TxRequest,
)
from monerokit_core.node import NodeDescriptor
from monerokit_core.restore_height import parse_restore_height
from monerokit_core.seed import LegacyMnemonic, Seed, WatchOnly
from monerokit_core.streams import DropOldestChannel, StateFlow
from monerokit_core.sync_state import (
    SYNCED,
    Connecting,
    EngineFailure,
    InvalidNode,
    NotStarted,
    NotSynced,
    StartError,
    SyncError,
    SyncState,
    Syncing,
    initial_state,
)
from monerokit_core.wallet_files import WalletFiles

if TYPE_CHECKING:
    from monerokit_core.config import KitConfig

logger = logging.getLogger("monerokit_session")

# Subaddresses derived offline for a wallet that has not been opened yet
OFFLINE_SUBADDRESS_COUNT = 2


class SessionStatus(Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    FAILED = "failed"


def sync_progress(first_height: int, daemon_height: int,
                  wallet_height: int) -> tuple[float, int]:
    """
    Progress of a scan that began at *first_height*.

    Returns ``(progress, remaining_blocks)`` with progress in [0, 1].
    """
    remaining = daemon_height - wallet_height
    total = daemon_height - first_height
    if total <= 0:
        return 1.0, max(remaining, 0)
    progress = 1.0 - remaining / total
    return min(max(progress, 0.0), 1.0), max(remaining, 0)


class WalletSession:
    """
    One wallet bound to the shared wallet engine.

    ``start()`` and ``stop()`` are coroutines and must run on the event loop
    that owns the session.  Other threads stop a session through
    :meth:`stop_threadsafe`.  Engine callbacks may arrive on any thread.
    """

    def __init__(
        self,
        seed: Seed,
        wallet_id: str,
        engine: WalletEngine,
        *,
        wallet_dir: str | Path,
        node: str,
        restore_height: int = -1,
        trust_node: bool = False,
        password: str = "",
        account_index: int = 0,
        arbiter: SessionArbiter | None = None,
        sync_config: SyncConfig | None = None,
    ):
        self.session_id = uuid.uuid4().hex
        self.wallet_id = wallet_id
        self._seed = seed
        self._engine = engine
        self._files = WalletFiles(wallet_dir, wallet_id)
        self._node = node
        self._restore_height = restore_height
        self._trust_node = trust_node
        self._password = password
        self._account_index = account_index
        self._arbiter = arbiter or default_arbiter()
        self._config = sync_config or SyncConfig()

        self._log_extra = {"session_id": self.session_id, "wallet_id": wallet_id}

        # Lifecycle
        self._lock = asyncio.Lock()
        self._stop_requested = threading.Event()
        self._wakeup: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._status = SessionStatus.IDLE
        self._started = False
        self._handle: WalletHandle | None = None
        self._node_info: NodeDescriptor | None = None
        self._legacy: LegacyMnemonic | None = None

        # Refresh processing
        self._refreshes: DropOldestChannel[WalletSnapshot] | None = None
        self._consumer: asyncio.Task | None = None
        self._synced = False
        self._first_block_height: int | None = None
        self._wallet_height: int | None = None
        self._save_lock = threading.Lock()

        # Published state
        self._sync_state: StateFlow[SyncState] = StateFlow(initial_state())
        self._balance: StateFlow[Balance] = StateFlow(Balance())
        self._transactions: StateFlow[tuple[TransactionInfo, ...]] = StateFlow(())
        self._new_blocks: DropOldestChannel[int] = DropOldestChannel(self._config.new_block_buffer)

    @classmethod
    def from_config(cls, seed: Seed, wallet_id: str, engine: WalletEngine,
                    config: KitConfig, restore: str = "",
                    arbiter: SessionArbiter | None = None) -> WalletSession:
        """Build a session from a loaded :class:`KitConfig`."""
        return cls(
            seed,
            wallet_id,
            engine,
            wallet_dir=config.wallet.directory,
            node=config.node.uri,
            restore_height=parse_restore_height(restore, config.sync.network),
            trust_node=config.node.trusted,
            password=config.wallet.password,
            arbiter=arbiter,
            sync_config=config.sync,
        )

    # ── Published state ──────────────────────────────────────────────

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def sync_state(self) -> SyncState:
        return self._sync_state.value

    @property
    def sync_state_flow(self) -> StateFlow[SyncState]:
        return self._sync_state

    @property
    def balance(self) -> Balance:
        return self._balance.value

    @property
    def balance_flow(self) -> StateFlow[Balance]:
        return self._balance

    @property
    def transactions(self) -> list[TransactionInfo]:
        return list(self._transactions.value)

    @property
    def transactions_flow(self) -> StateFlow[tuple[TransactionInfo, ...]]:
        return self._transactions

    @property
    def files(self) -> WalletFiles:
        return self._files

    async def next_block(self) -> int:
        """Wait for the next new-block notification (daemon height)."""
        return await self._new_blocks.receive()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> bool:
        """
        Acquire the engine and start syncing.

        Returns True once the engine is refreshing for this session.
        Returns False if the start was superseded, stopped while waiting,
        or failed; the reason is published in :attr:`sync_state`.
        """
        async with self._lock:
            if self._started:
                return True

            self._loop = asyncio.get_running_loop()
            self._status = SessionStatus.STARTING
            self._sync_state.emit(Connecting(waiting=True))

            try:
                state = await self._wait_for_turn()
            except asyncio.CancelledError:
                self._arbiter.withdraw(self.session_id)
                self._arbiter.release(self.session_id)
                self._status = SessionStatus.IDLE
                self._sync_state.emit(NotSynced(NotStarted()))
                raise

            if state is not ArbiterState.RUNNING:
                logger.info("Start abandoned", extra=self._log_extra)
                self._status = SessionStatus.IDLE
                self._sync_state.emit(NotSynced(NotStarted()))
                return False

            self._sync_state.emit(Connecting(waiting=False))
            try:
                self._started = await self._start_engine()
            except asyncio.CancelledError:
                await self._stop_engine()
                self._arbiter.release(self.session_id)
                self._status = SessionStatus.IDLE
                self._sync_state.emit(NotSynced(NotStarted()))
                raise
            self._status = SessionStatus.ACTIVE if self._started else SessionStatus.FAILED
            return self._started

    async def stop(self) -> None:
        """
        Stop syncing and release the engine.

        Engine errors during shutdown are logged; the arbiter is released
        regardless so a waiting session can proceed.
        """
        self._stop_requested.set()
        if self._wakeup is not None:
            self._wakeup.set()

        async with self._lock:
            was_started = self._started
            try:
                if was_started:
                    self._status = SessionStatus.STOPPING
                    await asyncio.sleep(self._config.stop_settle_delay)
                if was_started or self._handle is not None or self._consumer is not None:
                    await self._stop_engine()
            finally:
                self._arbiter.release(self.session_id)
                self._started = False
                self._status = SessionStatus.IDLE
                self._stop_requested.clear()
            if was_started:
                self._sync_state.emit(NotSynced(NotStarted()))
                logger.info("Session stopped", extra=self._log_extra)

    def stop_threadsafe(self, timeout: float | None = None) -> None:
        """Stop the session from a thread other than its event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self._arbiter.release(self.session_id)
            return
        future = asyncio.run_coroutine_threadsafe(self.stop(), loop)
        future.result(timeout)

    async def _wait_for_turn(self) -> ArbiterState:
        state = self._arbiter.request_initial_state(self.session_id)
        if state is not ArbiterState.WAITING:
            return state

        logger.info("Waiting for the running session to stop", extra=self._log_extra)
        loop = asyncio.get_running_loop()
        wakeup = asyncio.Event()
        self._wakeup = wakeup

        def notify() -> None:
            loop.call_soon_threadsafe(wakeup.set)

        self._arbiter.add_listener(notify)
        try:
            while state is ArbiterState.WAITING:
                if self._stop_requested.is_set():
                    self._arbiter.withdraw(self.session_id)
                    return ArbiterState.OBSOLETE
                try:
                    await asyncio.wait_for(wakeup.wait(), timeout=self._config.poll_interval)
                except asyncio.TimeoutError:
                    pass
                wakeup.clear()
                state = self._arbiter.poll_state(self.session_id)
        finally:
            self._arbiter.remove_listener(notify)
            self._wakeup = None
        return state

    # ── Engine bring-up / shutdown ───────────────────────────────────

    async def _engine_call(self, func, *args):
        """
        Run a blocking engine call on a worker thread.

        If the caller is cancelled, the cancellation is re-raised only after
        the call has returned, so shutdown never overlaps a call in flight.
        """
        call = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(call)
        except asyncio.CancelledError:
            await asyncio.wait([call])
            raise

    def _open_wallet(self) -> WalletHandle | None:
        handle = self._engine.open_wallet(str(self._files.cache_file), self._password)
        self._handle = handle
        return handle

    async def _start_engine(self) -> bool:
        self._synced = False
        self._first_block_height = None
        self._wallet_height = None
        self._refreshes = DropOldestChannel(self._config.refresh_buffer)
        self._consumer = asyncio.create_task(self._consume_refreshes())

        try:
            await self._engine_call(self.create_wallet_if_not_exists)
            self._engine.set_observer(self)

            handle = await self._engine_call(self._open_wallet)
            if handle is None:
                return await self._abort_start(InvalidNode("Invalid wallet"))
            if not handle.status.ok:
                return await self._abort_start(InvalidNode(f"Invalid wallet: {handle.status}"))

            node = NodeDescriptor.parse(self._node)
            if node is None:
                return await self._abort_start(InvalidNode("Invalid node"))
            if node.network != self._config.network:
                # the daemon is never contacted; reported like any other start failure
                return await self._abort_start(StartError("network type does not match"))
            self._node_info = node

            await self._engine_call(self._engine.set_daemon, node)
            status = await self._engine_call(self._engine.start_refresh, handle, self._trust_node)
            if status is None:
                return await self._abort_start(StartError("Wallet is NULL"))
            if not status.ok:
                return await self._abort_start(StartError(str(status)))
        except Exception as exc:
            logger.warning(f"Wallet start failed: {exc}", extra=self._log_extra)
            return await self._abort_start(StartError(str(exc) or type(exc).__name__))

        logger.info(f"Session started on {node}", extra=self._log_extra)
        return True

    async def _abort_start(self, error: SyncError) -> bool:
        logger.warning(f"Session not started: {error.message}", extra=self._log_extra)
        await self._stop_engine()
        self._sync_state.emit(NotSynced(error))
        return False

    async def _stop_engine(self) -> None:
        # consumer first: a first-sync store it started finishes before close
        await self._stop_consumer()
        handle = self._handle
        self._handle = None
        try:
            await self._engine_call(self._shutdown_engine, handle)
        except Exception:
            logger.exception("Engine shutdown failed", extra=self._log_extra)

    def _shutdown_engine(self, handle: WalletHandle | None) -> None:
        self._engine.set_observer(None)
        if handle is not None:
            with self._save_lock:
                self._engine.pause_refresh(handle)
                self._engine.close_wallet(handle)

    async def _stop_consumer(self) -> None:
        task = self._consumer
        self._consumer = None
        self._refreshes = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def create_wallet_if_not_exists(self) -> bool:
        """
        Create the wallet files from the seed unless any of them exist.

        Blocking; returns True if files were created.  Raises
        :class:`EngineError` when the engine rejects the seed.
        """
        files = self._files
        files.ensure_directory()
        if files.any_exist():
            logger.debug("Wallet files already exist", extra=self._log_extra)
            return False

        path = str(files.cache_file)
        seed = self._seed
        if isinstance(seed, WatchOnly):
            handle = self._engine.create_watch_only_wallet(
                path, self._password, "", self._restore_height,
                seed.address, seed.view_private_key,
            )
        else:
            legacy = self._legacy_seed()
            handle = self._engine.recover_wallet(
                path, self._password, legacy.mnemonic, legacy.passphrase,
                self._restore_height,
            )

        if not handle.status.ok:
            raise EngineError(f"Wallet recovery error: {handle.status.error}")
        self._engine.close_wallet(handle)

        # The engine rebuilds the cache on open; only keys and address are kept
        files.cache_file.unlink(missing_ok=True)
        logger.info(f"Wallet created (restore height {self._restore_height})",
                    extra=self._log_extra)
        return True

    def _legacy_seed(self) -> LegacyMnemonic:
        if self._legacy is None:
            self._legacy = self._seed.to_legacy()
        return self._legacy

    # ── Engine callbacks (engine thread) ─────────────────────────────

    def on_refreshed(self, snapshot: WalletSnapshot, full: bool) -> bool:
        """
        Hand a refresh snapshot to the session loop.

        Never blocks.  Returns False when the snapshot was not taken or the
        engine reported an error.
        """
        channel, loop = self._refreshes, self._loop
        if channel is None or loop is None:
            return False
        try:
            loop.call_soon_threadsafe(channel.send_nowait, snapshot)
        except RuntimeError:
            # loop closed
            return False
        return snapshot.status.ok

    def on_initial_history(self, txs: Sequence[TransactionInfo],
                           balance: Any = None) -> None:
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._apply_initial_history, tuple(txs), balance)
        except RuntimeError:
            pass

    def _apply_initial_history(self, txs: tuple[TransactionInfo, ...], balance: Any) -> None:
        self._transactions.emit(txs)
        if isinstance(balance, Balance):
            self._balance.emit(balance)

    # ── Refresh processing (session loop) ────────────────────────────

    async def _consume_refreshes(self) -> None:
        channel = self._refreshes
        if channel is None:
            return
        while True:
            snapshot = await channel.receive()
            try:
                await self._apply_refresh(snapshot)
            except Exception:
                logger.exception("Failed to apply wallet refresh", extra=self._log_extra)

    async def _apply_refresh(self, snapshot: WalletSnapshot) -> None:
        if not snapshot.status.ok:
            self._sync_state.emit(NotSynced(EngineFailure(str(snapshot.status))))
            return

        if snapshot.history is not None:
            self._transactions.emit(tuple(snapshot.history))

        height = snapshot.blockchain_height
        self._wallet_height = height
        if self._first_block_height is None:
            self._first_block_height = height

        if snapshot.is_synchronized:
            if not self._synced:
                self._synced = True
                await self.save_state()
            self._sync_state.emit(SYNCED)
        else:
            daemon_height = self._engine.get_daemon_height()
            progress, remaining = sync_progress(self._first_block_height, daemon_height, height)
            self._sync_state.emit(Syncing(progress, remaining))

        self._balance.emit(Balance.from_engine(snapshot.balance, snapshot.unlocked_balance))
        self._new_blocks.send_nowait(height)

    async def save_state(self) -> bool:
        """
        Store the open wallet.

        Single-flight: returns False without storing while another store is
        in progress, or when no wallet is open.
        """
        handle = self._handle
        if handle is None:
            return False
        if not self._save_lock.acquire(blocking=False):
            logger.debug("Wallet store already in progress, skipping", extra=self._log_extra)
            return False
        try:
            stored = await self._engine_call(self._engine.store_wallet, handle)
        finally:
            self._save_lock.release()
        if not stored:
            logger.warning("Wallet store failed", extra=self._log_extra)
        return bool(stored)

    # ── Transactions ─────────────────────────────────────────────────

    def _require_handle(self) -> WalletHandle:
        handle = self._handle
        if handle is None:
            raise EngineError("Wallet is not open")
        return handle

    def _build_request(self, amount: int, address: str, memo: str | None) -> TxRequest:
        if amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount}")
        if amount == self.balance.unlocked:
            amount = SWEEP_ALL
        return TxRequest(
            destination=address,
            amount=amount,
            mixin=MIXIN,
            priority=Priority.MEDIUM,
            user_notes=memo or None,
        )

    async def estimate_fee(self, amount: int, address: str, memo: str | None = None) -> int:
        """Fee in atomic units for sending *amount* to *address*."""
        handle = self._require_handle()
        request = self._build_request(amount, address, memo)
        return await asyncio.to_thread(self._engine.estimate_fee, handle, request)

    async def send(self, amount: int, address: str, memo: str | None = None) -> str:
        """
        Build, sign and broadcast a transfer.  Returns the transaction id.

        Sending the whole unlocked balance sweeps the wallet.  Engine errors
        propagate unchanged; nothing is retried.
        """
        handle = self._require_handle()
        request = self._build_request(amount, address, memo)
        pending: PendingTransaction = await asyncio.to_thread(
            self._engine.create_transaction, handle, request
        )
        committed = await asyncio.to_thread(self._engine.commit_transaction, handle, pending)
        if not committed:
            raise EngineError("Send Transaction failed")
        logger.info(f"Transaction {pending.tx_id} sent", extra=self._log_extra)
        await self.save_state()
        return pending.tx_id

    # ── Addresses and keys ───────────────────────────────────────────

    def get_subaddresses(self) -> list[Subaddress]:
        handle = self._handle
        if handle is not None:
            return sorted(self._engine.get_subaddresses(handle))
        seed = self._seed
        if isinstance(seed, WatchOnly):
            return [Subaddress(self._account_index, 0, seed.address)]
        legacy = self._legacy_seed()
        return sorted(
            Subaddress(
                self._account_index,
                index,
                self._engine.generate_address(
                    legacy.mnemonic, legacy.passphrase, self._account_index, index
                ),
            )
            for index in range(OFFLINE_SUBADDRESS_COUNT)
        )

    def get_subaddress(self, account_index: int, address_index: int) -> Optional[Subaddress]:
        for sub in self.get_subaddresses():
            if sub.account_index == account_index and sub.address_index == address_index:
                return sub
        return None

    @property
    def receive_address(self) -> str:
        """Latest unused subaddress, creating one when all have been used."""
        handle = self._handle
        if handle is not None:
            subaddresses = self._engine.get_subaddresses(handle)
            unused = [s for s in subaddresses[1:] if s.txs_count == 0]
            if unused:
                return unused[-1].address
            return self._engine.new_subaddress(handle)
        seed = self._seed
        if isinstance(seed, WatchOnly):
            return seed.address
        legacy = self._legacy_seed()
        return self._engine.generate_address(
            legacy.mnemonic, legacy.passphrase, self._account_index, 1
        )

    def get_keys(self) -> Keys | None:
        """Spend and view keys, or None when they can't be derived locally."""
        if isinstance(self._seed, WatchOnly):
            return None
        legacy = self._legacy_seed()
        if legacy.passphrase:
            return None
        return keys_from_seed(legacy)

    # ── Introspection ────────────────────────────────────────────────

    @property
    def last_block_height(self) -> int | None:
        if self._engine.get_connection_status() is not ConnectionStatus.CONNECTED:
            return None
        return self._engine.get_daemon_height()

    def status_info(self) -> dict[str, Any]:
        handle = self._handle
        node = self._node_info
        node_info = "NULL"
        if node is not None:
            node_info = f"{node} ({'trusted' if self._trust_node else 'untrusted'})"
        return {
            "Session ID": self.session_id,
            "Session Status": self._status.value,
            "Node": node_info,
            "Wallet Status": str(handle.status) if handle is not None else "NULL",
            "Sync State": self.sync_state.description,
            "Wallet Height": self._wallet_height,
            "Last Block Height": self.last_block_height,
            "Connection Status": self._engine.get_connection_status().value,
            "Arbiter": self._arbiter.status(),
        }

    # ── Static helpers ───────────────────────────────────────────────

    @staticmethod
    def validate_address(engine: WalletEngine, address: str) -> None:
        if not engine.is_address_valid(address):
            raise ValueError(f"Invalid address: {address}")

    @staticmethod
    def validate_private_view_key(engine: WalletEngine, view_key: str, address: str) -> None:
        """Raise ValueError unless ``view_key`` is the view key of ``address``."""
        error = engine.is_private_view_key_valid(view_key, address)
        if error:
            raise ValueError(error)

    @staticmethod
    def validate_private_spend_key(engine: WalletEngine, spend_key: str, address: str) -> None:
        error = engine.is_private_spend_key_valid(spend_key, address)
        if error:
            raise ValueError(error)

    @staticmethod
    def delete_wallet(directory: str | Path, wallet_id: str) -> bool:
        """Delete a wallet's files.  The session must not be running."""
        return WalletFiles(directory, wallet_id).delete()

    def __repr__(self) -> str:
        return (
            f"WalletSession(wallet_id={self.wallet_id!r}, "
            f"session_id={self.session_id!r}, status={self._status.value})"
        )
