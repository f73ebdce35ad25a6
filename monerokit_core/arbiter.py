"""
Single-active-session arbitration.

The wallet engine is a process-wide singleton with no multiplexing, so
only one :class:`~monerokit_core.session.WalletSession` may hold it at a
time.  The arbiter tracks one running identity and at most one waiting
candidate:

  - a newer start request takes over the waiting slot; the session it
    displaced polls ``OBSOLETE`` and must abandon its start
  - releasing the running identity promotes the waiting one
  - a waiting session that is stopped before it runs withdraws itself

All operations are pure registry updates under a single lock.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable

logger = logging.getLogger("monerokit_arbiter")


class ArbiterState(Enum):
    RUNNING = "running"
    WAITING = "waiting"
    OBSOLETE = "obsolete"


class SessionArbiter:
    """Process-wide registry of the running and waiting session identities."""

    def __init__(self):
        self._lock = threading.Lock()
        self._running: str | None = None
        self._waiting: str | None = None
        self._listeners: list[Callable[[], None]] = []

    def request_initial_state(self, session_id: str) -> ArbiterState:
        with self._lock:
            if self._running is not None and self._running != session_id:
                if self._waiting is not None and self._waiting != session_id:
                    logger.debug(f"Session {self._waiting} superseded by {session_id}")
                self._waiting = session_id
                return ArbiterState.WAITING
            self._running = session_id
            return ArbiterState.RUNNING

    def poll_state(self, session_id: str) -> ArbiterState:
        with self._lock:
            if self._running is not None and self._running != session_id:
                if self._waiting == session_id:
                    return ArbiterState.WAITING
                return ArbiterState.OBSOLETE
            if self._waiting == session_id:
                self._waiting = None
            self._running = session_id
            return ArbiterState.RUNNING

    def release(self, session_id: str) -> None:
        with self._lock:
            if self._running != session_id:
                return
            self._running = self._waiting
            self._waiting = None
            promoted = self._running
            listeners = list(self._listeners)
        if promoted is not None:
            logger.debug(f"Session {session_id} released, {promoted} promoted")
        for listener in listeners:
            listener()

    def withdraw(self, session_id: str) -> None:
        """Give up the waiting slot without ever having run."""
        with self._lock:
            if self._waiting == session_id:
                self._waiting = None

    # ── wake-up notifications ────────────────────────────────────────

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked (outside the lock) after every release."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

    # ── introspection ────────────────────────────────────────────────

    @property
    def running(self) -> str | None:
        with self._lock:
            return self._running

    @property
    def waiting(self) -> str | None:
        with self._lock:
            return self._waiting

    def status(self) -> dict:
        with self._lock:
            return {"running": self._running, "waiting": self._waiting}


_default_arbiter: SessionArbiter | None = None
_default_lock = threading.Lock()


def default_arbiter() -> SessionArbiter:
    """
    The process-wide arbiter shared by sessions that are not given one.

    Lives for the lifetime of the process, like the engine it guards.
    """
    global _default_arbiter
    with _default_lock:
        if _default_arbiter is None:
            _default_arbiter = SessionArbiter()
        return _default_arbiter
