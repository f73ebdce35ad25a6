"""
Sync state of a wallet session.

States:
  - ``Connecting(waiting)`` : start requested; ``waiting`` while another
    session still owns the wallet engine
  - ``Syncing(progress, remaining_blocks)``
  - ``SYNCED``              : singleton
  - ``NotSynced(error)``    : not running, or failed

Snapshots are immutable; the session replaces the published value on
every transition.  ``==`` is strict (payloads included).  Use
:func:`same_state` for the loose comparison that ignores sync progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


# ===================================================================
#  Sync errors
# ===================================================================

class SyncError(Exception):
    """Reason a session is not synced.  Published, never raised."""

    default_message = ""

    def __init__(self, message: str | None = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SyncError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class NotStarted(SyncError):
    default_message = "Not Started"


class InvalidNode(SyncError):
    pass


class StartError(SyncError):
    pass


class EngineFailure(SyncError):
    """The engine reported an error status from a refresh."""


# ===================================================================
#  States
# ===================================================================

@dataclass(frozen=True)
class Connecting:
    waiting: bool

    @property
    def description(self) -> str:
        return f"Connecting (waiting: {self.waiting})"


@dataclass(frozen=True)
class Syncing:
    progress: float | None = None
    remaining_blocks: int | None = None

    @property
    def description(self) -> str:
        percent = int(self.progress * 100) if self.progress is not None else 0
        return f"Syncing ({percent}%)"


class _Synced:
    _instance: _Synced | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def description(self) -> str:
        return "Synced"

    def __repr__(self) -> str:
        return "SYNCED"

    def __reduce__(self):
        return (_Synced, ())


SYNCED = _Synced()


@dataclass(frozen=True)
class NotSynced:
    error: SyncError

    @property
    def description(self) -> str:
        return f"NotSynced ({self.error.message or type(self.error).__name__})"


SyncState = Union[Connecting, Syncing, _Synced, NotSynced]


def initial_state() -> NotSynced:
    return NotSynced(NotStarted())


def same_state(a: SyncState, b: SyncState) -> bool:
    """Loose equality: same state kind, ignoring ``Syncing`` progress."""
    if isinstance(a, Syncing) and isinstance(b, Syncing):
        return True
    return a == b


def is_synced(state: SyncState) -> bool:
    return state is SYNCED
