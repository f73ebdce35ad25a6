"""
TOML-based configuration for monerokit wallet sessions.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from monerokit_core.config import load_config
    cfg = load_config("monerokit.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from monerokit_core.node import DEFAULT_NODES


@dataclass
class WalletConfig:
    """Where wallet files live and how they are unlocked."""
    directory: str = "data/wallets"
    password: str = ""


@dataclass
class NodeConfig:
    """Remote daemon selection."""
    uri: str = DEFAULT_NODES["BOLDSUCK"]
    trusted: bool = False


@dataclass
class SyncConfig:
    """Session timing and network settings."""
    network: str = "mainnet"
    poll_interval: float = 1.0       # arbiter re-poll while waiting (seconds)
    stop_settle_delay: float = 1.0   # pause before stopping the engine (seconds)
    new_block_buffer: int = 1        # buffered new-block notifications
    refresh_buffer: int = 1          # buffered engine refresh snapshots


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class KitConfig:
    """Top-level configuration container."""
    wallet: WalletConfig = field(default_factory=WalletConfig)
    node: NodeConfig = field(default_factory=NodeConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("wallet", "node", "sync", "logging")


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# env var -> (section, field, converter)
_ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "MONEROKIT_WALLET_DIR": ("wallet", "directory", str),
    "MONEROKIT_NODE": ("node", "uri", str),
    "MONEROKIT_TRUST_NODE": ("node", "trusted", _truthy),
    "MONEROKIT_NETWORK": ("sync", "network", str.lower),
    "MONEROKIT_POLL_INTERVAL": ("sync", "poll_interval", float),
    "MONEROKIT_LOG_LEVEL": ("logging", "level", str.upper),
    "MONEROKIT_LOG_FMT": ("logging", "format", str),
}


def _apply_table(section: Any, table: dict[str, Any]) -> None:
    """Copy known keys from a TOML table onto a section; dashes map to underscores."""
    for key, value in table.items():
        name = key.replace("-", "_")
        if hasattr(section, name):
            setattr(section, name, value)


def load_config(path: str | None = None) -> KitConfig:
    """
    Build a :class:`KitConfig` from defaults, an optional TOML file and
    ``MONEROKIT_*`` environment variables, in that order of precedence.

    A missing file is not an error.  Unknown tables and keys are ignored.
    See ``_ENV_OVERRIDES`` for the recognised variables.
    """
    cfg = KitConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None and Path(path).exists():
        with open(path, "rb") as fh:
            document = tomllib.load(fh)
        for name in _SECTIONS:
            if name in document:
                _apply_table(getattr(cfg, name), document[name])

    # ── Environment ──────────────────────────────────────────────
    for var, (section, attr, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if raw:
            setattr(getattr(cfg, section), attr, convert(raw))

    return cfg
