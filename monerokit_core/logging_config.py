"""
Logging setup for applications embedding monerokit.

Library modules only create ``logging.getLogger("monerokit_<module>")``
loggers; nothing is configured until the host calls :func:`setup_logging`
(or :func:`setup_logging_from_config` with a loaded ``[logging]`` table).

Two renderings are available:
  - **human**: one coloured line per record, wallet id shown as a tag
  - **json**: one object per line, session/wallet ids as top-level keys

Whatever the rendering, every handler gets a :class:`RedactSecretsFilter`
so hex keys and mnemonic phrases never reach a sink.

Usage:
    from monerokit_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="wallets/monerokit.log")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from monerokit_core.config import LoggingConfig

_CONTEXT_FIELDS = ("session_id", "wallet_id")

# 64 hex chars = one 32-byte key; 12+ lowercase words in a row = a phrase
_HEX_KEY_RE = re.compile(r"\b[0-9a-fA-F]{64}\b")
_PHRASE_RE = re.compile(r"\b(?:[a-z]{3,12} ){11,}[a-z]{3,12}\b")


class RedactSecretsFilter(logging.Filter):
    """Mask key material and mnemonic phrases in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        text = record.getMessage()
        masked = _HEX_KEY_RE.sub("<redacted key>", text)
        masked = _PHRASE_RE.sub("<redacted mnemonic>", masked)
        if masked != text:
            record.msg, record.args = masked, None
        return True


class _SessionFormatter(logging.Formatter):
    """Shared helpers: wallet/session context and traceback rendering."""

    @staticmethod
    def context(record: logging.LogRecord) -> dict:
        return {
            name: getattr(record, name)
            for name in _CONTEXT_FIELDS
            if getattr(record, name, None)
        }

    def traceback(self, record: logging.LogRecord) -> Optional[str]:
        if record.exc_info and record.exc_info[1]:
            return self.formatException(record.exc_info)
        return None


class _JSONFormatter(_SessionFormatter):

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "ts": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(self.context(record))
        tb = self.traceback(record)
        if tb:
            entry["exception"] = tb
        return json.dumps(entry, default=str)


class _HumanFormatter(_SessionFormatter):
    """``HH:MM:SS [LEVEL  ] monerokit_session: [wallet] message``"""

    LEVEL_COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLOURS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        wallet = self.context(record).get("wallet_id")
        prefix = f"[{wallet}] " if wallet else ""
        text = (
            f"{colour}{clock} [{record.levelname:<7}]{self.RESET} "
            f"{record.name}: {prefix}{record.getMessage()}"
        )
        tb = self.traceback(record)
        return f"{text}\n{tb}" if tb else text


def _handler(handler: logging.Handler, formatter: logging.Formatter,
             redact: RedactSecretsFilter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(redact)
    return handler


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Replace the root logger's handlers with monerokit's.

    Parameters
    ----------
    level : str
        Level name, case-insensitive; unknown names fall back to INFO.
    fmt : str
        ``"json"`` for one JSON object per line on stderr, anything else
        for the coloured human format.
    log_file : str, optional
        Extra JSON-lines sink.  Parent directories are created.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    redact = RedactSecretsFilter()
    console_fmt = _JSONFormatter() if fmt == "json" else _HumanFormatter()
    root.addHandler(_handler(logging.StreamHandler(sys.stderr), console_fmt, redact))

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_handler(logging.FileHandler(str(path)), _JSONFormatter(), redact))


def setup_logging_from_config(cfg: LoggingConfig) -> None:
    setup_logging(level=cfg.level, fmt=cfg.format, log_file=cfg.file)
