"""
Restore-height parsing.

A restore height is given either as a block height or as a date; dates
are turned into an estimated height from the chain timeline and moved
back by a week so the scan never starts after the wallet's first output.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

logger = logging.getLogger("monerokit_restore_height")

GENESIS_DATE = date(2014, 4, 18)

# Block-time change from 60 s to 120 s (hard fork v2)
V2_FORK_HEIGHT = 1_009_827
V2_FORK_DATE = date(2016, 3, 22)

BLOCKS_PER_DAY_V1 = 1440
BLOCKS_PER_DAY_V2 = 720

SAFETY_MARGIN_DAYS = 7


def estimate_height(day: date) -> int:
    """Estimated first block height of *day* on mainnet."""
    day = date.fromordinal(day.toordinal() - SAFETY_MARGIN_DAYS)
    if day <= GENESIS_DATE:
        return 0
    if day <= V2_FORK_DATE:
        return min((day - GENESIS_DATE).days * BLOCKS_PER_DAY_V1, V2_FORK_HEIGHT)
    return V2_FORK_HEIGHT + (day - V2_FORK_DATE).days * BLOCKS_PER_DAY_V2


def parse_restore_height(text: str, network: str = "mainnet") -> int:
    """
    Parse a restore height from user input.

    Accepts ``YYYY-MM-DD`` or ``YYYYMMDD`` dates (mainnet only) and plain
    block heights.  Returns -1 for empty or unparseable input.
    """
    trimmed = text.strip()
    if not trimmed:
        return -1

    height = -1
    if network == "mainnet":
        for fmt in ("%Y-%m-%d", "%Y%m%d"):
            if fmt == "%Y%m%d" and len(trimmed) != 8:
                continue
            try:
                height = estimate_height(datetime.strptime(trimmed, fmt).date())
                break
            except ValueError:
                continue

    if height < 0:
        try:
            height = int(trimmed)
        except ValueError:
            height = -1
        if height < 0:
            height = -1

    logger.debug(f"Using restore height {height}")
    return height


def restore_height_for_new_wallet(today: date | None = None) -> int:
    return estimate_height(today or date.today())
