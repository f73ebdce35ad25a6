"""
On-disk layout of a wallet.

Each wallet id maps to up to three files in the wallet directory:

    <id>              binary wallet cache
    <id>.keys         encrypted keys
    <id>.address.txt  primary address

Presence of any of them means the wallet exists and must not be
recreated.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger("monerokit_wallet_files")


class WalletFiles:
    """Paths of a single wallet's files."""

    def __init__(self, directory: str | Path, wallet_id: str):
        if not wallet_id or "/" in wallet_id or wallet_id in (".", ".."):
            raise ValueError(f"Invalid wallet id: {wallet_id!r}")
        self.directory = Path(directory)
        self.wallet_id = wallet_id

    @property
    def cache_file(self) -> Path:
        return self.directory / self.wallet_id

    @property
    def keys_file(self) -> Path:
        return self.directory / f"{self.wallet_id}.keys"

    @property
    def address_file(self) -> Path:
        return self.directory / f"{self.wallet_id}.address.txt"

    def all_files(self) -> list[Path]:
        return [self.cache_file, self.keys_file, self.address_file]

    def any_exist(self) -> bool:
        return any(p.exists() for p in self.all_files())

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def delete(self) -> bool:
        """
        Remove the wallet's files.

        The cache and address files are optional; the keys file must be
        present for the deletion to count as successful.
        """
        logger.debug(f"Deleting wallet {self.cache_file}")
        success = True
        if self.cache_file.exists():
            success = self._unlink(self.cache_file)
        success = self._unlink(self.keys_file) and success
        if self.address_file.exists():
            success = self._unlink(self.address_file) and success
        logger.debug(f"Wallet {self.wallet_id} deleted: {success}")
        return success

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning(f"Could not delete {path}: {exc}")
            return False
        return True

    def __repr__(self) -> str:
        return f"WalletFiles({self.cache_file})"
