"""
Tests for monerokit_core.wallet_files: on-disk wallet layout.
"""

import pytest

from monerokit_core.session import WalletSession
from monerokit_core.wallet_files import WalletFiles


@pytest.fixture
def files(tmp_path):
    return WalletFiles(tmp_path / "wallets", "w1")


def _create(files, cache=True, keys=True, address=True):
    files.ensure_directory()
    if cache:
        files.cache_file.write_text("c")
    if keys:
        files.keys_file.write_text("k")
    if address:
        files.address_file.write_text("a")


class TestLayout:
    def test_paths(self, files, tmp_path):
        assert files.cache_file == tmp_path / "wallets" / "w1"
        assert files.keys_file.name == "w1.keys"
        assert files.address_file.name == "w1.address.txt"

    @pytest.mark.parametrize("wallet_id", ["", ".", "..", "a/b"])
    def test_invalid_id(self, tmp_path, wallet_id):
        with pytest.raises(ValueError):
            WalletFiles(tmp_path, wallet_id)

    def test_any_exist(self, files):
        assert not files.any_exist()
        _create(files, cache=False, keys=False)
        assert files.any_exist()


class TestDelete:
    def test_delete_all(self, files):
        _create(files)
        assert files.delete()
        assert not files.any_exist()

    def test_cache_and_address_optional(self, files):
        _create(files, cache=False, address=False)
        assert files.delete()

    def test_keys_required(self, files):
        _create(files, keys=False)
        assert not files.delete()
        assert not files.any_exist()

    def test_session_helper(self, files):
        _create(files)
        assert WalletSession.delete_wallet(files.directory, "w1")
        assert not files.any_exist()
