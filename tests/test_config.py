"""
Tests for monerokit_core.config: TOML configuration and environment overrides.

Covers:
  - Default values for all dataclass sections
  - TOML parsing and section merging
  - Environment variable overrides (precedence over TOML)
  - _apply_table edge cases
  - Missing TOML files
  - Building a session from configuration
"""

from __future__ import annotations

import os
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from monerokit_core.config import (
    KitConfig,
    LoggingConfig,
    NodeConfig,
    SyncConfig,
    WalletConfig,
    _apply_table,
    load_config,
)
from monerokit_core.node import DEFAULT_NODES, NodeDescriptor
from monerokit_core.seed import Bip39
from monerokit_core.session import WalletSession

# ═══════════════════════════════════════════════════════════════════
#  Defaults
# ═══════════════════════════════════════════════════════════════════

class TestDefaults(unittest.TestCase):

    def test_wallet_defaults(self):
        w = WalletConfig()
        self.assertEqual(w.directory, "data/wallets")
        self.assertEqual(w.password, "")

    def test_node_defaults(self):
        n = NodeConfig()
        self.assertEqual(n.uri, DEFAULT_NODES["BOLDSUCK"])
        self.assertIsNotNone(NodeDescriptor.parse(n.uri))
        self.assertFalse(n.trusted)

    def test_sync_defaults(self):
        s = SyncConfig()
        self.assertEqual(s.network, "mainnet")
        self.assertEqual(s.poll_interval, 1.0)
        self.assertEqual(s.stop_settle_delay, 1.0)
        self.assertEqual(s.new_block_buffer, 1)
        self.assertEqual(s.refresh_buffer, 1)

    def test_logging_defaults(self):
        log_cfg = LoggingConfig()
        self.assertEqual(log_cfg.level, "INFO")
        self.assertEqual(log_cfg.format, "human")
        self.assertIsNone(log_cfg.file)

    def test_kit_config_defaults(self):
        cfg = KitConfig()
        self.assertIsInstance(cfg.wallet, WalletConfig)
        self.assertIsInstance(cfg.sync, SyncConfig)


# ═══════════════════════════════════════════════════════════════════
#  _apply_table helper
# ═══════════════════════════════════════════════════════════════════

class TestApplyTable(unittest.TestCase):

    def test_updates_fields(self):
        s = SyncConfig()
        _apply_table(s, {"network": "stagenet", "poll_interval": 0.5})
        self.assertEqual(s.network, "stagenet")
        self.assertEqual(s.poll_interval, 0.5)

    def test_ignores_unknown_keys(self):
        s = SyncConfig()
        _apply_table(s, {"unknown_field": 42})
        self.assertFalse(hasattr(s, "unknown_field"))

    def test_hyphenated_keys(self):
        s = SyncConfig()
        _apply_table(s, {"stop-settle-delay": 2.5})
        self.assertEqual(s.stop_settle_delay, 2.5)


# ═══════════════════════════════════════════════════════════════════
#  TOML loading
# ═══════════════════════════════════════════════════════════════════

class TestLoadConfig(unittest.TestCase):

    def test_load_no_file(self):
        cfg = load_config(None)
        self.assertEqual(cfg.sync.network, "mainnet")

    def test_load_missing_file(self):
        cfg = load_config("/tmp/__nonexistent_monerokit__.toml")
        self.assertEqual(cfg.wallet.directory, "data/wallets")

    def test_load_toml_file(self):
        content = textwrap.dedent("""\
            [wallet]
            directory = "/var/lib/monerokit"

            [node]
            uri = "node.example.org:38081/stagenet/example"
            trusted = true

            [sync]
            network = "stagenet"
            poll-interval = 0.25
            new_block_buffer = 4

            [logging]
            level = "DEBUG"
            format = "json"
        """)
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write(content)
            f.flush()
            cfg = load_config(f.name)
        os.unlink(f.name)

        self.assertEqual(cfg.wallet.directory, "/var/lib/monerokit")
        self.assertEqual(cfg.node.uri, "node.example.org:38081/stagenet/example")
        self.assertTrue(cfg.node.trusted)
        self.assertEqual(cfg.sync.network, "stagenet")
        self.assertEqual(cfg.sync.poll_interval, 0.25)
        self.assertEqual(cfg.sync.new_block_buffer, 4)
        self.assertEqual(cfg.logging.level, "DEBUG")
        self.assertEqual(cfg.logging.format, "json")


# ═══════════════════════════════════════════════════════════════════
#  Environment variable overrides
# ═══════════════════════════════════════════════════════════════════

class TestEnvOverrides(unittest.TestCase):

    @patch.dict(os.environ, {"MONEROKIT_WALLET_DIR": "/tmp/w"}, clear=False)
    def test_env_wallet_dir(self):
        self.assertEqual(load_config(None).wallet.directory, "/tmp/w")

    @patch.dict(os.environ, {"MONEROKIT_NODE": "h:1/mainnet/x"}, clear=False)
    def test_env_node(self):
        self.assertEqual(load_config(None).node.uri, "h:1/mainnet/x")

    @patch.dict(os.environ, {"MONEROKIT_TRUST_NODE": "yes"}, clear=False)
    def test_env_trust_node(self):
        self.assertTrue(load_config(None).node.trusted)

    @patch.dict(os.environ, {"MONEROKIT_TRUST_NODE": "0"}, clear=False)
    def test_env_trust_node_false(self):
        self.assertFalse(load_config(None).node.trusted)

    @patch.dict(os.environ, {"MONEROKIT_NETWORK": "TESTNET"}, clear=False)
    def test_env_network_lowercased(self):
        self.assertEqual(load_config(None).sync.network, "testnet")

    @patch.dict(os.environ, {"MONEROKIT_POLL_INTERVAL": "0.2"}, clear=False)
    def test_env_poll_interval(self):
        self.assertEqual(load_config(None).sync.poll_interval, 0.2)

    @patch.dict(os.environ, {"MONEROKIT_LOG_LEVEL": "debug"}, clear=False)
    def test_env_log_level_uppercased(self):
        self.assertEqual(load_config(None).logging.level, "DEBUG")

    @patch.dict(os.environ, {"MONEROKIT_LOG_FMT": "json"}, clear=False)
    def test_env_log_format(self):
        self.assertEqual(load_config(None).logging.format, "json")

    @patch.dict(os.environ, {"MONEROKIT_NETWORK": "stagenet"}, clear=False)
    def test_env_overrides_toml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write('[sync]\nnetwork = "mainnet"\n')
            f.flush()
            cfg = load_config(f.name)
        os.unlink(f.name)
        self.assertEqual(cfg.sync.network, "stagenet")


# ═══════════════════════════════════════════════════════════════════
#  Session construction
# ═══════════════════════════════════════════════════════════════════

class TestSessionFromConfig(unittest.TestCase):

    def test_from_config(self):
        cfg = KitConfig()
        cfg.wallet.directory = "/tmp/monerokit-wallets"
        cfg.node.trusted = True
        session = WalletSession.from_config(
            Bip39("abandon " * 11 + "about"), "w1", engine=object(), config=cfg,
            restore="2500000",
        )
        self.assertEqual(session.files.directory.as_posix(), "/tmp/monerokit-wallets")
        self.assertEqual(session._restore_height, 2_500_000)
        self.assertTrue(session._trust_node)
        self.assertIs(session._config, cfg.sync)
