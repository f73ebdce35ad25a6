"""
monerokit - Monero wallet sessions driven by a native wallet engine.

Key features:
- BIP-39 to 25-word legacy mnemonic conversion (Cake Wallet derivation)
- Local Ed25519 spend/view key derivation from a mnemonic
- Single-active-session arbitration over the shared wallet engine
- Wallet session lifecycle with published sync state, balance and history
- Single-flight wallet persistence on first full sync
"""

__version__ = "0.1.0"
__all__ = [
    "mnemonic",
    "keys",
    "seed",
    "models",
    "sync_state",
    "arbiter",
    "node",
    "engine",
    "wallet_files",
    "restore_height",
    "streams",
    "config",
    "logging_config",
    "session",
]
