"""
Wallet client implementations.

Available clients:
- SnapshotFileClient: read-only client over an exported JSON UTXO snapshot
"""

from utxoguard.backends.base import PaymentOutput, WalletClient
from utxoguard.backends.snapshot import SnapshotError, SnapshotFileClient

__all__ = [
    "PaymentOutput",
    "SnapshotError",
    "SnapshotFileClient",
    "WalletClient",
]
