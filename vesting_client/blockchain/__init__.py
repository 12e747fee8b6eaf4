"""
Ledger interaction components for the vesting client.
"""

from vesting_client.blockchain.ledger_client import LedgerClient
from vesting_client.blockchain.read_model import ReadModelSynchronizer
from vesting_client.blockchain.transaction_monitor import TransactionLifecycleManager

__all__ = [
    "LedgerClient",
    "ReadModelSynchronizer",
    "TransactionLifecycleManager",
]
