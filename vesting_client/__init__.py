"""
Client for a time-based token vesting contract on an EVM ledger.

Validates vesting parameters, submits state-changing calls, tracks each
call through its lifecycle and keeps a polled read-model of contract state.
"""

__version__ = "0.1.0"

from vesting_client.core import (
    AccountContext,
    Severity,
    StatusSnapshot,
    TransactionKind,
    TransactionPhase,
    format_wei,
    to_wei,
    validate_address,
    validate_vesting_request,
)
from vesting_client.blockchain import (
    LedgerClient,
    ReadModelSynchronizer,
    TransactionLifecycleManager,
)
from vesting_client.config import load_config, save_config
from vesting_client.system import VestingClient

__all__ = [
    # Main client
    "VestingClient",
    "load_config",
    "save_config",

    # Components
    "LedgerClient",
    "ReadModelSynchronizer",
    "TransactionLifecycleManager",

    # Model and helpers
    "AccountContext",
    "Severity",
    "StatusSnapshot",
    "TransactionKind",
    "TransactionPhase",
    "format_wei",
    "to_wei",
    "validate_address",
    "validate_vesting_request",
]
