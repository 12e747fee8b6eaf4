"""
Core components for the vesting client: data model, validation, network
gating and status aggregation. Nothing in this package performs I/O.
"""

from vesting_client.core.errors import (
    Severity,
    VestingClientError,
    ValidationError,
    ValidationKind,
    NetworkMismatchError,
    WalletNotConnectedError,
    NotOwnerError,
    TransactionInProgressError,
    SubmissionError,
    ConfirmationError,
    LookupFailure,
    OwnerFetchFailure,
    ConfigError,
)
from vesting_client.core.models import (
    AccountContext,
    VestingScheduleRequest,
    VestedAmountQuery,
    OwnerRecord,
    TransactionKind,
    TransactionPhase,
    TransactionHandle,
)
from vesting_client.core.validation import (
    validate_address,
    validate_vesting_request,
    to_wei,
    format_wei,
)
from vesting_client.core.network_guard import NetworkGuard, NetworkStatus
from vesting_client.core.status_reporter import StatusReporter, StatusSnapshot

__all__ = [
    # Errors
    "Severity",
    "VestingClientError",
    "ValidationError",
    "ValidationKind",
    "NetworkMismatchError",
    "WalletNotConnectedError",
    "NotOwnerError",
    "TransactionInProgressError",
    "SubmissionError",
    "ConfirmationError",
    "LookupFailure",
    "OwnerFetchFailure",
    "ConfigError",

    # Data model
    "AccountContext",
    "VestingScheduleRequest",
    "VestedAmountQuery",
    "OwnerRecord",
    "TransactionKind",
    "TransactionPhase",
    "TransactionHandle",

    # Validation and gating
    "validate_address",
    "validate_vesting_request",
    "to_wei",
    "format_wei",
    "NetworkGuard",
    "NetworkStatus",
    "StatusReporter",
    "StatusSnapshot",
]
