"""
Error taxonomy for the vesting client.

Every failure the client can observe is represented by one of the classes
below. Each error carries a user-facing message and an explicit severity so
that the status layer never has to guess severity from message text.
"""

from enum import Enum
from typing import Optional


class Severity(Enum):
    """Severity attached to a status message."""
    INFO = "info"
    ERROR = "error"


class VestingClientError(Exception):
    """Base class for all vesting client errors."""

    severity = Severity.ERROR
    default_message = "An unknown error occurred."

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)


class ValidationKind(Enum):
    """Validation rules, listed in the order they are checked."""
    INVALID_ADDRESS = "invalid_address"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    NON_POSITIVE_DURATION = "non_positive_duration"
    NEGATIVE_CLIFF = "negative_cliff"


VALIDATION_MESSAGES = {
    ValidationKind.INVALID_ADDRESS: "Invalid recipient address.",
    ValidationKind.NON_POSITIVE_AMOUNT: "Amount must be greater than zero.",
    ValidationKind.NON_POSITIVE_DURATION: "Duration must be greater than zero.",
    ValidationKind.NEGATIVE_CLIFF: "Cliff duration cannot be negative.",
}


class ValidationError(VestingClientError):
    """Vesting parameters rejected locally, before reaching the ledger."""

    def __init__(self, kind: ValidationKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or VALIDATION_MESSAGES[kind])


class NetworkMismatchError(VestingClientError):
    """The active chain differs from the required one."""

    def __init__(self, expected: int, actual: Optional[int], message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message or f"Wrong network: expected chain {expected}, got {actual}.")


class WalletNotConnectedError(VestingClientError):
    default_message = "Please connect your wallet."


class NotOwnerError(VestingClientError):
    default_message = "Only the contract owner can create vesting schedules."


class TransactionInProgressError(VestingClientError):
    default_message = "A transaction of this kind is already in progress."


class SubmissionError(VestingClientError):
    """The wallet or node declined to accept a state-changing call."""
    default_message = "Transaction error."


class ConfirmationError(VestingClientError):
    """A submitted call failed to finalize, or finalization could not be observed."""
    default_message = "Confirmation error."


class LookupFailure(VestingClientError):
    """
    A vested-amount lookup failed.

    The user-facing message is the same whatever went wrong; ``reason`` keeps
    the distinction between a missing schedule and a transport failure for
    diagnostics.
    """

    NO_SCHEDULE = "no_schedule"
    TRANSPORT = "transport"

    default_message = "No vesting schedule found for this address."

    def __init__(self, reason: str = NO_SCHEDULE, cause: Optional[BaseException] = None):
        self.reason = reason
        super().__init__(cause=cause)


class OwnerFetchFailure(VestingClientError):
    default_message = "Failed to fetch contract owner. Ensure contract is deployed and address is correct."


class ConfigError(VestingClientError):
    """Invalid client configuration."""
    default_message = "Invalid configuration."
