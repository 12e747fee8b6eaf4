"""
Data model shared by the vesting client components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from vesting_client.core.errors import VestingClientError


@dataclass(frozen=True)
class AccountContext:
    """Account and chain supplied by the wallet. Either may be absent."""
    address: Optional[str] = None
    chain_id: Optional[int] = None

    @property
    def is_connected(self) -> bool:
        return self.address is not None


@dataclass(frozen=True)
class VestingScheduleRequest:
    recipient: str
    amount_wei: int
    duration_seconds: int
    cliff_seconds: int


@dataclass(frozen=True)
class VestedAmountQuery:
    """
    Cached vested amount for one inspected address.

    A new instance is created for every new lookup target; results are
    recorded by replacing the instance, never by mutating it.
    """
    subject: str
    amount_wei: Optional[int] = None
    last_checked_at: Optional[float] = None
    error: Optional[VestingClientError] = None


@dataclass
class OwnerRecord:
    owner: Optional[str] = None
    fetched_at: Optional[float] = None
    error: Optional[VestingClientError] = None

    @property
    def is_known(self) -> bool:
        return self.owner is not None


class TransactionKind(Enum):
    CREATE_SCHEDULE = "create_schedule"
    CLAIM_BALANCE = "claim_balance"


class TransactionPhase(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({TransactionPhase.IDLE, TransactionPhase.CONFIRMED, TransactionPhase.FAILED})
BUSY_PHASES = frozenset({TransactionPhase.SUBMITTING, TransactionPhase.AWAITING_CONFIRMATION})


@dataclass
class TransactionHandle:
    """Lifecycle of one state-changing call."""
    kind: TransactionKind
    phase: TransactionPhase = TransactionPhase.IDLE
    submitted_hash: Optional[str] = None
    failure: Optional[VestingClientError] = None
    history: list = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def is_busy(self) -> bool:
        return self.phase in BUSY_PHASES
