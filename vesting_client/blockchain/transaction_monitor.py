"""
Transaction lifecycle tracking for state-changing vesting calls.

Each action kind (create schedule, claim balance) gets its own
``TransactionLifecycleManager``. The managers share nothing, so a pending
claim never blocks a schedule creation and vice versa.
"""

import logging
import traceback
from typing import Awaitable, Callable, Dict, List, Optional

from vesting_client.core.errors import (
    ConfirmationError,
    Severity,
    SubmissionError,
    TransactionInProgressError,
    VestingClientError,
)
from vesting_client.core.models import (
    TransactionHandle,
    TransactionKind,
    TransactionPhase,
    VestingScheduleRequest,
)
from vesting_client.core.status_reporter import StatusReporter

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[TransactionHandle], Awaitable[None]]

ALLOWED_TRANSITIONS = {
    TransactionPhase.IDLE: {TransactionPhase.SUBMITTING},
    TransactionPhase.SUBMITTING: {TransactionPhase.AWAITING_CONFIRMATION, TransactionPhase.FAILED},
    TransactionPhase.AWAITING_CONFIRMATION: {TransactionPhase.CONFIRMED, TransactionPhase.FAILED},
    TransactionPhase.CONFIRMED: set(),
    TransactionPhase.FAILED: set(),
}

STATUS_TEXT: Dict[TransactionKind, Dict[str, str]] = {
    TransactionKind.CREATE_SCHEDULE: {
        "submitting": "Creating vesting schedule...",
        "confirmed": "Vesting schedule created successfully!",
        "submission_failed": "Failed to create vesting schedule",
        "confirmation_failed": "Failed to confirm vesting schedule",
    },
    TransactionKind.CLAIM_BALANCE: {
        "submitting": "Attempting to claim balance...",
        "confirmed": "Balance claimed successfully!",
        "submission_failed": "Failed to claim balance",
        "confirmation_failed": "Failed to confirm claim balance",
    },
}


class TransactionLifecycleManager:
    """
    Drives one state-changing call at a time for a single action kind.

    Phases: Idle -> Submitting -> AwaitingConfirmation -> Confirmed | Failed.
    A terminal handle counts as idle: the next ``submit`` replaces it with a
    fresh handle. Submitting while the current handle is still in flight is
    rejected with ``TransactionInProgressError``.

    Failures are never retried; the caller must submit again.
    """

    def __init__(
        self,
        kind: TransactionKind,
        ledger,
        reporter: Optional[StatusReporter] = None,
    ):
        """
        Initialize the lifecycle manager.

        Args:
            kind: The action kind this manager drives
            ledger: Object exposing the submission calls and ``wait_for_receipt``
            reporter: Status reporter receiving user-facing outcomes
        """
        self.kind = kind
        self.ledger = ledger
        self.reporter = reporter or StatusReporter()
        self.reporter.register_manager(self)
        self.handle = TransactionHandle(kind=kind)
        self._callbacks: List[TransitionCallback] = []
        self._text = STATUS_TEXT[kind]

    @property
    def source(self) -> str:
        return self.kind.value

    def add_transition_callback(self, callback: TransitionCallback) -> None:
        """Register an async callback invoked after every phase change."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    async def submit(self, sender: str, request: Optional[VestingScheduleRequest] = None) -> TransactionHandle:
        """
        Submit the call for this kind and follow it to a terminal phase.

        Preconditions (account, network, ownership, parameter validity) are
        checked by the caller before this method is reached.

        Args:
            sender: Connected account issuing the call
            request: Schedule parameters, required for CREATE_SCHEDULE

        Returns:
            The terminal handle

        Raises:
            TransactionInProgressError: if the current handle is not terminal
        """
        if not self.handle.is_terminal:
            raise TransactionInProgressError()
        if self.kind is TransactionKind.CREATE_SCHEDULE and request is None:
            raise ValueError("CREATE_SCHEDULE requires a VestingScheduleRequest")

        handle = TransactionHandle(kind=self.kind)
        self.handle = handle
        await self._transition(handle, TransactionPhase.SUBMITTING)

        try:
            tx_hash = await self._issue(sender, request)
        except Exception as e:
            failure = e if isinstance(e, SubmissionError) else SubmissionError(str(e) or None, cause=e)
            await self._transition(handle, TransactionPhase.FAILED, failure)
            return handle

        handle.submitted_hash = tx_hash
        await self._transition(handle, TransactionPhase.AWAITING_CONFIRMATION)

        try:
            await self.ledger.wait_for_receipt(tx_hash)
        except Exception as e:
            failure = e if isinstance(e, ConfirmationError) else ConfirmationError(str(e) or None, cause=e)
            await self._transition(handle, TransactionPhase.FAILED, failure)
            return handle

        await self._transition(handle, TransactionPhase.CONFIRMED)
        return handle

    async def _issue(self, sender: str, request: Optional[VestingScheduleRequest]) -> str:
        if self.kind is TransactionKind.CREATE_SCHEDULE:
            return await self.ledger.create_vesting_schedule(sender, request)
        # The connected account claims for itself
        return await self.ledger.claim_balance(sender, sender)

    async def _transition(
        self,
        handle: TransactionHandle,
        phase: TransactionPhase,
        failure: Optional[VestingClientError] = None,
    ) -> None:
        if phase not in ALLOWED_TRANSITIONS[handle.phase]:
            raise RuntimeError(f"Illegal transition {handle.phase.value} -> {phase.value} for {self.kind.value}")

        handle.phase = phase
        handle.failure = failure
        handle.history.append(phase)
        logger.info(f"[{self.kind.value}] -> {phase.value}" + (f" ({handle.submitted_hash})" if handle.submitted_hash else ""))

        self._report(handle)

        for callback in list(self._callbacks):
            try:
                await callback(handle)
            except Exception as e:
                logger.error(f"Error in transition callback {getattr(callback, '__name__', callback)} for {self.kind.value}: {e}")
                logger.debug(traceback.format_exc())

    def _report(self, handle: TransactionHandle) -> None:
        if handle.phase is TransactionPhase.SUBMITTING:
            self.reporter.report(self._text["submitting"], Severity.INFO, self.source)
        elif handle.phase is TransactionPhase.CONFIRMED:
            self.reporter.report(self._text["confirmed"], Severity.INFO, self.source)
        elif handle.phase is TransactionPhase.FAILED:
            if isinstance(handle.failure, ConfirmationError):
                prefix = self._text["confirmation_failed"]
            else:
                prefix = self._text["submission_failed"]
            logger.error(f"[{self.kind.value}] {prefix}: {handle.failure.message}")
            self.reporter.report_error(handle.failure, self.source, prefix=prefix)
