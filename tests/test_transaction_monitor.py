"""
Tests for the transaction lifecycle manager.
"""

import asyncio

import pytest

from vesting_client.blockchain.transaction_monitor import TransactionLifecycleManager
from vesting_client.core.errors import (
    ConfirmationError,
    Severity,
    SubmissionError,
    TransactionInProgressError,
)
from vesting_client.core.models import (
    TransactionKind,
    TransactionPhase,
    VestingScheduleRequest,
)
from vesting_client.core.status_reporter import StatusReporter

from mocks import OWNER, RECIPIENT, settle

REQUEST = VestingScheduleRequest(
    recipient=RECIPIENT,
    amount_wei=10 ** 17,
    duration_seconds=31536000,
    cliff_seconds=2592000,
)


@pytest.fixture
def reporter():
    return StatusReporter()


@pytest.fixture
def create_manager(ledger, reporter):
    return TransactionLifecycleManager(TransactionKind.CREATE_SCHEDULE, ledger, reporter)


@pytest.fixture
def claim_manager(ledger, reporter):
    return TransactionLifecycleManager(TransactionKind.CLAIM_BALANCE, ledger, reporter)


class TestTransactionLifecycle:

    def test_initial_handle_is_idle(self, create_manager):
        assert create_manager.handle.phase is TransactionPhase.IDLE
        assert create_manager.handle.is_terminal
        assert create_manager.source == "create_schedule"

    @pytest.mark.asyncio
    async def test_create_confirmed(self, create_manager, ledger, reporter):
        handle = await create_manager.submit(OWNER, REQUEST)

        assert handle.phase is TransactionPhase.CONFIRMED
        assert handle.history == [
            TransactionPhase.SUBMITTING,
            TransactionPhase.AWAITING_CONFIRMATION,
            TransactionPhase.CONFIRMED,
        ]
        assert handle.submitted_hash.startswith("0x")
        assert handle.failure is None
        assert ledger.calls_named("create_vesting_schedule") == [("create_vesting_schedule", OWNER, REQUEST)]
        assert ledger.calls_named("wait_for_receipt") == [("wait_for_receipt", handle.submitted_hash)]
        assert reporter.message == "Vesting schedule created successfully!"
        assert reporter.severity is Severity.INFO

    @pytest.mark.asyncio
    async def test_claim_is_for_sender(self, claim_manager, ledger, reporter):
        handle = await claim_manager.submit(OWNER)

        assert handle.phase is TransactionPhase.CONFIRMED
        assert ledger.calls_named("claim_balance") == [("claim_balance", OWNER, OWNER)]
        assert reporter.message == "Balance claimed successfully!"

    @pytest.mark.asyncio
    async def test_submission_rejected(self, create_manager, ledger, reporter):
        ledger.submit_error = SubmissionError("User rejected the request.")

        handle = await create_manager.submit(OWNER, REQUEST)

        assert handle.phase is TransactionPhase.FAILED
        assert handle.history == [TransactionPhase.SUBMITTING, TransactionPhase.FAILED]
        assert handle.submitted_hash is None
        assert isinstance(handle.failure, SubmissionError)
        assert ledger.calls_named("wait_for_receipt") == []
        assert reporter.message == "Failed to create vesting schedule: User rejected the request."
        assert reporter.severity is Severity.ERROR

    @pytest.mark.asyncio
    async def test_unexpected_submission_error_is_wrapped(self, claim_manager, ledger, reporter):
        ledger.submit_error = RuntimeError("nonce too low")

        handle = await claim_manager.submit(OWNER)

        assert isinstance(handle.failure, SubmissionError)
        assert isinstance(handle.failure.cause, RuntimeError)
        assert reporter.message == "Failed to claim balance: nonce too low"

    @pytest.mark.asyncio
    async def test_confirmation_failure(self, create_manager, ledger, reporter):
        ledger.receipt_error = ConfirmationError("Transaction reverted in block 3.")

        handle = await create_manager.submit(OWNER, REQUEST)

        assert handle.phase is TransactionPhase.FAILED
        assert handle.submitted_hash is not None
        assert isinstance(handle.failure, ConfirmationError)
        assert reporter.message == "Failed to confirm vesting schedule: Transaction reverted in block 3."

    @pytest.mark.asyncio
    async def test_claim_confirmation_failure_text(self, claim_manager, ledger, reporter):
        ledger.receipt_error = TimeoutError()

        handle = await claim_manager.submit(OWNER)

        assert isinstance(handle.failure, ConfirmationError)
        assert reporter.message == "Failed to confirm claim balance: Confirmation error."

    @pytest.mark.asyncio
    async def test_create_requires_request(self, create_manager, ledger):
        with pytest.raises(ValueError):
            await create_manager.submit(OWNER)
        assert ledger.calls == []
        assert create_manager.handle.phase is TransactionPhase.IDLE

    @pytest.mark.asyncio
    async def test_terminal_handle_is_replaced(self, create_manager, ledger):
        ledger.submit_error = SubmissionError()
        failed = await create_manager.submit(OWNER, REQUEST)

        ledger.submit_error = None
        handle = await create_manager.submit(OWNER, REQUEST)

        assert handle is not failed
        assert failed.phase is TransactionPhase.FAILED
        assert handle.phase is TransactionPhase.CONFIRMED
        assert create_manager.handle is handle

    @pytest.mark.asyncio
    async def test_resubmission_while_pending_is_rejected(self, create_manager, ledger, reporter):
        ledger.receipt_gate = asyncio.Event()

        task = asyncio.create_task(create_manager.submit(OWNER, REQUEST))
        await settle()
        assert create_manager.handle.phase is TransactionPhase.AWAITING_CONFIRMATION
        assert reporter.busy is True

        with pytest.raises(TransactionInProgressError):
            await create_manager.submit(OWNER, REQUEST)
        assert len(ledger.calls_named("create_vesting_schedule")) == 1

        ledger.receipt_gate.set()
        handle = await task
        assert handle.phase is TransactionPhase.CONFIRMED
        assert reporter.busy is False

    @pytest.mark.asyncio
    async def test_kinds_are_independent(self, create_manager, claim_manager, ledger, reporter):
        ledger.receipt_gate = asyncio.Event()

        create_task = asyncio.create_task(create_manager.submit(OWNER, REQUEST))
        await settle()
        claim_task = asyncio.create_task(claim_manager.submit(OWNER))
        await settle()

        assert create_manager.handle.phase is TransactionPhase.AWAITING_CONFIRMATION
        assert claim_manager.handle.phase is TransactionPhase.AWAITING_CONFIRMATION
        assert create_manager.handle.submitted_hash != claim_manager.handle.submitted_hash

        ledger.receipt_gate.set()
        create_handle, claim_handle = await asyncio.gather(create_task, claim_task)

        assert create_handle.phase is TransactionPhase.CONFIRMED
        assert claim_handle.phase is TransactionPhase.CONFIRMED

    @pytest.mark.asyncio
    async def test_transition_callbacks(self, claim_manager):
        seen = []

        async def on_transition(handle):
            seen.append(handle.phase)

        claim_manager.add_transition_callback(on_transition)
        claim_manager.add_transition_callback(on_transition)
        await claim_manager.submit(OWNER)

        assert seen == [
            TransactionPhase.SUBMITTING,
            TransactionPhase.AWAITING_CONFIRMATION,
            TransactionPhase.CONFIRMED,
        ]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_lifecycle(self, claim_manager):
        async def failing_callback(handle):
            raise ValueError("Test error")

        claim_manager.add_transition_callback(failing_callback)
        handle = await claim_manager.submit(OWNER)

        assert handle.phase is TransactionPhase.CONFIRMED
