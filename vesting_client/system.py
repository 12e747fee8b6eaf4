"""
Vesting client facade.

This module wires the validator, network guard, read-model synchronizer and
the two transaction lifecycle managers together, and is the only surface the
presentation layer talks to.
"""

import logging
import time
from typing import Callable, List, Optional

from vesting_client.blockchain.ledger_client import LedgerClient
from vesting_client.blockchain.read_model import ReadModelSynchronizer
from vesting_client.blockchain.transaction_monitor import TransactionLifecycleManager
from vesting_client.core.errors import (
    NotOwnerError,
    TransactionInProgressError,
    ValidationError,
    VestingClientError,
    WalletNotConnectedError,
)
from vesting_client.core.models import (
    AccountContext,
    TransactionHandle,
    TransactionKind,
    TransactionPhase,
    VestedAmountQuery,
)
from vesting_client.core.network_guard import NetworkGuard
from vesting_client.core.status_reporter import StatusReporter, StatusSnapshot
from vesting_client.core.validation import format_wei, validate_vesting_request

logger = logging.getLogger(__name__)

OWNER_ONLY_NOTICE = "This action is restricted to the contract owner."
CLAIM_WALLET_PROMPT = "Please connect your wallet to claim."


class VestingClient:
    """
    Client for a time-based vesting contract.

    Control flow for every write:
    1. Gate on wallet, network, ownership (create only) and parameters
    2. Hand the call to the lifecycle manager for its kind
    3. On confirmation, refresh the affected read-model entries
    4. Surface the outcome through the status reporter

    Gate failures are reported, never raised, and never reach the ledger.
    """

    def __init__(
        self,
        ledger,
        required_chain_id: int,
        required_chain_name: Optional[str] = None,
        owner_stale_seconds: float = 5.0,
        owner_refetch_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the vesting client.

        Args:
            ledger: Ledger adapter (normally a ``LedgerClient``)
            required_chain_id: Chain id writes are allowed on
            required_chain_name: Display name of the required chain
            owner_stale_seconds: Freshness window for the cached owner
            owner_refetch_seconds: Interval between owner polls
            clock: Monotonic time source
        """
        self.ledger = ledger
        self.account = AccountContext()

        # Components
        self.reporter = StatusReporter()
        self.network_guard = NetworkGuard(required_chain_id, required_chain_name)
        self.read_model = ReadModelSynchronizer(
            ledger,
            reporter=self.reporter,
            stale_seconds=owner_stale_seconds,
            refetch_seconds=owner_refetch_seconds,
            clock=clock,
        )
        self.create_manager = TransactionLifecycleManager(TransactionKind.CREATE_SCHEDULE, ledger, self.reporter)
        self.claim_manager = TransactionLifecycleManager(TransactionKind.CLAIM_BALANCE, ledger, self.reporter)

        self.create_manager.add_transition_callback(self._on_create_transition)
        self.claim_manager.add_transition_callback(self._on_claim_transition)

        # Presentation hooks fired when a schedule is confirmed (form reset)
        self._schedule_created_handlers: List[Callable[[TransactionHandle], None]] = []

    @classmethod
    def from_config(cls, config: dict) -> "VestingClient":
        """Build a client and its ``LedgerClient`` from a loaded config dict."""
        ledger = LedgerClient(
            rpc_url=config["rpc_url"],
            contract_address=config["contract_address"],
            private_key=config.get("private_key"),
            request_timeout=config["request_timeout"],
            receipt_timeout=config.get("receipt_timeout"),
            receipt_poll_latency=config.get("receipt_poll_latency", 0.5),
        )
        return cls(
            ledger,
            required_chain_id=config["required_chain_id"],
            required_chain_name=config.get("required_chain_name"),
            owner_stale_seconds=config["owner_stale_seconds"],
            owner_refetch_seconds=config["owner_refetch_seconds"],
        )

    def register_schedule_created_handler(self, handler: Callable[[TransactionHandle], None]) -> None:
        if handler not in self._schedule_created_handlers:
            self._schedule_created_handlers.append(handler)

    # ------------------------------------------------------------------
    # Account context
    # ------------------------------------------------------------------

    def set_account_context(self, context: AccountContext) -> None:
        """
        Apply a new account/chain context from the wallet.

        Must be called from inside the running event loop, since connecting
        starts the owner poller.
        """
        previous = self.account
        self.account = context

        if context.chain_id != previous.chain_id:
            status = self.network_guard.evaluate(context.chain_id)
            # No banner until the wallet reports a chain
            advisory = self.network_guard.message(status) if context.chain_id is not None else None
            self.reporter.set_advisory(advisory)

        if context.address != previous.address:
            logger.info(f"Account changed: {previous.address} -> {context.address}")
        self.read_model.set_account(context)

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def owner(self) -> Optional[str]:
        return self.read_model.owner

    @property
    def is_owner(self) -> Optional[bool]:
        """True/False once both account and owner are known, else None."""
        if not self.account.is_connected or self.owner is None:
            return None
        return self.account.address.lower() == self.owner.lower()

    @property
    def owner_notice(self) -> Optional[str]:
        return OWNER_ONLY_NOTICE if self.is_owner is False else None

    @property
    def vested_query(self) -> Optional[VestedAmountQuery]:
        return self.read_model.vested_query

    @property
    def vested_amount_display(self) -> Optional[str]:
        amount = self.read_model.vested_amount
        return format_wei(amount) if amount is not None else None

    async def refresh_owner(self):
        return await self.read_model.refresh_owner()

    async def check_vested_amount(self, address: str) -> Optional[VestedAmountQuery]:
        return await self.read_model.check_vested_amount(address)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _manager(self, kind: TransactionKind) -> TransactionLifecycleManager:
        if kind is TransactionKind.CREATE_SCHEDULE:
            return self.create_manager
        return self.claim_manager

    def _check_write_preconditions(self, kind: TransactionKind) -> Optional[VestingClientError]:
        if not self.account.is_connected:
            if kind is TransactionKind.CLAIM_BALANCE:
                return WalletNotConnectedError(CLAIM_WALLET_PROMPT)
            return WalletNotConnectedError()
        network_error = self.network_guard.error()
        if network_error is not None:
            return network_error
        # Unknown owner is allowed through; the contract enforces ownership
        if kind is TransactionKind.CREATE_SCHEDULE and self.is_owner is False:
            return NotOwnerError()
        if not self._manager(kind).handle.is_terminal:
            return TransactionInProgressError()
        return None

    async def create_vesting_schedule(
        self,
        recipient: str,
        amount_text: str,
        duration_text: str,
        cliff_text: str,
    ) -> Optional[TransactionHandle]:
        """
        Validate form input and create a vesting schedule.

        Args:
            recipient: Recipient address
            amount_text: Principal in ether, as typed (e.g. "0.1")
            duration_text: Vesting duration in seconds
            cliff_text: Cliff duration in seconds

        Returns:
            The terminal handle, or None if the request was rejected locally
        """
        error = self._check_write_preconditions(TransactionKind.CREATE_SCHEDULE)
        request = None
        if error is None:
            try:
                request = validate_vesting_request(recipient, amount_text, duration_text, cliff_text)
            except ValidationError as e:
                error = e

        if error is not None:
            logger.warning(f"Create vesting schedule rejected: {error.message}")
            self.reporter.report_error(error, self.create_manager.source)
            return None

        return await self.create_manager.submit(self.account.address, request)

    async def claim_balance(self) -> Optional[TransactionHandle]:
        """
        Claim the connected account's unlocked balance.

        Returns:
            The terminal handle, or None if the request was rejected locally
        """
        error = self._check_write_preconditions(TransactionKind.CLAIM_BALANCE)
        if error is not None:
            logger.warning(f"Claim balance rejected: {error.message}")
            self.reporter.report_error(error, self.claim_manager.source)
            return None

        return await self.claim_manager.submit(self.account.address)

    async def _on_create_transition(self, handle: TransactionHandle) -> None:
        if handle.phase is not TransactionPhase.CONFIRMED:
            return
        for handler in list(self._schedule_created_handlers):
            handler(handle)

    async def _on_claim_transition(self, handle: TransactionHandle) -> None:
        if handle.phase is TransactionPhase.CONFIRMED:
            await self.read_model.refresh_after_claim()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self.reporter.busy

    def status(self) -> StatusSnapshot:
        return self.reporter.snapshot()

    async def close(self) -> None:
        await self.read_model.close()
