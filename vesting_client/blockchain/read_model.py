"""
Read-model synchronization for the vesting contract.

Keeps two independent caches of remote state:
1. The contract owner, polled on a fixed interval while an account is connected
2. The vested amount of the address currently being inspected, fetched on demand

Both caches are advisory. The contract is the source of truth and may
return a different value on the next read.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from vesting_client.core.errors import (
    LookupFailure,
    OwnerFetchFailure,
    Severity,
    VestingClientError,
)
from vesting_client.core.models import AccountContext, OwnerRecord, VestedAmountQuery
from vesting_client.core.status_reporter import StatusReporter
from vesting_client.core.validation import validate_address

logger = logging.getLogger(__name__)

OWNER_SOURCE = "owner"
LOOKUP_SOURCE = "lookup"


class ReadModelSynchronizer:
    """
    Maintains the owner record and the vested-amount query.

    Owner polling starts with an immediate fetch when an account connects and
    repeats every ``refetch_seconds``. A successful fetch that lands within
    ``stale_seconds`` of the last accepted value is discarded so the
    displayed owner does not churn. A failed fetch marks the owner unknown
    and polling carries on at the same cadence.

    Vested-amount lookups only run when explicitly requested and are never
    retried automatically.
    """

    def __init__(
        self,
        ledger,
        reporter: Optional[StatusReporter] = None,
        stale_seconds: float = 5.0,
        refetch_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the synchronizer.

        Args:
            ledger: Object exposing ``owner()`` and ``check_vested_amount(subject)``
            reporter: Status reporter receiving user-facing outcomes
            stale_seconds: Freshness window for the owner value
            refetch_seconds: Interval between owner polls
            clock: Monotonic time source
        """
        self.ledger = ledger
        self.reporter = reporter or StatusReporter()
        self.stale_seconds = stale_seconds
        self.refetch_seconds = refetch_seconds
        self._clock = clock

        self.owner_record = OwnerRecord()
        self.vested_query: Optional[VestedAmountQuery] = None
        self.account = AccountContext()

        self._poll_task: Optional[asyncio.Task] = None

        # Counters
        self.owner_fetch_count = 0
        self.owner_fetch_errors = 0
        self.lookup_count = 0

    # ------------------------------------------------------------------
    # Account context
    # ------------------------------------------------------------------

    def set_account(self, context: AccountContext) -> None:
        """Start or stop owner polling to follow the connection state."""
        self.account = context
        if context.is_connected:
            self.start_owner_polling()
        else:
            self.stop_owner_polling()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_owner_polling(self) -> None:
        if self.is_polling:
            return
        self._poll_task = asyncio.create_task(self._owner_poll_loop())
        logger.info(f"Owner polling started (every {self.refetch_seconds}s)")

    def stop_owner_polling(self) -> None:
        if self._poll_task is None:
            return
        if not self._poll_task.done():
            self._poll_task.cancel()
            logger.info("Owner polling stopped")
        self._poll_task = None

    async def close(self) -> None:
        task = self._poll_task
        self.stop_owner_polling()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _owner_poll_loop(self) -> None:
        while True:
            await self.refresh_owner()
            await asyncio.sleep(self.refetch_seconds)

    # ------------------------------------------------------------------
    # Owner
    # ------------------------------------------------------------------

    def _owner_is_fresh(self, now: float) -> bool:
        record = self.owner_record
        if record.owner is None or record.fetched_at is None:
            return False
        return now - record.fetched_at < self.stale_seconds

    async def refresh_owner(self) -> OwnerRecord:
        """
        Fetch the owner once and update the cache.

        The network call is always issued. Its result only replaces the
        cached owner when the cached value is outside the freshness window.

        Returns:
            The current owner record
        """
        self.owner_fetch_count += 1
        try:
            owner = await self.ledger.owner()
        except Exception as e:
            failure = e if isinstance(e, OwnerFetchFailure) else OwnerFetchFailure(cause=e)
            self.owner_fetch_errors += 1
            self.owner_record = OwnerRecord(owner=None, fetched_at=None, error=failure)
            logger.error(f"Owner fetch failed: {failure.cause or failure}")
            self.reporter.report_error(failure, OWNER_SOURCE)
            return self.owner_record

        now = self._clock()
        if self._owner_is_fresh(now):
            logger.debug("Owner value still fresh, keeping cached value")
            return self.owner_record

        if owner != self.owner_record.owner:
            logger.info(f"Contract owner: {owner}")
        self.owner_record = OwnerRecord(owner=owner, fetched_at=now)
        return self.owner_record

    @property
    def owner(self) -> Optional[str]:
        return self.owner_record.owner

    # ------------------------------------------------------------------
    # Vested amount
    # ------------------------------------------------------------------

    def set_lookup_target(self, subject: str) -> VestedAmountQuery:
        """Replace the live query with a fresh one for ``subject``."""
        if self.vested_query is None or self.vested_query.subject != subject:
            self.vested_query = VestedAmountQuery(subject=subject)
        return self.vested_query

    async def check_vested_amount(
        self,
        subject: Optional[str] = None,
        announce: bool = True,
    ) -> Optional[VestedAmountQuery]:
        """
        Look up the vested amount for ``subject`` (default: current target).

        Args:
            subject: Address to inspect
            announce: Whether to report "Checking vested amount..." first

        Returns:
            The resulting query, or None if the lookup was not issued
        """
        if subject is None and self.vested_query is not None:
            subject = self.vested_query.subject

        if not self.account.is_connected:
            self.reporter.report("Please connect your wallet to check.", Severity.ERROR, LOOKUP_SOURCE)
            return None
        if not validate_address(subject):
            self.reporter.report("Please enter a valid address to check.", Severity.ERROR, LOOKUP_SOURCE)
            return None

        self.set_lookup_target(subject)
        if announce:
            self.reporter.report("Checking vested amount...", Severity.INFO, LOOKUP_SOURCE)
        self.lookup_count += 1

        try:
            amount = await self.ledger.check_vested_amount(subject)
        except Exception as e:
            failure = e if isinstance(e, LookupFailure) else LookupFailure(LookupFailure.TRANSPORT, cause=e)
            return self._record_lookup(subject, None, failure)

        return self._record_lookup(subject, amount, None)

    def _record_lookup(
        self,
        subject: str,
        amount: Optional[int],
        failure: Optional[VestingClientError],
    ) -> Optional[VestedAmountQuery]:
        if self.vested_query is None or self.vested_query.subject != subject:
            logger.debug(f"Discarding vested amount for {subject}: lookup target changed")
            return None

        self.vested_query = VestedAmountQuery(
            subject=subject,
            amount_wei=amount,
            last_checked_at=self._clock(),
            error=failure,
        )
        if failure is not None:
            logger.info(f"Vested amount lookup for {subject} failed ({failure.reason}): {failure.cause}")
            self.reporter.report_error(failure, LOOKUP_SOURCE)
        else:
            logger.debug(f"Vested amount for {subject}: {amount}")
            self.reporter.clear(LOOKUP_SOURCE)
        return self.vested_query

    async def refresh_after_claim(self) -> Optional[VestedAmountQuery]:
        """Point the lookup at the connected account and re-check it."""
        if not self.account.is_connected:
            return None
        self.set_lookup_target(self.account.address)
        return await self.check_vested_amount(self.account.address, announce=False)

    @property
    def vested_amount(self) -> Optional[int]:
        return self.vested_query.amount_wei if self.vested_query is not None else None
