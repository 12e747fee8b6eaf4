"""
Aggregates component outcomes into a single user-facing status.

Precedence is last-write-wins: whichever component reported most recently
owns the message. Severity is always taken from the reporting event.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from vesting_client.core.errors import Severity, VestingClientError

logger = logging.getLogger(__name__)


class StatusSnapshot:
    """What the presentation layer renders."""

    def __init__(
        self,
        message: str = "",
        severity: Severity = Severity.INFO,
        busy: bool = False,
        advisory: Optional[str] = None,
    ):
        self.message = message
        self.severity = severity
        self.busy = busy
        self.advisory = advisory

    def __repr__(self):
        return (
            f"StatusSnapshot(message={self.message!r}, severity={self.severity.value}, "
            f"busy={self.busy}, advisory={self.advisory!r})"
        )


class StatusReporter:
    """
    Holds the latest status event and computes the busy flag.

    Lifecycle managers are registered so that ``busy`` reflects their live
    handles rather than a separately maintained counter.
    """

    MAX_RECENT_EVENTS = 10

    def __init__(self):
        self.message: str = ""
        self.severity: Severity = Severity.INFO
        self.source: Optional[str] = None
        self.updated_at: Optional[float] = None
        self.advisory: Optional[str] = None
        self.recent_events: List[Dict[str, Any]] = []
        self._managers: List[Any] = []

    def register_manager(self, manager) -> None:
        if manager not in self._managers:
            self._managers.append(manager)

    def report(self, message: str, severity: Severity = Severity.INFO, source: Optional[str] = None) -> None:
        self.message = message
        self.severity = severity
        self.source = source
        self.updated_at = time.time()

        self.recent_events.append({
            "message": message,
            "severity": severity.value,
            "source": source,
            "timestamp": self.updated_at,
        })
        if len(self.recent_events) > self.MAX_RECENT_EVENTS:
            self.recent_events.pop(0)

        if severity is Severity.ERROR:
            logger.debug(f"Status [{source}] error: {message}")
        else:
            logger.debug(f"Status [{source}]: {message}")

    def report_error(self, error: VestingClientError, source: Optional[str] = None, prefix: Optional[str] = None) -> None:
        message = f"{prefix}: {error.message}" if prefix else error.message
        self.report(message, error.severity, source)

    def set_advisory(self, advisory: Optional[str]) -> None:
        """
        Set or clear the blocking network advisory.

        When the advisory clears and it is also the current message, the
        message is cleared with it.
        """
        if advisory is None and self.advisory is not None and self.message == self.advisory:
            self.report("", Severity.INFO, "network")
        self.advisory = advisory
        if advisory is not None:
            self.report(advisory, Severity.ERROR, "network")

    def clear(self, source: Optional[str] = None) -> None:
        """Clear the message, optionally only if ``source`` owns it."""
        if source is not None and self.source != source:
            return
        self.report("", Severity.INFO, source)

    @property
    def busy(self) -> bool:
        return any(manager.handle.is_busy for manager in self._managers)

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            message=self.message,
            severity=self.severity,
            busy=self.busy,
            advisory=self.advisory,
        )
