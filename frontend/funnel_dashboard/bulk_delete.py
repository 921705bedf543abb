# frontend/funnel_dashboard/bulk_delete.py
# DESIGNER'S NOTE:
# Bulk delete runs as a small state machine:
#   IDLE -> CONFIRMING -> DELETING -> (SUCCESS | PARTIAL_FAILURE | FAILURE) -> IDLE
# Nothing is deleted without an explicit confirm(). While a batch is being
# confirmed or deleted, a second request is refused, which covers double
# clicks. Deletes are issued concurrently on a bounded pool and reported per
# item; afterwards the selection is cleared and the collection is reloaded
# from the store rather than patched locally.

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from .api_client import RemoteStoreClient
from .models import Err, ErrorKind, Subscriber
from .state import SubscriberTable

logger = logging.getLogger(__name__)


class BulkDeleteState(enum.Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    DELETING = "deleting"
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILURE = "failure"


@dataclass
class BulkDeleteOutcome:
    status: BulkDeleteState
    requested: int
    succeeded: int
    failures: list = field(default_factory=list)  # [(Subscriber, Err)]
    refresh_error: Optional[Err] = None

    @property
    def summary(self) -> str:
        if self.status is BulkDeleteState.SUCCESS:
            text = f"Successfully deleted {self.succeeded} subscriber(s)."
        elif self.status is BulkDeleteState.FAILURE:
            text = f"Could not delete any of {self.requested} subscriber(s): the store is unreachable."
        else:
            text = (f"Deleted {self.succeeded} of {self.requested} subscriber(s). "
                    f"{len(self.failures)} could not be deleted.")
        if self.refresh_error is not None:
            text += f" The list could not be refreshed: {self.refresh_error.message}"
        return text

    def failure_lines(self) -> list[str]:
        lines = []
        for record, error in self.failures:
            reason = "already deleted" if error.kind is ErrorKind.NOT_FOUND else error.message
            lines.append(f"{record.email}: {reason}")
        return lines


class BulkDeleteBusy(RuntimeError):
    """Raised when a batch is requested or confirmed in the wrong state."""


class BulkDeleteOrchestrator:
    def __init__(self, client: RemoteStoreClient, table: SubscriberTable, max_workers: int = 4):
        self.client = client
        self.table = table
        self.max_workers = max(1, max_workers)
        self.state = BulkDeleteState.IDLE
        self.pending: list[Subscriber] = []
        self._lock = threading.Lock()

    def request(self) -> str:
        """IDLE -> CONFIRMING. Returns the confirmation prompt."""
        with self._lock:
            if self.state is not BulkDeleteState.IDLE:
                raise BulkDeleteBusy(f"A bulk delete is already {self.state.value}.")
            targets = self.table.selected_records()
            if not targets:
                raise ValueError("No subscribers selected")
            self.pending = targets
            self.state = BulkDeleteState.CONFIRMING
        return (f"Are you sure you want to delete {len(targets)} selected subscriber(s)? "
                f"This action cannot be undone.")

    def cancel(self):
        """CONFIRMING -> IDLE; a no-op in any other state."""
        with self._lock:
            if self.state is BulkDeleteState.CONFIRMING:
                self.pending = []
                self.state = BulkDeleteState.IDLE

    def _delete_one(self, record: Subscriber):
        return record, self.client.delete_subscriber(record.email, record.timestamp)

    def confirm(self) -> BulkDeleteOutcome:
        """CONFIRMING -> DELETING -> outcome -> IDLE."""
        with self._lock:
            if self.state is not BulkDeleteState.CONFIRMING:
                raise BulkDeleteBusy("Nothing is waiting for confirmation.")
            targets = self.pending
            self.state = BulkDeleteState.DELETING

        try:
            logger.info(f"Deleting {len(targets)} subscriber(s) with up to {self.max_workers} concurrent requests")
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(targets))) as pool:
                results = list(pool.map(self._delete_one, targets))

            failures = [(record, result) for record, result in results if not result.ok]
            succeeded = len(results) - len(failures)
            if not failures:
                status = BulkDeleteState.SUCCESS
            elif succeeded == 0 and all(err.kind is ErrorKind.REMOTE for _, err in failures):
                status = BulkDeleteState.FAILURE
            else:
                status = BulkDeleteState.PARTIAL_FAILURE
            for record, err in failures:
                logger.warning(f"Delete failed for {record.email}: {err.kind.value} {err.message}")

            with self._lock:
                self.state = status
            outcome = BulkDeleteOutcome(status, len(targets), succeeded, failures)

            self.table.clear_selection()
            refreshed = self.client.list_subscribers()
            if refreshed.ok:
                self.table.set_all(refreshed.value)
            else:
                outcome.refresh_error = refreshed
            logger.info(outcome.summary)
            return outcome
        finally:
            with self._lock:
                self.pending = []
                self.state = BulkDeleteState.IDLE
