from typing import Dict, Any
from collections import defaultdict
from datetime import datetime, timezone
import logging


class MetricsCollector:

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.reset()

    def reset(self) -> None:
        self.startTime = datetime.now(timezone.utc)

        self.rows_seen = 0
        self.rows_accepted = 0
        self.rows_rejected = 0
        self.imports_aborted = 0

        self.mutations_by_action = defaultdict(int)
        self.noop_updates = 0

        self.log_entries_written = 0
        self.log_write_failures = 0

        self.errors = defaultdict(int)

    def recordRowsSeen(self, count: int) -> None:
        self.rows_seen += count

    def recordRowsAccepted(self, count: int) -> None:
        self.rows_accepted += count

    def recordRowsRejected(self, count: int) -> None:
        self.rows_rejected += count

    def recordImportAborted(self) -> None:
        self.imports_aborted += 1

    def recordMutation(self, action: str) -> None:
        self.mutations_by_action[action] += 1

    def recordNoopUpdate(self) -> None:
        self.noop_updates += 1

    def recordLogWritten(self) -> None:
        self.log_entries_written += 1

    def recordLogWriteFailure(self) -> None:
        self.log_write_failures += 1

    def record_error(self, component: str) -> None:
        self.errors[component] += 1

    def getMetrics(self) -> Dict[str, Any]:
        runtimeSeconds = (datetime.now(timezone.utc) - self.startTime).total_seconds()

        return {
            'runtimeSeconds': runtimeSeconds,
            'rows': {
                'seen': self.rows_seen,
                'accepted': self.rows_accepted,
                'rejected': self.rows_rejected,
                'imports_aborted': self.imports_aborted
            },
            'mutations': {
                'by_action': dict(self.mutations_by_action),
                'total': sum(self.mutations_by_action.values()),
                'noop_updates': self.noop_updates
            },
            'audit': {
                'written': self.log_entries_written,
                'failures': self.log_write_failures
            },
            'errors': dict(self.errors)
        }

    def logMetrics(self) -> None:
        metrics = self.getMetrics()

        self.logger.info("=== Inventory Metrics ===")
        self.logger.info(f"Rows seen: {metrics['rows']['seen']}")
        self.logger.info(f"Rows accepted: {metrics['rows']['accepted']}")
        self.logger.info(f"Rows rejected: {metrics['rows']['rejected']}")
        self.logger.info(f"Mutations applied: {metrics['mutations']['total']}")
        self.logger.info(f"Audit entries written: {metrics['audit']['written']}")

        if metrics['audit']['failures']:
            self.logger.warning(f"Audit write failures: {metrics['audit']['failures']}")

        if metrics['errors']:
            self.logger.warning(f"Errors: {metrics['errors']}")
