# Audit Logger
# Turns change sets and activity payloads into immutable log entries.

from typing import Dict, Any, List, Optional, Mapping, Sequence, Union, TYPE_CHECKING
from datetime import datetime, timedelta, timezone
import copy
import logging

from ..storage.errors import LogStoreError
from .log_entry import LogEntry, LogAction, FieldChange, CHANGE_SET_ACTIONS
from .narration import summarize, defaultLabels

if TYPE_CHECKING:
    from ..storage.base import LogStore
    from ..utils.metrics import MetricsCollector


class EmptyChangeSetError(ValueError):
    """An empty change set is a no-op and must not reach the log."""


class MonotonicClock:
    # Strictly increasing UTC timestamps, even when the wall clock stalls or steps back

    def __init__(self):
        self._last: Optional[datetime] = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current


_processClock = MonotonicClock()


class AuditLogger:

    def __init__(
        self,
        logStore: 'LogStore',
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        metrics: Optional['MetricsCollector'] = None,
        clock: Optional[MonotonicClock] = None,
        labels: Optional[Mapping[str, str]] = None
    ):
        self.config = config or {}
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.logStore = logStore
        self.metrics = metrics
        self.clock = clock or _processClock
        self.labels = labels or defaultLabels()
        self.defaultLimit = self.config.get('default_limit', 100)

    def buildEntry(
        self,
        action: Union[LogAction, str],
        changes: Union[Sequence[FieldChange], Mapping[str, Any]],
        recordId: Optional[int] = None,
        instanceId: Optional[int] = None
    ) -> LogEntry:
        action = LogAction(action)

        changeSet = None
        payload = None

        if isinstance(changes, Mapping):
            if action in CHANGE_SET_ACTIONS:
                raise TypeError(f"Action {action.value} needs a change set, not a payload")
            payload = copy.deepcopy(dict(changes))
        else:
            if action not in CHANGE_SET_ACTIONS:
                raise TypeError(f"Action {action.value} needs a payload, not a change set")
            changeSet = tuple(changes)
            if not changeSet:
                raise EmptyChangeSetError(f"Refusing to log {action.value} with an empty change set")

        return LogEntry(
            timestamp=self.clock.now(),
            action=action,
            summary=summarize(action, changeSet if changeSet is not None else payload, self.labels),
            subjectRecordId=recordId,
            subjectInstanceId=instanceId,
            changeSet=changeSet,
            payload=payload
        )

    async def record(
        self,
        action: Union[LogAction, str],
        changes: Union[Sequence[FieldChange], Mapping[str, Any]],
        recordId: Optional[int] = None,
        instanceId: Optional[int] = None
    ) -> Optional[int]:
        """
        Write one log entry.

        Args:
            action: Logged action
            changes: Change set for transition actions, payload dict otherwise
            recordId: Subject record, if any
            instanceId: Subject instance, if any

        Returns:
            Log entry id, or None when the log store could not be written.
            Store failures are reported through logging and metrics only.

        Raises:
            EmptyChangeSetError: If an empty change set is passed
            TypeError: If the action does not match the kind of ``changes``
        """
        entry = self.buildEntry(action, changes, recordId, instanceId)
        context = {'action': entry.action.value, 'recordId': recordId, 'instanceId': instanceId}

        try:
            entryId = await self.logStore.append(entry)
        except Exception as e:
            level = logging.WARNING if isinstance(e, LogStoreError) else logging.ERROR
            self.logger.log(
                level,
                f"Failed to write audit entry: {e}",
                exc_info=True,
                extra=context
            )
            if self.metrics:
                self.metrics.recordLogWriteFailure()
            return None

        if self.metrics:
            self.metrics.recordLogWritten()

        self.logger.info(entry.summary, extra=context)
        return entryId

    async def list(self, limit: Optional[int] = None) -> List[LogEntry]:
        if limit is None:
            limit = self.defaultLimit
        return await self.logStore.queryRecent(limit)
