"""
Inventory Service

Coordinates the normalization core, the record store and the audit log:

1. Spreadsheet rows are normalized and persisted in chunks
2. Every mutation is diffed against the stored snapshot
3. One audit entry is written per logical action

Audit writes are advisory: a failed log write is reported in the result
(``logEntryId is None``) but never undoes the mutation.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Iterable, Callable, Union
from datetime import datetime, timezone
import asyncio
import copy
import logging
import weakref

from .normalization.schema import CanonicalRecord, Instance
from .normalization.normalizer import RowNormalizer, RowParseError
from .normalization.coercers import deriveQuantityShort
from .normalization.exporter import exportRows
from .audit.change_detector import ChangeDetector, ChangeSet
from .audit.audit_logger import AuditLogger
from .audit.narration import labelsFor
from .audit.log_entry import LogAction, LogEntry, CHANGE_SET_ACTIONS
from .storage.base import RecordStore, LogStore
from .storage.errors import RecordStoreError, RecordNotFoundError
from .utils.metrics import MetricsCollector


@dataclass
class ImportSummary:
    accepted: int = 0
    rejected: List[int] = field(default_factory=list)
    recordIds: List[int] = field(default_factory=list)
    attempted: int = 0
    aborted: bool = False
    logEntryId: Optional[int] = None
    errors: List[RowParseError] = field(default_factory=list)


@dataclass
class MutationResult:
    recordId: int
    changeSet: ChangeSet = field(default_factory=list)
    logEntryId: Optional[int] = None
    instanceId: Optional[int] = None

    @property
    def changed(self) -> bool:
        return bool(self.changeSet)


class ImportInterruptedError(Exception):
    """The record store failed midway through an import."""

    def __init__(self, summary: ImportSummary, reason: str):
        self.summary = summary
        super().__init__(f"Import stopped after {summary.accepted} of {summary.attempted} rows: {reason}")


class InstanceNotFoundError(KeyError):

    def __init__(self, recordId: int, instanceId: int):
        self.recordId = recordId
        self.instanceId = instanceId
        super().__init__(f"Instance {instanceId} not found on record {recordId}")

    def __str__(self) -> str:
        return self.args[0]


# Actions a generic record update may be logged under
RECORD_UPDATE_ACTIONS = CHANGE_SET_ACTIONS - {LogAction.INSTANCE_EDITED}


class InventoryService:

    def __init__(
        self,
        recordStore: RecordStore,
        logStore: LogStore,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        metrics: Optional[MetricsCollector] = None,
        normalizer: Optional[RowNormalizer] = None
    ):
        self.config = config or {}
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.metrics = metrics or MetricsCollector()

        self.recordStore = recordStore
        self.normalizer = normalizer or RowNormalizer(self.config.get('normalization', {}))
        self.changeDetector = ChangeDetector()
        self.auditLogger = AuditLogger(
            logStore,
            self.config.get('audit', {}),
            metrics=self.metrics,
            labels=labelsFor(self.normalizer.aliasTable)
        )

        self.batchSize = max(1, int(self.config.get('import', {}).get('batch_size', 50)))
        # A lock lives only while some mutation holds or awaits it
        self._locks: 'weakref.WeakValueDictionary[int, asyncio.Lock]' = weakref.WeakValueDictionary()

    def _lockFor(self, recordId: int) -> asyncio.Lock:
        lock = self._locks.get(recordId)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[recordId] = lock
        return lock

    async def _require(self, recordId: int) -> CanonicalRecord:
        record = await self.recordStore.getById(recordId)
        if record is None:
            raise RecordNotFoundError(recordId)
        return record

    def _prepare(self, record: CanonicalRecord) -> CanonicalRecord:
        prepared = copy.deepcopy(record)
        prepared.quantityShort = deriveQuantityShort(prepared.quantityAuthorized, prepared.quantityOnHand)
        if prepared.notes == '':
            prepared.notes = None

        nextId = max((i.id for i in prepared.instances if i.id is not None), default=0) + 1
        for instance in prepared.instances:
            if instance.id is None:
                instance.id = nextId
                nextId += 1

        return prepared

    # Import / export

    async def importRows(
        self,
        rows: Iterable[Any],
        sourceName: Optional[str] = None,
        abort: Optional[Callable[[], bool]] = None
    ) -> ImportSummary:
        """
        Normalize and persist a batch of spreadsheet rows.

        Args:
            rows: Row mappings from the row source
            sourceName: File name recorded in the import log entry
            abort: Checked before each chunk; returning True stops the import

        Returns:
            Summary with the count actually persisted and rejected row indexes

        Raises:
            RowParseError: If the sheet itself is unreadable
            ImportInterruptedError: If the record store fails midway
        """
        batch = self.normalizer.normalizeBatch(rows)
        records = [self._prepare(record) for record in batch.records]

        summary = ImportSummary(
            rejected=list(batch.rejected),
            attempted=len(records),
            errors=list(batch.errors)
        )
        self.metrics.recordRowsSeen(len(records) + len(batch.rejected))
        self.metrics.recordRowsRejected(len(batch.rejected))

        try:
            for start in range(0, len(records), self.batchSize):
                if abort and abort():
                    self.logger.info(f"Import aborted after {summary.accepted} rows")
                    summary.aborted = True
                    break

                ids = await self.recordStore.insertMany(records[start:start + self.batchSize])
                summary.recordIds.extend(ids)
                summary.accepted += len(ids)

        except asyncio.CancelledError:
            summary.aborted = True
            await self._finishImport(summary, sourceName)
            raise

        except RecordStoreError as e:
            summary.aborted = True
            self.metrics.record_error('import')
            await self._finishImport(summary, sourceName)
            raise ImportInterruptedError(summary, str(e)) from e

        await self._finishImport(summary, sourceName)
        return summary

    async def _finishImport(self, summary: ImportSummary, sourceName: Optional[str]) -> None:
        self.metrics.recordRowsAccepted(summary.accepted)
        if summary.aborted:
            self.metrics.recordImportAborted()

        payload: Dict[str, Any] = {
            'importedCount': summary.accepted,
            'rejectedRows': list(summary.rejected),
        }
        if sourceName:
            payload['fileName'] = sourceName
        if summary.aborted:
            payload['aborted'] = True
            payload['attemptedCount'] = summary.attempted

        summary.logEntryId = await self.auditLogger.record(LogAction.IMPORTED, payload)
        self.metrics.recordMutation(LogAction.IMPORTED.value)

    async def exportRecords(self, exportFormat: str = 'xlsx') -> List[Dict[str, Any]]:
        records = await self.recordStore.getAll()
        rows = exportRows(records, self.normalizer.aliasTable)

        await self.auditLogger.record(
            LogAction.EXPORTED,
            {'format': exportFormat, 'exportedCount': len(rows)}
        )
        return rows

    # Record lifecycle

    async def addItem(self, record: CanonicalRecord) -> MutationResult:
        prepared = self._prepare(record)
        recordId = await self.recordStore.insert(prepared)
        prepared.id = recordId

        itemFields = prepared.to_dict()
        itemFields.pop('id', None)

        entryId = await self.auditLogger.record(
            LogAction.ITEM_ADDED,
            {'itemFields': itemFields},
            recordId=recordId
        )
        self.metrics.recordMutation(LogAction.ITEM_ADDED.value)
        return MutationResult(recordId, logEntryId=entryId)

    async def updateItem(
        self,
        recordId: int,
        newRecord: CanonicalRecord,
        action: Optional[Union[LogAction, str]] = None
    ) -> MutationResult:
        """
        Replace a record's fields and log what changed.

        When ``action`` is omitted it is inferred from the change set
        (a lone flag change is logged as flagged/unflagged, and so on).
        An update that changes nothing is not persisted and not logged.
        """
        if action is not None:
            action = LogAction(action)
            if action not in RECORD_UPDATE_ACTIONS:
                raise ValueError(f"Action {action.value} cannot describe a record update")

        async with self._lockFor(recordId):
            old = await self._require(recordId)
            candidate = self._prepare(newRecord)
            candidate.id = recordId
            return await self._apply(old, candidate, action)

    async def _mutate(
        self,
        recordId: int,
        change: Callable[[CanonicalRecord], None],
        action: Optional[LogAction] = None
    ) -> MutationResult:
        async with self._lockFor(recordId):
            old = await self._require(recordId)
            candidate = copy.deepcopy(old)
            change(candidate)
            return await self._apply(old, self._prepare(candidate), action)

    async def _apply(
        self,
        old: CanonicalRecord,
        new: CanonicalRecord,
        action: Optional[LogAction]
    ) -> MutationResult:
        recordId = old.id
        changeSet = self.changeDetector.diff(old, new)

        if not changeSet:
            self.logger.debug("Update changed nothing", extra={'recordId': recordId})
            self.metrics.recordNoopUpdate()
            return MutationResult(recordId)

        partial = {change.field: getattr(new, change.field) for change in changeSet}
        await self.recordStore.update(recordId, partial)

        action = action or self.changeDetector.inferAction(changeSet)
        self.metrics.recordMutation(action.value)

        entryId = await self.auditLogger.record(action, changeSet, recordId=recordId)
        return MutationResult(recordId, changeSet, entryId)

    async def setFlag(self, recordId: int, flagged: bool = True) -> MutationResult:
        def change(record: CanonicalRecord) -> None:
            record.isFlagged = flagged

        action = LogAction.FLAGGED if flagged else LogAction.UNFLAGGED
        return await self._mutate(recordId, change, action)

    async def markVerified(self, recordId: int, when: Optional[datetime] = None) -> MutationResult:
        verifiedAt = when or datetime.now(timezone.utc)

        def change(record: CanonicalRecord) -> None:
            record.lastVerifiedAt = verifiedAt

        return await self._mutate(recordId, change, LogAction.VERIFIED)

    async def addPhoto(self, recordId: int, photoRef: str) -> MutationResult:
        def change(record: CanonicalRecord) -> None:
            record.photos.append(photoRef)

        return await self._mutate(recordId, change, LogAction.PHOTO_ADDED)

    async def removePhoto(self, recordId: int, photoRef: str) -> MutationResult:
        def change(record: CanonicalRecord) -> None:
            if photoRef not in record.photos:
                raise ValueError(f"Record {recordId} has no photo {photoRef!r}")
            record.photos.remove(photoRef)

        return await self._mutate(recordId, change, LogAction.PHOTO_REMOVED)

    async def setNotes(self, recordId: int, notes: Optional[str]) -> MutationResult:
        def change(record: CanonicalRecord) -> None:
            record.notes = notes.strip() if notes else None

        return await self._mutate(recordId, change, LogAction.NOTES_CHANGED)

    async def deleteItem(self, recordId: int) -> MutationResult:
        async with self._lockFor(recordId):
            old = await self._require(recordId)
            await self.recordStore.delete(recordId)

            payload = {
                'deletedItemFields': old.salientFields(),
                'photoCount': len(old.photos),
                'instanceCount': len(old.instances),
            }
            self.metrics.recordMutation(LogAction.DELETED.value)
            entryId = await self.auditLogger.record(LogAction.DELETED, payload, recordId=recordId)

        return MutationResult(recordId, logEntryId=entryId)

    # Instances

    async def addInstance(self, recordId: int, instance: Instance) -> MutationResult:
        async with self._lockFor(recordId):
            record = await self._require(recordId)

            added = copy.deepcopy(instance)
            added.id = max((i.id or 0 for i in record.instances), default=0) + 1
            instances = record.instances + [added]
            await self.recordStore.update(recordId, {'instances': instances})

            self.metrics.recordMutation(LogAction.INSTANCE_ADDED.value)
            entryId = await self.auditLogger.record(
                LogAction.INSTANCE_ADDED,
                {'instanceFields': added.to_dict()},
                recordId=recordId,
                instanceId=added.id
            )
            return MutationResult(recordId, logEntryId=entryId, instanceId=added.id)

    async def updateInstance(self, recordId: int, instanceId: int, newInstance: Instance) -> MutationResult:
        async with self._lockFor(recordId):
            record = await self._require(recordId)
            old = record.findInstance(instanceId)
            if old is None:
                raise InstanceNotFoundError(recordId, instanceId)

            updated = copy.deepcopy(newInstance)
            updated.id = instanceId
            changeSet = self.changeDetector.diffInstance(old, updated)

            if not changeSet:
                self.metrics.recordNoopUpdate()
                return MutationResult(recordId, instanceId=instanceId)

            instances = [updated if i.id == instanceId else i for i in record.instances]
            await self.recordStore.update(recordId, {'instances': instances})

            self.metrics.recordMutation(LogAction.INSTANCE_EDITED.value)
            entryId = await self.auditLogger.record(
                LogAction.INSTANCE_EDITED,
                changeSet,
                recordId=recordId,
                instanceId=instanceId
            )
            return MutationResult(recordId, changeSet, entryId, instanceId)

    async def removeInstance(self, recordId: int, instanceId: int) -> MutationResult:
        async with self._lockFor(recordId):
            record = await self._require(recordId)
            old = record.findInstance(instanceId)
            if old is None:
                raise InstanceNotFoundError(recordId, instanceId)

            instances = [i for i in record.instances if i.id != instanceId]
            await self.recordStore.update(recordId, {'instances': instances})

            self.metrics.recordMutation(LogAction.INSTANCE_DELETED.value)
            entryId = await self.auditLogger.record(
                LogAction.INSTANCE_DELETED,
                {'instanceFields': old.to_dict()},
                recordId=recordId,
                instanceId=instanceId
            )
            return MutationResult(recordId, logEntryId=entryId, instanceId=instanceId)

    # Queries

    async def listRecords(self) -> List[CanonicalRecord]:
        return await self.recordStore.getAll()

    async def getActivity(self, limit: Optional[int] = None) -> List[LogEntry]:
        return await self.auditLogger.list(limit)
