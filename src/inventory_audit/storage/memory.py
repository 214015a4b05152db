from typing import List, Dict, Any, Optional
from dataclasses import fields
import copy

from ..normalization.schema import CanonicalRecord
from ..audit.log_entry import LogEntry
from .base import RecordStore, LogStore
from .errors import RecordStoreError, RecordNotFoundError, LogStoreError


RECORD_FIELDS = frozenset(f.name for f in fields(CanonicalRecord)) - {'id'}


def applyPartial(record: CanonicalRecord, partialRecord: Dict[str, Any]) -> CanonicalRecord:
    unknown = set(partialRecord) - RECORD_FIELDS
    if unknown:
        raise RecordStoreError(f"Unknown record fields: {sorted(unknown)}")

    updated = copy.deepcopy(record)
    for name, value in partialRecord.items():
        setattr(updated, name, copy.deepcopy(value))
    return updated


class InMemoryRecordStore(RecordStore):

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._records: Dict[int, CanonicalRecord] = {}
        self._nextId = 1

    async def insert(self, record: CanonicalRecord) -> int:
        recordId = self._nextId
        self._nextId += 1

        stored = copy.deepcopy(record)
        stored.id = recordId
        self._records[recordId] = stored
        return recordId

    async def update(self, recordId: int, partialRecord: Dict[str, Any]) -> None:
        record = self._records.get(recordId)
        if record is None:
            raise RecordNotFoundError(recordId)
        self._records[recordId] = applyPartial(record, partialRecord)

    async def delete(self, recordId: int) -> None:
        if self._records.pop(recordId, None) is None:
            raise RecordNotFoundError(recordId)

    async def getAll(self) -> List[CanonicalRecord]:
        return [copy.deepcopy(record) for _, record in sorted(self._records.items())]

    async def getById(self, recordId: int) -> Optional[CanonicalRecord]:
        record = self._records.get(recordId)
        return copy.deepcopy(record) if record is not None else None


def newestFirst(entries: List[LogEntry], limit: int) -> List[LogEntry]:
    if limit <= 0:
        return []
    ordered = sorted(entries, key=lambda entry: (entry.timestamp, entry.id or 0), reverse=True)
    return ordered[:limit]


class InMemoryLogStore(LogStore):

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._entries: List[LogEntry] = []
        self._nextId = 1
        # Simulates an unavailable log backend
        self.failing = bool(self.config.get('failing', False))

    async def append(self, entry: LogEntry) -> int:
        if self.failing:
            raise LogStoreError("Log store unavailable")

        entryId = self._nextId
        self._nextId += 1
        self._entries.append(entry.withId(entryId))
        return entryId

    async def queryRecent(self, limit: int) -> List[LogEntry]:
        return newestFirst(self._entries, limit)
