"""
JSON file stores

File-backed record and log stores used by the command line tool. The record
file carries the schema version it was written with; rows written under an
older version are upgraded through ``migrate`` when the file is loaded.
"""

from typing import List, Dict, Any, Optional
from pathlib import Path
import json

from ..normalization.schema import CanonicalRecord
from ..normalization.migration import migrate, CURRENT_SCHEMA_VERSION
from ..audit.log_entry import LogEntry
from .base import RecordStore, LogStore
from .errors import RecordStoreError, RecordNotFoundError, LogStoreError
from .memory import applyPartial, newestFirst


def _readJson(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    with open(path, 'r') as f:
        return json.load(f)


def _writeJson(path: Path, data: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmpPath = path.with_suffix(path.suffix + '.tmp')
    with open(tmpPath, 'w') as f:
        json.dump(data, f, indent=2)
    tmpPath.replace(path)


class JsonFileRecordStore(RecordStore):

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.path = Path(config.get('data_dir', 'data')) / config.get('records_file', 'records.json')
        self._records: Dict[int, CanonicalRecord] = {}
        self._nextId = 1
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return

        try:
            data = _readJson(self.path)
        except (OSError, ValueError) as e:
            raise RecordStoreError(f"Cannot read {self.path}: {e}") from e

        if data:
            version = data.get('schemaVersion', 1)
            records: Dict[int, CanonicalRecord] = {}
            unnumbered = []
            for raw in data.get('records', []):
                record = migrate(raw, version)
                if record.id is None:
                    unnumbered.append(record)
                else:
                    records[record.id] = record

            nextId = data.get('nextId', max(records, default=0) + 1)
            for record in unnumbered:
                record.id = nextId
                nextId += 1
                records[record.id] = record

            if version != CURRENT_SCHEMA_VERSION:
                self.logger.info(
                    f"Upgraded {len(records)} records in {self.path} "
                    f"from schema v{version} to v{CURRENT_SCHEMA_VERSION}"
                )
                self._commit(records, nextId)
            else:
                self._records = records
                self._nextId = nextId

        self._loaded = True

    def _commit(self, records: Dict[int, CanonicalRecord], nextId: int) -> None:
        """Write the new state, then adopt it. A failed write leaves the cache as it was."""
        data = {
            'schemaVersion': CURRENT_SCHEMA_VERSION,
            'nextId': nextId,
            'records': [record.to_dict() for _, record in sorted(records.items())]
        }
        try:
            _writeJson(self.path, data)
        except OSError as e:
            raise RecordStoreError(f"Cannot write {self.path}: {e}") from e

        self._records = records
        self._nextId = nextId

    async def insert(self, record: CanonicalRecord) -> int:
        ids = await self.insertMany([record])
        return ids[0]

    async def insertMany(self, records) -> List[int]:
        self._load()

        pending = dict(self._records)
        nextId = self._nextId
        ids = []
        for record in records:
            stored = CanonicalRecord.from_dict(record.to_dict())
            stored.id = nextId
            nextId += 1
            pending[stored.id] = stored
            ids.append(stored.id)

        self._commit(pending, nextId)
        return ids

    async def update(self, recordId: int, partialRecord: Dict[str, Any]) -> None:
        self._load()
        record = self._records.get(recordId)
        if record is None:
            raise RecordNotFoundError(recordId)

        pending = dict(self._records)
        pending[recordId] = applyPartial(record, partialRecord)
        self._commit(pending, self._nextId)

    async def delete(self, recordId: int) -> None:
        self._load()
        if recordId not in self._records:
            raise RecordNotFoundError(recordId)

        pending = dict(self._records)
        del pending[recordId]
        self._commit(pending, self._nextId)

    async def getAll(self) -> List[CanonicalRecord]:
        self._load()
        return [CanonicalRecord.from_dict(record.to_dict()) for _, record in sorted(self._records.items())]

    async def getById(self, recordId: int) -> Optional[CanonicalRecord]:
        self._load()
        record = self._records.get(recordId)
        return CanonicalRecord.from_dict(record.to_dict()) if record is not None else None


class JsonFileLogStore(LogStore):

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.path = Path(config.get('data_dir', 'data')) / config.get('logs_file', 'logs.json')

    def _read(self) -> Dict[str, Any]:
        try:
            return _readJson(self.path) or {'nextId': 1, 'entries': []}
        except (OSError, ValueError) as e:
            raise LogStoreError(f"Cannot read {self.path}: {e}") from e

    async def append(self, entry: LogEntry) -> int:
        data = self._read()

        entryId = data.get('nextId', len(data['entries']) + 1)
        data['entries'].append(entry.withId(entryId).to_dict())
        data['nextId'] = entryId + 1

        try:
            _writeJson(self.path, data)
        except OSError as e:
            raise LogStoreError(f"Cannot write {self.path}: {e}") from e

        return entryId

    async def queryRecent(self, limit: int) -> List[LogEntry]:
        entries = [LogEntry.from_dict(item) for item in self._read()['entries']]
        return newestFirst(entries, limit)
