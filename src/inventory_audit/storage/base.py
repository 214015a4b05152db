# Persistence contracts the core relies on

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Sequence
import logging

from ..normalization.schema import CanonicalRecord
from ..audit.log_entry import LogEntry
from .errors import StoreError, RecordStoreError, RecordNotFoundError, LogStoreError  # noqa: F401


class RecordStore(ABC):
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def insert(self, record: CanonicalRecord) -> int:
        pass

    async def insertMany(self, records: Sequence[CanonicalRecord]) -> List[int]:
        ids = []
        for record in records:
            ids.append(await self.insert(record))
        return ids

    @abstractmethod
    async def update(self, recordId: int, partialRecord: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete(self, recordId: int) -> None:
        pass

    @abstractmethod
    async def getAll(self) -> List[CanonicalRecord]:
        pass

    @abstractmethod
    async def getById(self, recordId: int) -> Optional[CanonicalRecord]:
        pass


class LogStore(ABC):
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    async def append(self, entry: LogEntry) -> int:
        pass

    @abstractmethod
    async def queryRecent(self, limit: int) -> List[LogEntry]:
        pass
