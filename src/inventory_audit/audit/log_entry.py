from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple
from datetime import datetime
from enum import Enum


class LogAction(Enum):
    ITEM_ADDED = "item-added"
    EDITED = "edited"
    DELETED = "deleted"
    IMPORTED = "imported"
    EXPORTED = "exported"
    PHOTO_ADDED = "photo-added"
    PHOTO_REMOVED = "photo-removed"
    FLAGGED = "flagged"
    UNFLAGGED = "unflagged"
    VERIFIED = "verified"
    NOTES_CHANGED = "notes-changed"
    INSTANCE_ADDED = "instance-added"
    INSTANCE_EDITED = "instance-edited"
    INSTANCE_DELETED = "instance-deleted"


# Actions describing a before/after transition of one record or instance
CHANGE_SET_ACTIONS = frozenset([
    LogAction.EDITED,
    LogAction.PHOTO_ADDED,
    LogAction.PHOTO_REMOVED,
    LogAction.FLAGGED,
    LogAction.UNFLAGGED,
    LogAction.VERIFIED,
    LogAction.NOTES_CHANGED,
    LogAction.INSTANCE_EDITED,
])


def jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    return value


@dataclass(frozen=True)
class FieldChange:
    field: str
    before: Any
    after: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field,
            'before': jsonable(self.before),
            'after': jsonable(self.after)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldChange':
        return cls(field=data['field'], before=data.get('before'), after=data.get('after'))


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    action: LogAction
    summary: str
    subjectRecordId: Optional[int] = None
    subjectInstanceId: Optional[int] = None
    changeSet: Optional[Tuple[FieldChange, ...]] = None
    payload: Optional[Dict[str, Any]] = None
    id: Optional[int] = None

    def withId(self, entryId: int) -> 'LogEntry':
        # Identity comes from the log store; everything else is fixed at write time
        return LogEntry(
            timestamp=self.timestamp,
            action=self.action,
            summary=self.summary,
            subjectRecordId=self.subjectRecordId,
            subjectInstanceId=self.subjectInstanceId,
            changeSet=self.changeSet,
            payload=self.payload,
            id=entryId
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'action': self.action.value,
            'summary': self.summary,
            'subjectRecordId': self.subjectRecordId,
            'subjectInstanceId': self.subjectInstanceId,
            'changeSet': [change.to_dict() for change in self.changeSet] if self.changeSet is not None else None,
            'payload': jsonable(self.payload) if self.payload is not None else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        changeSet = data.get('changeSet')
        return cls(
            id=data.get('id'),
            timestamp=datetime.fromisoformat(data['timestamp']),
            action=LogAction(data['action']),
            summary=data.get('summary', ''),
            subjectRecordId=data.get('subjectRecordId'),
            subjectInstanceId=data.get('subjectInstanceId'),
            changeSet=tuple(FieldChange.from_dict(item) for item in changeSet) if changeSet is not None else None,
            payload=data.get('payload')
        )
