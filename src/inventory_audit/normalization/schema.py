from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional, List, Mapping, Union
from datetime import datetime


# Raw spreadsheet cell as handed over by the row source
CellValue = Union[str, int, float, bool, datetime, None]
Row = Mapping[str, CellValue]


class _NotFound:
    """Sentinel for a canonical field whose aliases are absent from a row."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'NOT_FOUND'

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


def _dateToStr(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _strToDate(value: Any) -> Optional[datetime]:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return value or None


@dataclass
class Instance:
    id: Optional[int] = None
    serialNumber: str = ''
    location: str = ''
    conditionCode: str = ''
    lastVerifiedAt: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['lastVerifiedAt'] = _dateToStr(self.lastVerifiedAt)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Instance':
        return cls(
            id=data.get('id'),
            serialNumber=data.get('serialNumber') or '',
            location=data.get('location') or '',
            conditionCode=data.get('conditionCode') or '',
            lastVerifiedAt=_strToDate(data.get('lastVerifiedAt'))
        )


@dataclass
class CanonicalRecord:
    nomenclature: str = ''
    lineItemNumber: str = ''
    stockNumber: str = ''
    unitOfIssue: str = ''

    quantityAuthorized: float = 0
    quantityOnHand: float = 0
    quantityShort: float = 0  # derived, see coercers.deriveQuantityShort

    isFlagged: bool = False
    notes: Optional[str] = None
    photos: List[str] = field(default_factory=list)
    lastVerifiedAt: Optional[datetime] = None

    instances: List[Instance] = field(default_factory=list)

    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)

        data['lastVerifiedAt'] = _dateToStr(self.lastVerifiedAt)
        data['instances'] = [instance.to_dict() for instance in self.instances]

        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CanonicalRecord':
        return cls(
            id=data.get('id'),
            nomenclature=data.get('nomenclature') or '',
            lineItemNumber=data.get('lineItemNumber') or '',
            stockNumber=data.get('stockNumber') or '',
            unitOfIssue=data.get('unitOfIssue') or '',
            quantityAuthorized=data.get('quantityAuthorized') or 0,
            quantityOnHand=data.get('quantityOnHand') or 0,
            quantityShort=data.get('quantityShort') or 0,
            isFlagged=bool(data.get('isFlagged', False)),
            notes=data.get('notes'),
            photos=list(data.get('photos') or []),
            lastVerifiedAt=_strToDate(data.get('lastVerifiedAt')),
            instances=[Instance.from_dict(item) for item in data.get('instances') or []]
        )

    def findInstance(self, instanceId: int) -> Optional[Instance]:
        for instance in self.instances:
            if instance.id == instanceId:
                return instance
        return None

    def salientFields(self) -> Dict[str, Any]:
        """Identifying fields kept in the log after the record is gone."""
        return {
            'nomenclature': self.nomenclature,
            'lineItemNumber': self.lineItemNumber,
            'stockNumber': self.stockNumber,
            'quantityAuthorized': self.quantityAuthorized,
            'quantityOnHand': self.quantityOnHand
        }
