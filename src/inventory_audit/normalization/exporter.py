# Tabular export using the inverse of the alias table.

from typing import Dict, Any, Optional, List, Iterable, TextIO
import csv
import json

from .aliases import AliasTable
from .schema import CanonicalRecord


def exportRow(record: CanonicalRecord, headers: Dict[str, str]) -> Dict[str, Any]:
    # Only the first instance fits a flat row
    instance = record.instances[0] if record.instances else None
    lastVerifiedAt = record.lastVerifiedAt or (instance.lastVerifiedAt if instance else None)

    values = {
        'nomenclature': record.nomenclature,
        'lineItemNumber': record.lineItemNumber,
        'stockNumber': record.stockNumber,
        'unitOfIssue': record.unitOfIssue,
        'quantityAuthorized': record.quantityAuthorized,
        'quantityOnHand': record.quantityOnHand,
        'quantityShort': record.quantityShort,
        'isFlagged': 'Yes' if record.isFlagged else 'No',
        'notes': record.notes or '',
        'serialNumber': instance.serialNumber if instance else '',
        'location': instance.location if instance else '',
        'conditionCode': instance.conditionCode if instance else '',
        'lastVerifiedAt': lastVerifiedAt.isoformat() if lastVerifiedAt else '',
    }

    return {headers[name]: value for name, value in values.items() if name in headers}


def exportRows(
    records: Iterable[CanonicalRecord],
    aliasTable: Optional[AliasTable] = None
) -> List[Dict[str, Any]]:
    headers = (aliasTable or AliasTable()).exportHeaders()
    return [exportRow(record, headers) for record in records]


def writeCsv(rows: List[Dict[str, Any]], stream: TextIO) -> None:
    if not rows:
        return
    writer = csv.DictWriter(stream, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    writer.writerows(rows)


def writeJson(rows: List[Dict[str, Any]], stream: TextIO) -> None:
    json.dump(rows, stream, indent=2)
