"""
Record schema migration

Stored records have gone through three shapes:

* v1: flat item with a single ``quantity`` and a ``status`` enum
  (``name``, ``lin``, ``nsn``, ``quantity``, ``status``, ``isFlagged``,
  ``photos``, ``notes``, ``lastVerified``)
* v2: quantity tracking (``ui``, ``qtyAuthorized``, ``qtyOnHand``,
  ``qtyShort``) with per-unit fields (``serialNumber``, ``location``,
  ``conditionCode``) kept on the item itself
* v3: the canonical record, per-unit fields moved to embedded instances

``migrate`` is the only place that knows about older shapes.
"""

from typing import Dict, Any, Mapping
import copy

from .schema import CanonicalRecord
from .coercers import deriveQuantityShort, toNonNegativeNumber, toDate


CURRENT_SCHEMA_VERSION = 3

# v1 statuses meaning the item was not physically present
V1_ABSENT_STATUSES = frozenset(['missing', 'lost', 'not found'])


def _v1ToV2(record: Dict[str, Any]) -> Dict[str, Any]:
    quantity = toNonNegativeNumber(record.pop('quantity', 0))
    status = str(record.pop('status', '') or '').strip().lower()

    onHand = 0 if status in V1_ABSENT_STATUSES else quantity
    if status in V1_ABSENT_STATUSES:
        record['isFlagged'] = True

    record.setdefault('ui', '')
    record['qtyAuthorized'] = quantity
    record['qtyOnHand'] = onHand
    record['qtyShort'] = deriveQuantityShort(quantity, onHand)
    return record


def _v2ToV3(record: Dict[str, Any]) -> Dict[str, Any]:
    renames = {
        'name': 'nomenclature',
        'lin': 'lineItemNumber',
        'nsn': 'stockNumber',
        'ui': 'unitOfIssue',
        'qtyAuthorized': 'quantityAuthorized',
        'qtyOnHand': 'quantityOnHand',
        'qtyShort': 'quantityShort',
        'lastVerified': 'lastVerifiedAt',
    }
    for old, new in renames.items():
        if old in record:
            record[new] = record.pop(old)

    # Older shapes stored whatever date text the sheet held
    record['lastVerifiedAt'] = toDate(record.get('lastVerifiedAt'))

    serialNumber = record.pop('serialNumber', '') or ''
    location = record.pop('location', '') or ''
    conditionCode = record.pop('conditionCode', '') or ''

    instances = record.setdefault('instances', [])
    if serialNumber or location or conditionCode:
        instances.append({
            'id': 1,
            'serialNumber': serialNumber,
            'location': location,
            'conditionCode': conditionCode,
            'lastVerifiedAt': record.get('lastVerifiedAt'),
        })

    record.pop('lastUpdated', None)
    return record


_STEPS = {
    1: _v1ToV2,
    2: _v2ToV3,
}


def migrate(oldShapeRecord: Mapping[str, Any], fromVersion: int) -> CanonicalRecord:
    if fromVersion < 1 or fromVersion > CURRENT_SCHEMA_VERSION:
        raise ValueError(
            f"Cannot migrate from schema version {fromVersion} "
            f"(supported: 1..{CURRENT_SCHEMA_VERSION})"
        )

    data = copy.deepcopy(dict(oldShapeRecord))

    for version in range(fromVersion, CURRENT_SCHEMA_VERSION):
        data = _STEPS[version](data)

    record = CanonicalRecord.from_dict(data)
    record.quantityShort = deriveQuantityShort(record.quantityAuthorized, record.quantityOnHand)
    return record
