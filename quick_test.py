# Run the sample sheets through the inventory service
import asyncio
import csv
import json
from pathlib import Path

from inventory_audit.service import InventoryService
from inventory_audit.storage import InMemoryRecordStore, InMemoryLogStore


def loadSheet(path: Path):
    if path.suffix == '.csv':
        with open(path, 'r', newline='', encoding='utf-8-sig') as f:
            return list(csv.DictReader(f))
    with open(path, 'r') as f:
        return json.load(f)


async def quick_test():
    print("\n" + "="*70)
    print("INVENTORY AUDIT - QUICK TEST")
    print("="*70)

    config = {
        'normalization': {
            'warn_on_invalid_formats': False
        },
        'import': {
            'batch_size': 2
        }
    }

    print("\nInitializing service...")
    service = InventoryService(InMemoryRecordStore(), InMemoryLogStore(), config)
    print("    Service initialized")

    print("\nLoading sample sheets...")
    sampleDir = Path('data/sample_sheets')

    if not sampleDir.exists():
        print(f"    Sample directory not found: {sampleDir}")
        return

    sheets = sorted(list(sampleDir.glob('*.json')) + list(sampleDir.glob('*.csv')))

    if not sheets:
        print("    No sample sheets found")
        return

    for sheet in sheets:
        summary = await service.importRows(loadSheet(sheet), sourceName=sheet.name)
        print(f"      • {sheet.name}: {summary.accepted} imported, rejected rows {summary.rejected}")

    print("\nRecords:")
    records = await service.listRecords()
    for record in records:
        flag = '*' if record.isFlagged else ' '
        print(
            f"    {record.id:>3} {flag} {record.nomenclature:<32} "
            f"auth {record.quantityAuthorized:>3}  on hand {record.quantityOnHand:>3}  "
            f"short {record.quantityShort:>3}"
        )

    print("\nApplying a few changes...")
    first = records[0].id
    await service.setFlag(first, False)
    await service.addPhoto(first, 'photos/front.jpg')
    await service.setNotes(first, 'antenna on order')
    await service.setNotes(first, 'antenna on order')  # no-op, not logged
    await service.deleteItem(records[-1].id)

    print("\nActivity (newest first):")
    for entry in await service.getActivity(10):
        print(f"    {entry.timestamp:%H:%M:%S.%f} {entry.action.value:<16} {entry.summary}")

    print("\n" + "="*70)
    print("METRICS")
    print("="*70)
    print(json.dumps(service.metrics.getMetrics(), indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(quick_test())
