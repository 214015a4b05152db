"""
Unit Tests for change detection, narration and the audit logger
"""

import unittest
from datetime import datetime, timezone

from inventory_audit.normalization.schema import CanonicalRecord, Instance
from inventory_audit.audit.log_entry import LogAction, LogEntry, FieldChange
from inventory_audit.audit.change_detector import ChangeDetector
from inventory_audit.audit.narration import summarize, describeChange
from inventory_audit.audit.audit_logger import AuditLogger, EmptyChangeSetError, MonotonicClock
from inventory_audit.storage.memory import InMemoryLogStore
from inventory_audit.utils.metrics import MetricsCollector


def radio(**overrides) -> CanonicalRecord:
    record = CanonicalRecord(
        id=1,
        nomenclature='Radio',
        lineItemNumber='a1b2c3',
        stockNumber='1005-01-123-4567',
        unitOfIssue='EA',
        quantityAuthorized=10,
        quantityOnHand=7,
        quantityShort=3
    )
    for name, value in overrides.items():
        setattr(record, name, value)
    return record


class TestChangeDetector(unittest.TestCase):

    def setUp(self):
        self.detector = ChangeDetector()

    def testIdenticalRecordsHaveNoChanges(self):
        record = radio(photos=['p1'], instances=[Instance(id=1, serialNumber='S12345')])
        self.assertEqual(self.detector.diff(record, record), [])
        self.assertEqual(self.detector.diff(record, radio(photos=['p1'], instances=[Instance(id=1, serialNumber='S12345')])), [])

    def testFlagChange(self):
        changes = self.detector.diff(radio(), radio(isFlagged=True))
        self.assertEqual(changes, [FieldChange('isFlagged', False, True)])

    def testPhotosReportedAsCounts(self):
        changes = self.detector.diff(radio(photos=['a']), radio(photos=['a', 'b']))
        self.assertEqual(changes, [FieldChange('photos', 1, 2)])

    def testPhotoReplacementStillDetected(self):
        changes = self.detector.diff(radio(photos=['a']), radio(photos=['b']))
        self.assertEqual(changes, [FieldChange('photos', 1, 1)])

    def testNotesNoneToNoneIsNoChange(self):
        self.assertEqual(self.detector.diff(radio(notes=None), radio(notes=None)), [])
        self.assertEqual(
            self.detector.diff(radio(notes=None), radio(notes='x')),
            [FieldChange('notes', None, 'x')]
        )

    def testChangesFollowFieldOrder(self):
        changes = self.detector.diff(radio(), radio(nomenclature='Radio Set', quantityOnHand=8, quantityShort=2))
        self.assertEqual(
            [change.field for change in changes],
            ['nomenclature', 'quantityOnHand', 'quantityShort']
        )

    def testInstanceDiff(self):
        old = Instance(id=1, serialNumber='S12345', location='Cage')
        new = Instance(id=1, serialNumber='S12345', location='Arms room')
        self.assertEqual(self.detector.diffInstance(old, new), [FieldChange('location', 'Cage', 'Arms room')])

    def testInferAction(self):
        verifiedAt = datetime(2024, 1, 1, tzinfo=timezone.utc)
        cases = [
            ([FieldChange('isFlagged', False, True)], LogAction.FLAGGED),
            ([FieldChange('isFlagged', True, False)], LogAction.UNFLAGGED),
            ([FieldChange('lastVerifiedAt', None, verifiedAt)], LogAction.VERIFIED),
            ([FieldChange('photos', 0, 1)], LogAction.PHOTO_ADDED),
            ([FieldChange('photos', 2, 1)], LogAction.PHOTO_REMOVED),
            ([FieldChange('notes', None, 'x')], LogAction.NOTES_CHANGED),
            ([FieldChange('nomenclature', 'A', 'B')], LogAction.EDITED),
            ([FieldChange('isFlagged', False, True), FieldChange('notes', None, 'x')], LogAction.EDITED),
        ]
        for changeSet, expected in cases:
            self.assertEqual(self.detector.inferAction(changeSet), expected)

    def testInferActionRejectsEmpty(self):
        with self.assertRaises(ValueError):
            self.detector.inferAction([])


class TestNarration(unittest.TestCase):

    def testFlagged(self):
        self.assertEqual(
            summarize(LogAction.FLAGGED, [FieldChange('isFlagged', False, True)]),
            "Item flagged"
        )

    def testHeadlineIgnoresChangeSetOrder(self):
        changes = [FieldChange('nomenclature', 'A', 'B'), FieldChange('quantityOnHand', 1, 2)]
        expected = "Changed Qty On Hand from 1 to 2 (+1 more)"

        self.assertEqual(summarize(LogAction.EDITED, changes), expected)
        self.assertEqual(summarize(LogAction.EDITED, list(reversed(changes))), expected)

    def testBlankValues(self):
        self.assertEqual(
            describeChange(FieldChange('stockNumber', '', '1005-01-123-4567')),
            "Changed NSN from blank to 1005-01-123-4567"
        )

    def testNotes(self):
        self.assertEqual(describeChange(FieldChange('notes', None, 'x')), "Added notes")
        self.assertEqual(describeChange(FieldChange('notes', 'x', None)), "Removed notes")
        self.assertEqual(describeChange(FieldChange('notes', 'x', 'y')), "Updated notes")

    def testPhotos(self):
        self.assertEqual(describeChange(FieldChange('photos', 1, 2)), "Added a photo (total: 2)")
        self.assertEqual(describeChange(FieldChange('photos', 2, 1)), "Removed a photo (remaining: 1)")

    def testVerified(self):
        change = FieldChange('lastVerifiedAt', None, datetime(2024, 3, 5, 14, 0))
        self.assertEqual(describeChange(change), "Item verified on 2024-03-05")

    def testInstanceEdited(self):
        summary = summarize(LogAction.INSTANCE_EDITED, [FieldChange('location', 'Cage', 'Arms room')])
        self.assertEqual(summary, "Instance: changed Location from Cage to Arms room")

    def testPayloadSummaries(self):
        self.assertEqual(
            summarize(LogAction.IMPORTED, {'importedCount': 2, 'rejectedRows': [1], 'fileName': 'sheet.xlsx'}),
            'Imported 2 items from "sheet.xlsx" (1 rows rejected)'
        )
        self.assertEqual(
            summarize(LogAction.EXPORTED, {'format': 'csv', 'exportedCount': 3}),
            "Exported 3 items as CSV file"
        )
        self.assertEqual(
            summarize(LogAction.DELETED, {'deletedItemFields': radio().salientFields()}),
            "Deleted item Radio (LIN a1b2c3, NSN 1005-01-123-4567)"
        )


class TestLogEntry(unittest.TestCase):

    def testDictRoundTrip(self):
        entry = LogEntry(
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
            action=LogAction.FLAGGED,
            summary="Item flagged",
            subjectRecordId=3,
            changeSet=(FieldChange('isFlagged', False, True),),
            id=12
        )
        self.assertEqual(LogEntry.from_dict(entry.to_dict()), entry)


class TestMonotonicClock(unittest.TestCase):

    def testStrictlyIncreasing(self):
        clock = MonotonicClock()
        stamps = [clock.now() for _ in range(200)]

        for earlier, later in zip(stamps, stamps[1:]):
            self.assertLess(earlier, later)
        self.assertEqual(stamps[0].tzinfo, timezone.utc)


class TestAuditLogger(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = InMemoryLogStore()
        self.metrics = MetricsCollector()
        self.auditLogger = AuditLogger(self.store, metrics=self.metrics, clock=MonotonicClock())

    async def testRecordFlagged(self):
        entryId = await self.auditLogger.record(
            LogAction.FLAGGED, [FieldChange('isFlagged', False, True)], recordId=1
        )
        entries = await self.auditLogger.list(10)

        self.assertEqual(entryId, 1)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].action, LogAction.FLAGGED)
        self.assertEqual(entries[0].subjectRecordId, 1)
        self.assertEqual(entries[0].changeSet, (FieldChange('isFlagged', False, True),))
        self.assertEqual(entries[0].summary, "Item flagged")
        self.assertEqual(self.metrics.log_entries_written, 1)

    async def testActionByValue(self):
        await self.auditLogger.record('notes-changed', [FieldChange('notes', None, 'x')], recordId=1)
        entries = await self.auditLogger.list()
        self.assertEqual(entries[0].action, LogAction.NOTES_CHANGED)

    async def testEmptyChangeSetRejected(self):
        with self.assertRaises(EmptyChangeSetError):
            await self.auditLogger.record(LogAction.EDITED, [], recordId=1)
        self.assertEqual(await self.auditLogger.list(), [])

    async def testMismatchedChangesRejected(self):
        with self.assertRaises(TypeError):
            await self.auditLogger.record(LogAction.FLAGGED, {'isFlagged': True})
        with self.assertRaises(TypeError):
            await self.auditLogger.record(LogAction.IMPORTED, [FieldChange('notes', None, 'x')])

    async def testNewestFirstWithLimit(self):
        for name in ['A', 'B', 'C']:
            await self.auditLogger.record(LogAction.ITEM_ADDED, {'itemFields': {'nomenclature': name}})

        entries = await self.auditLogger.list(2)

        self.assertEqual([entry.summary for entry in entries], ["Added item C", "Added item B"])
        self.assertGreater(entries[0].timestamp, entries[1].timestamp)
        self.assertEqual(await self.auditLogger.list(0), [])

    async def testPayloadIsCopied(self):
        payload = {'importedCount': 1, 'rejectedRows': []}
        await self.auditLogger.record(LogAction.IMPORTED, payload)
        payload['rejectedRows'].append(5)

        entries = await self.auditLogger.list()
        self.assertEqual(entries[0].payload['rejectedRows'], [])

    async def testStoreFailureIsReported(self):
        auditLogger = AuditLogger(InMemoryLogStore({'failing': True}), metrics=self.metrics)

        with self.assertLogs('AuditLogger', level='WARNING'):
            entryId = await auditLogger.record(LogAction.FLAGGED, [FieldChange('isFlagged', False, True)], recordId=1)

        self.assertIsNone(entryId)
        self.assertEqual(self.metrics.log_write_failures, 1)


if __name__ == '__main__':
    unittest.main()
