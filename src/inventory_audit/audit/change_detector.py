# Field-by-field comparison of two snapshots of a canonical record.

from typing import Any, Optional, List
import logging

from ..normalization.schema import CanonicalRecord, Instance
from .log_entry import FieldChange, LogAction


ChangeSet = List[FieldChange]

TRACKED_FIELDS = [
    'nomenclature',
    'lineItemNumber',
    'stockNumber',
    'unitOfIssue',
    'quantityAuthorized',
    'quantityOnHand',
    'quantityShort',
    'isFlagged',
    'notes',
    'photos',
    'lastVerifiedAt',
    'instances',
]

# Reported as item counts, not contents
COLLECTION_FIELDS = frozenset(['photos', 'instances'])

INSTANCE_TRACKED_FIELDS = [
    'serialNumber',
    'location',
    'conditionCode',
    'lastVerifiedAt',
]


class ChangeDetector:

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def diff(self, old: CanonicalRecord, new: CanonicalRecord) -> ChangeSet:
        changes = self._compare(old, new, TRACKED_FIELDS)
        self.logger.debug(f"Record {new.id}: {len(changes)} field(s) changed")
        return changes

    def diffInstance(self, old: Instance, new: Instance) -> ChangeSet:
        return self._compare(old, new, INSTANCE_TRACKED_FIELDS)

    def _compare(self, old: Any, new: Any, fields: List[str]) -> ChangeSet:
        changes = []

        for fieldName in fields:
            before = getattr(old, fieldName)
            after = getattr(new, fieldName)

            if before == after:
                continue

            if fieldName in COLLECTION_FIELDS:
                changes.append(FieldChange(fieldName, len(before), len(after)))
            else:
                changes.append(FieldChange(fieldName, before, after))

        return changes

    def inferAction(self, changeSet: ChangeSet) -> LogAction:
        """Most specific action for a change set coming from a generic update."""
        if not changeSet:
            raise ValueError("Cannot classify an empty change set")

        if len(changeSet) > 1:
            return LogAction.EDITED

        change = changeSet[0]

        if change.field == 'isFlagged':
            return LogAction.FLAGGED if change.after else LogAction.UNFLAGGED

        if change.field == 'lastVerifiedAt' and change.after is not None:
            return LogAction.VERIFIED

        if change.field == 'photos' and change.after != change.before:
            return LogAction.PHOTO_ADDED if change.after > change.before else LogAction.PHOTO_REMOVED

        if change.field == 'notes':
            return LogAction.NOTES_CHANGED

        return LogAction.EDITED
