"""
Audit narration

Builds the one-line, human readable summary of a log entry. The summary is a
pure function of (action, change set or payload). When several fields change
in one action, the field that ranks highest in ``FIELD_PRIORITY`` is narrated
and the rest are counted; the order of the change set itself never matters.
"""

from typing import Dict, Any, Optional, List, Mapping, Sequence, Union
from datetime import datetime

from ..normalization.aliases import AliasTable
from .log_entry import FieldChange, LogAction


# Most specific first
FIELD_PRIORITY = [
    'isFlagged',
    'lastVerifiedAt',
    'photos',
    'notes',
    'instances',
    'serialNumber',
    'conditionCode',
    'location',
    'quantityOnHand',
    'quantityAuthorized',
    'quantityShort',
    'stockNumber',
    'lineItemNumber',
    'unitOfIssue',
    'nomenclature',
]

_EXTRA_LABELS = {
    'photos': 'Photos',
    'instances': 'Instances',
}

_DEFAULT_LABELS: Dict[str, str] = {}


def labelsFor(aliasTable: AliasTable) -> Dict[str, str]:
    labels = aliasTable.exportHeaders()
    labels.update(_EXTRA_LABELS)
    return labels


def defaultLabels() -> Dict[str, str]:
    if not _DEFAULT_LABELS:
        _DEFAULT_LABELS.update(labelsFor(AliasTable()))
    return _DEFAULT_LABELS


def _rank(change: FieldChange):
    if change.field in FIELD_PRIORITY:
        return (0, FIELD_PRIORITY.index(change.field), '')
    return (1, 0, change.field)


def pickHeadline(changeSet: Sequence[FieldChange]) -> FieldChange:
    return min(changeSet, key=_rank)


def _formatValue(value: Any) -> str:
    if value is None or value == '':
        return 'blank'
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    if isinstance(value, bool):
        return 'yes' if value else 'no'
    return str(value)


def _countChange(change: FieldChange, noun: str) -> str:
    before, after = change.before, change.after
    if after > before:
        if after - before == 1:
            return f"Added a {noun} (total: {after})"
        return f"Added {after - before} {noun}s (total: {after})"
    if after < before:
        if before - after == 1:
            return f"Removed a {noun} (remaining: {after})"
        return f"Removed {before - after} {noun}s (remaining: {after})"
    return f"Replaced {noun}s (total: {after})"


def describeChange(change: FieldChange, labels: Optional[Mapping[str, str]] = None) -> str:
    labels = labels or defaultLabels()

    if change.field == 'isFlagged':
        return "Item flagged" if change.after else "Item unflagged"

    if change.field == 'lastVerifiedAt':
        if change.after is None:
            return "Verification date cleared"
        return f"Item verified on {_formatValue(change.after)}"

    if change.field == 'photos':
        return _countChange(change, 'photo')

    if change.field == 'instances':
        return _countChange(change, 'instance')

    if change.field == 'notes':
        if not change.before:
            return "Added notes"
        if not change.after:
            return "Removed notes"
        return "Updated notes"

    label = labels.get(change.field, change.field)
    return f"Changed {label} from {_formatValue(change.before)} to {_formatValue(change.after)}"


def _describePayload(action: LogAction, payload: Mapping[str, Any]) -> str:
    if action == LogAction.IMPORTED:
        summary = f"Imported {payload.get('importedCount', 0)} items"
        if payload.get('fileName'):
            summary += f" from \"{payload['fileName']}\""
        rejected = payload.get('rejectedRows') or []
        if rejected:
            summary += f" ({len(rejected)} rows rejected)"
        if payload.get('aborted'):
            summary += " before the import was stopped"
        return summary

    if action == LogAction.EXPORTED:
        exportFormat = str(payload.get('format') or 'unknown').upper()
        return f"Exported {payload.get('exportedCount', 0)} items as {exportFormat} file"

    if action == LogAction.DELETED:
        fields = payload.get('deletedItemFields')
        if fields:
            return (
                f"Deleted item {fields.get('nomenclature') or 'without nomenclature'}"
                f" (LIN {_formatValue(fields.get('lineItemNumber'))},"
                f" NSN {_formatValue(fields.get('stockNumber'))})"
            )
        return f"Deleted {payload.get('deletedItemCount', 0)} items"

    if action == LogAction.ITEM_ADDED:
        fields = payload.get('itemFields') or {}
        return f"Added item {fields.get('nomenclature') or 'without nomenclature'}"

    if action in (LogAction.INSTANCE_ADDED, LogAction.INSTANCE_DELETED):
        fields = payload.get('instanceFields') or {}
        name = fields.get('serialNumber') or f"#{fields.get('id')}"
        verb = "Added" if action == LogAction.INSTANCE_ADDED else "Removed"
        return f"{verb} instance {name}"

    return action.value.replace('-', ' ').capitalize()


def summarize(
    action: LogAction,
    changes: Union[Sequence[FieldChange], Mapping[str, Any]],
    labels: Optional[Mapping[str, str]] = None
) -> str:
    if isinstance(changes, Mapping):
        return _describePayload(action, changes)

    changeSet: List[FieldChange] = list(changes)
    headline = describeChange(pickHeadline(changeSet), labels)

    if action == LogAction.INSTANCE_EDITED:
        headline = f"Instance: {headline[0].lower()}{headline[1:]}"

    if len(changeSet) > 1:
        headline += f" (+{len(changeSet) - 1} more)"

    return headline
