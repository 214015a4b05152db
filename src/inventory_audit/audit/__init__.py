"""
Audit Module

Append-only, diff based activity log for inventory records.
"""

from .log_entry import LogEntry, LogAction, FieldChange
from .change_detector import ChangeDetector, ChangeSet
from .narration import summarize
from .audit_logger import AuditLogger, EmptyChangeSetError

__all__ = [
    'LogEntry',
    'LogAction',
    'FieldChange',
    'ChangeDetector',
    'ChangeSet',
    'summarize',
    'AuditLogger',
    'EmptyChangeSetError',
]
