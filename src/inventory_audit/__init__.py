"""
Inventory Audit

Normalizes inconsistently named inventory spreadsheets into canonical records
and keeps an append-only, diff based activity log of every change.
"""

from .normalization import CanonicalRecord, Instance, RowNormalizer, RowParseError, AliasTable
from .audit import AuditLogger, ChangeDetector, LogAction, LogEntry
from .service import InventoryService, ImportSummary, MutationResult

__version__ = '0.3.0'

__all__ = [
    'CanonicalRecord',
    'Instance',
    'RowNormalizer',
    'RowParseError',
    'AliasTable',
    'AuditLogger',
    'ChangeDetector',
    'LogAction',
    'LogEntry',
    'InventoryService',
    'ImportSummary',
    'MutationResult',
]
