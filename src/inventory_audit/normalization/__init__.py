"""
Spreadsheet Normalization Module

Maps inconsistently named spreadsheet columns onto the canonical inventory
record.

Features:
- Ordered, configurable header aliases per canonical field
- Case-insensitive alias resolution
- Value coercion with typed fallbacks
- Derived quantity short
- Migration of records stored under older schema versions
- Export through the inverse alias table
"""

from .schema import CanonicalRecord, Instance, NOT_FOUND
from .aliases import AliasTable
from .field_resolver import FieldResolver
from .normalizer import RowNormalizer, RowParseError
from .migration import migrate, CURRENT_SCHEMA_VERSION
from .exporter import exportRows

__all__ = [
    'CanonicalRecord',
    'Instance',
    'NOT_FOUND',
    'AliasTable',
    'FieldResolver',
    'RowNormalizer',
    'RowParseError',
    'migrate',
    'CURRENT_SCHEMA_VERSION',
    'exportRows',
]
