"""
Value coercers

Pure conversions from a raw spreadsheet cell to the semantic type of a
canonical field. None of them raise: a missing or unparsable cell falls back
to the documented default for its type.
"""

from typing import Any, Optional
from datetime import date, datetime, timedelta
import math
import re

from dateutil import parser as dateParser

from .schema import NOT_FOUND
from .validation import lookupUnitOfIssue


AFFIRMATIVE_FLAGS = frozenset(['yes', 'true', 'y', '1', 'flagged', 'mark', 'highlight'])

_NUMBER_PREFIX = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?')

# Day zero of the 1900 spreadsheet date system (with the 1900 leap-year bug)
_SPREADSHEET_EPOCH = datetime(1899, 12, 30)
_MAX_SPREADSHEET_SERIAL = 2958465


def _isMissing(raw: Any) -> bool:
    return raw is NOT_FOUND or raw is None


def toFlag(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw

    if isinstance(raw, (int, float)):
        return raw == 1

    if isinstance(raw, str):
        return raw.strip().lower() in AFFIRMATIVE_FLAGS

    return False


def _tidyNumber(value: float):
    if value.is_integer():
        return int(value)
    return value


def parseNumber(raw: Any) -> Optional[float]:
    """Parse a numeric cell, or return None when it holds no number."""
    if _isMissing(raw) or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
    elif isinstance(raw, str):
        match = _NUMBER_PREFIX.match(raw.strip().replace(',', ''))
        if not match:
            return None
        value = float(match.group(0))
    else:
        return None

    if math.isnan(value) or math.isinf(value):
        return None

    return _tidyNumber(value)


def toNonNegativeNumber(raw: Any):
    # Negative values survive here; only the derived shortage is clamped
    value = parseNumber(raw)
    return 0 if value is None else value


def toTrimmedString(raw: Any) -> str:
    if _isMissing(raw):
        return ''

    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))

    if isinstance(raw, datetime):
        return raw.isoformat()

    return str(raw).strip()


def toOptionalString(raw: Any) -> Optional[str]:
    value = toTrimmedString(raw)
    return value or None


def toDate(raw: Any) -> Optional[datetime]:
    if _isMissing(raw) or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        return raw

    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)

    if isinstance(raw, (int, float)):
        if 0 < raw <= _MAX_SPREADSHEET_SERIAL:
            return _SPREADSHEET_EPOCH + timedelta(days=float(raw))
        return None

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            return dateParser.parse(text)
        except (ValueError, OverflowError):
            return None

    return None


def toUnitOfIssue(raw: Any) -> str:
    value = toTrimmedString(raw).upper()
    if not value:
        return ''
    return lookupUnitOfIssue(value) or value


def toConditionCode(raw: Any) -> str:
    return toTrimmedString(raw).upper()


def deriveQuantityShort(quantityAuthorized, quantityOnHand):
    return max(0, quantityAuthorized - quantityOnHand)
