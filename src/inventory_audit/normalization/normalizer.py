from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Iterable, Mapping
import logging

from .aliases import AliasTable
from .field_resolver import FieldResolver
from .schema import CanonicalRecord, Instance, Row
from .validation import formatWarnings
from .coercers import (
    toFlag,
    parseNumber,
    toNonNegativeNumber,
    toTrimmedString,
    toOptionalString,
    toDate,
    toUnitOfIssue,
    toConditionCode,
    deriveQuantityShort,
)


class RowParseError(Exception):
    """A row that cannot be read as header/value pairs at all."""

    def __init__(self, rowIndex: Optional[int], reason: str):
        self.rowIndex = rowIndex
        self.reason = reason
        location = f"row {rowIndex}" if rowIndex is not None else "sheet"
        super().__init__(f"Cannot parse {location}: {reason}")


@dataclass
class NormalizedBatch:
    records: List[CanonicalRecord] = field(default_factory=list)
    rowIndexes: List[int] = field(default_factory=list)  # source row of each record
    rejected: List[int] = field(default_factory=list)
    errors: List[RowParseError] = field(default_factory=list)


class RowNormalizer:

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        aliasTable: Optional[AliasTable] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or {}
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.aliasTable = aliasTable or AliasTable.fromConfig(self.config, logger=self.logger)
        self.resolver = FieldResolver(self.aliasTable, logger=self.logger)
        self.warnOnInvalidFormats = self.config.get('warn_on_invalid_formats', True)

    def normalize(self, row: Any, rowIndex: Optional[int] = None) -> CanonicalRecord:
        if not isinstance(row, Mapping):
            raise RowParseError(rowIndex, f"expected header/value mapping, got {type(row).__name__}")

        if not self.resolver.indexHeaders(row):
            raise RowParseError(rowIndex, "no readable headers")

        resolved = self.resolver.resolveAll(row)

        record = CanonicalRecord(
            nomenclature=toTrimmedString(resolved['nomenclature']),
            lineItemNumber=toTrimmedString(resolved['lineItemNumber']),
            stockNumber=toTrimmedString(resolved['stockNumber']),
            unitOfIssue=toUnitOfIssue(resolved['unitOfIssue']),
            quantityAuthorized=toNonNegativeNumber(resolved['quantityAuthorized']),
            quantityOnHand=toNonNegativeNumber(resolved['quantityOnHand']),
            isFlagged=toFlag(resolved['isFlagged']),
            notes=toOptionalString(resolved['notes']),
            photos=[],
            lastVerifiedAt=toDate(resolved['lastVerifiedAt'])
        )

        instance = self._buildInstance(resolved, record)
        if instance:
            record.instances.append(instance)

        record.quantityShort = self._resolveQuantityShort(resolved)

        if self.warnOnInvalidFormats:
            self._warnOnFormats(record, rowIndex)

        return record

    def normalizeBatch(self, rows: Iterable[Any]) -> NormalizedBatch:
        if rows is None or isinstance(rows, (str, bytes, Mapping)):
            raise RowParseError(None, "sheet has no readable rows")

        batch = NormalizedBatch()

        for rowIndex, row in enumerate(rows):
            try:
                record = self.normalize(row, rowIndex)
            except RowParseError as e:
                self.logger.warning(e.reason, extra={'rowIndex': rowIndex})
                batch.rejected.append(rowIndex)
                batch.errors.append(e)
                continue

            batch.records.append(record)
            batch.rowIndexes.append(rowIndex)

        self.logger.info(
            f"Normalized {len(batch.records)} rows, rejected {len(batch.rejected)}"
        )
        return batch

    def _resolveQuantityShort(self, resolved: Dict[str, Any]):
        authorized = parseNumber(resolved['quantityAuthorized'])
        onHand = parseNumber(resolved['quantityOnHand'])

        if authorized is not None and onHand is not None:
            return deriveQuantityShort(authorized, onHand)

        # Explicit shortage only counts when it cannot be derived
        explicit = parseNumber(resolved['quantityShort'])
        if explicit is not None:
            return max(0, explicit)

        return deriveQuantityShort(authorized or 0, onHand or 0)

    def _buildInstance(self, resolved: Dict[str, Any], record: CanonicalRecord) -> Optional[Instance]:
        serialNumber = toTrimmedString(resolved['serialNumber'])
        location = toTrimmedString(resolved['location'])
        conditionCode = toConditionCode(resolved['conditionCode'])

        if not (serialNumber or location or conditionCode):
            return None

        return Instance(
            serialNumber=serialNumber,
            location=location,
            conditionCode=conditionCode,
            lastVerifiedAt=record.lastVerifiedAt
        )

    def _warnOnFormats(self, record: CanonicalRecord, rowIndex: Optional[int]) -> None:
        conditionCode = record.instances[0].conditionCode if record.instances else ''
        warnings = formatWarnings(
            record.stockNumber,
            record.lineItemNumber,
            record.unitOfIssue,
            conditionCode
        )

        for warning in warnings:
            self.logger.warning(warning, extra={'rowIndex': rowIndex})
