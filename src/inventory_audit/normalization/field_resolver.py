from typing import Dict, Any, Optional
import logging

from .aliases import AliasTable, CANONICAL_FIELDS
from .schema import NOT_FOUND, Row


class FieldResolver:

    def __init__(
        self,
        aliasTable: Optional[AliasTable] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.aliasTable = aliasTable or AliasTable()

    def indexHeaders(self, row: Row) -> Dict[str, str]:
        """Lower-cased header -> header as written. First spelling in row order wins."""
        index = {}

        for header in row.keys():
            if header is None:
                continue
            key = str(header).lower()
            if key not in index:
                index[key] = header

        return index

    def resolve(
        self,
        row: Row,
        canonicalField: str,
        headerIndex: Optional[Dict[str, str]] = None
    ) -> Any:
        if headerIndex is None:
            headerIndex = self.indexHeaders(row)

        for alias in self.aliasTable.aliasesFor(canonicalField):
            header = headerIndex.get(alias.lower())
            if header is not None:
                return row[header]

        return NOT_FOUND

    def resolveAll(self, row: Row) -> Dict[str, Any]:
        headerIndex = self.indexHeaders(row)

        resolved = {}
        for canonicalField in CANONICAL_FIELDS:
            resolved[canonicalField] = self.resolve(row, canonicalField, headerIndex)

        return resolved

    def matchedHeaders(self, row: Row) -> Dict[str, str]:
        """Canonical field -> header that supplied it, for import diagnostics."""
        headerIndex = self.indexHeaders(row)
        matched = {}

        for canonicalField in CANONICAL_FIELDS:
            for alias in self.aliasTable.aliasesFor(canonicalField):
                header = headerIndex.get(alias.lower())
                if header is not None:
                    matched[canonicalField] = header
                    break

        return matched
