"""
Column alias table

Maps every canonical inventory field to the header spellings seen in
hand receipts, property books and sub-hand receipts from different
organizations. List order is priority: the first alias present in a row wins,
so exact field names come before generic ones such as "Description".

The first alias of each field doubles as its display header on export.
"""

from typing import Dict, Any, Optional, List, Mapping, Iterable
import logging


# Canonical fields in the order the normalizer resolves them
CANONICAL_FIELDS = [
    'nomenclature',
    'lineItemNumber',
    'stockNumber',
    'unitOfIssue',
    'quantityAuthorized',
    'quantityOnHand',
    'quantityShort',
    'isFlagged',
    'notes',
    'serialNumber',
    'location',
    'conditionCode',
    'lastVerifiedAt',
]

INSTANCE_FIELDS = ['serialNumber', 'location', 'conditionCode', 'lastVerifiedAt']

DEFAULT_ALIASES: Dict[str, List[str]] = {
    'nomenclature': [
        'Nomenclature', 'Item Description', 'Description', 'Item Name', 'End Item Name',
        'Nomenclature/Description', 'Equipment Description', 'Item desc'
    ],
    'lineItemNumber': [
        'LIN', 'Line Item Number', 'Line #', 'LIN Code', 'Item LIN', 'Line Number'
    ],
    'stockNumber': [
        'NSN', 'Stock Number', 'National Stock Number', 'NSN #', 'Item NSN'
    ],
    'unitOfIssue': [
        'UI', 'Unit of Issue', 'Issue Unit', 'U/I', 'Qty Unit', 'Distribution Unit'
    ],
    'quantityAuthorized': [
        'Qty Authorized', 'Authorized Qty', 'Authorized Quantity', 'Allowance',
        'Required Quantity', 'QTY AUTH', 'Qty Req'
    ],
    'quantityOnHand': [
        'Qty On Hand', 'On Hand', 'OH Qty', 'Current Qty', 'Actual Count',
        'QTY OH', 'Present Qty'
    ],
    'quantityShort': [
        'Qty Short', 'Shortage', 'Difference', 'Qty Deficit', 'Missing Qty', 'Shortfall'
    ],
    'isFlagged': [
        'Flagged', 'Is Flagged', 'Flag', 'Marked', 'Highlight', 'Attention',
        'Needs Attention', 'Issue', 'Problem', 'Concern'
    ],
    # "Description" belongs to nomenclature, so it is not repeated here
    'notes': [
        'Notes', 'Item Notes', 'Remarks', 'Comments', 'End Item Description'
    ],
    'serialNumber': [
        'Serial Number', 'SN', 'S/N', 'Ser No', 'Serial No.', 'Serial'
    ],
    'location': [
        'Location', 'Sub-Hand Receipt Holder', 'SHR Holder', 'Custodian',
        'Holder', 'Assigned To', 'Room', 'Building', 'Responsible Party',
        'Storage Location'
    ],
    'conditionCode': [
        'Condition Code', 'Cond Code', 'Cond', 'Status', 'Serviceability',
        'Condition', 'Equipment Status'
    ],
    'lastVerifiedAt': [
        'Last Verified', 'Date Verified', 'Verification Date', 'Inventory Date',
        'Date of Inventory', 'Last Checked', 'Date Acquired', 'Acquisition Date',
        'Date Entered'
    ],
}


class AliasTable:
    """
    Ordered alias lists per canonical field.

    Aliases are data: new spellings come in through configuration
    (``normalization.aliases`` appends, ``normalization.alias_overrides``
    replaces) and never through changes to the resolver.
    """

    def __init__(
        self,
        aliases: Optional[Mapping[str, Iterable[str]]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        source = aliases if aliases is not None else DEFAULT_ALIASES

        self._aliases: Dict[str, List[str]] = {}
        for canonicalField in CANONICAL_FIELDS:
            self._aliases[canonicalField] = list(source.get(canonicalField, []))

        unknown = set(source) - set(CANONICAL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown canonical fields in alias table: {sorted(unknown)}")

    @classmethod
    def fromConfig(
        cls,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None
    ) -> 'AliasTable':
        table = cls(logger=logger)

        for canonicalField, aliases in (config.get('alias_overrides') or {}).items():
            table.replace(canonicalField, aliases)

        for canonicalField, aliases in (config.get('aliases') or {}).items():
            table.extend(canonicalField, aliases)

        return table

    def _checkField(self, canonicalField: str) -> None:
        if canonicalField not in self._aliases:
            raise ValueError(f"Unknown canonical field: {canonicalField}")

    def aliasesFor(self, canonicalField: str) -> List[str]:
        self._checkField(canonicalField)
        return list(self._aliases[canonicalField])

    def extend(self, canonicalField: str, aliases: Iterable[str]) -> None:
        self._checkField(canonicalField)
        existing = {alias.lower() for alias in self._aliases[canonicalField]}

        for alias in aliases:
            if alias.lower() in existing:
                continue
            self._aliases[canonicalField].append(alias)
            existing.add(alias.lower())

        self.logger.debug(f"Aliases for {canonicalField}: {self._aliases[canonicalField]}")

    def replace(self, canonicalField: str, aliases: Iterable[str]) -> None:
        self._checkField(canonicalField)
        aliases = list(aliases)
        if not aliases:
            raise ValueError(f"Alias list for {canonicalField} cannot be empty")
        self._aliases[canonicalField] = aliases

    def exportHeaders(self) -> Dict[str, str]:
        """Canonical field -> display header used by exporters."""
        return {
            canonicalField: aliases[0]
            for canonicalField, aliases in self._aliases.items()
            if aliases
        }

    def displayName(self, canonicalField: str) -> str:
        aliases = self._aliases.get(canonicalField)
        return aliases[0] if aliases else canonicalField
