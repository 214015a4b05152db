# Reference lookups and format checks for inventory identifiers.

from typing import Dict, List, Optional
import re


NSN_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{3}-\d{4}$')
LIN_PATTERN = re.compile(r'^[A-Za-z0-9]{1,6}$')
SERIAL_NUMBER_PATTERN = re.compile(r'^[A-Z0-9\-/.]{5,20}$')
DOCUMENT_NUMBER_PATTERN = re.compile(r'^[A-Z0-9]{6}\d{4}[A-Z0-9]{4}$')

UNIT_OF_ISSUE_CODES: Dict[str, str] = {
    'AM': 'AMPOULE', 'AT': 'ASSORTMENT', 'AY': 'ASSEMBLY', 'BA': 'BALL',
    'BD': 'BUNDLE', 'BE': 'BALE', 'BF': 'BOARD FOOT', 'BG': 'BAG',
    'BK': 'BOOK', 'BL': 'BARREL', 'BO': 'BOLT', 'BR': 'BAR',
    'BT': 'BOTTLE', 'BX': 'BOX', 'CA': 'CARTRIDGE', 'CB': 'CARBOY',
    'CD': 'CUBIC YARD', 'CE': 'CONE', 'CF': 'CUBIC FOOT', 'CK': 'CAKE',
    'CL': 'COIL', 'CM': 'CENTIMETER', 'CN': 'CAN', 'CO': 'CONTAINER',
    'CS': 'CASE', 'CT': 'CARTON', 'CU': 'CUBE', 'CY': 'CYLINDER',
    'CZ': 'CUBIC METER', 'DR': 'DRUM', 'DZ': 'DOZEN', 'EA': 'EACH',
    'EN': 'ENVELOPE', 'FT': 'FOOT', 'FV': 'FIVE', 'FY': 'FIFTY',
    'GL': 'GALLON', 'GP': 'GROUP', 'GR': 'GROSS', 'HD': 'HUNDRED (100)',
    'HK': 'HANK', 'IN': 'INCH', 'JR': 'JAR', 'KG': 'KILOGRAM',
    'KT': 'KIT', 'LB': 'POUND', 'LG': 'LENGTH', 'LI': 'LITER',
    'LT': 'LOT', 'MC': 'THOUSAND CUBIC FEET', 'ME': 'MEAL', 'MM': 'MILLIMETER',
    'MR': 'METER', 'MX': 'THOUSAND (1000)', 'OT': 'OUTFIT', 'OZ': 'OUNCE',
    'PD': 'PAD', 'PG': 'PACKAGE', 'PK': 'PACKAGE BUY', 'PM': 'PLATE',
    'PR': 'PAIR', 'PT': 'PINT', 'PZ': 'PACKET', 'QT': 'QUART',
    'RA': 'RATION', 'RL': 'REEL', 'RM': 'REAM (500 SHEETS)', 'RO': 'ROLL',
    'SD': 'SKID', 'SE': 'SET', 'SF': 'SQUARE FOOT', 'SH': 'SHEET',
    'SK': 'SKIEN', 'SL': 'SPOOL', 'SO': 'SHOT', 'SP': 'STRIP',
    'SV': 'SERVICE', 'SX': 'STICK', 'SY': 'SQUARE YARD', 'TD': 'TWENTY-FOUR',
    'TE': 'TEN', 'TF': 'TWENTY-FIVE', 'TN': 'TON', 'TO': 'TROY OUNCE',
    'TS': 'THIRTY-SIX', 'TU': 'TUBE', 'VI': 'VIAL', 'XX': 'DOLLARS FOR SERVICES',
    'YD': 'YARD',
}

UNIT_OF_ISSUE_BY_NAME: Dict[str, str] = {name: code for code, name in UNIT_OF_ISSUE_CODES.items()}

CONDITION_CODES: Dict[str, str] = {
    'A': 'SERVICEABLE (ISSUABLE WITHOUT QUALIFICATION)',
    'B': 'SERVICEABLE (ISSUABLE WITH QUALIFICATION)',
    'C': 'SERVICEABLE (PRIORITY ISSUE)',
    'D': 'SERVICEABLE (TEST/ MODIFICATION)',
    'E': 'UNSERVICEABLE (LIMITED RESTORATION)',
    'F': 'UNSERVICEABLE (REPARABLE)',
    'G': 'UNSERVICEABLE (INCOMPLETE)',
    'H': 'UNSERVICEABLE (CONDEMNED)',
    'J': 'SUSPENDED (IN STOCK)',
    'K': 'SUSPENDED (RETURNS)',
    'L': 'SUSPENDED (LITIGATION)',
    'M': 'SUSPENDED (IN WORK)',
    'N': 'SUSPENDED (AMMUNITION SUITABLE FOR EMERGENCY COMBAT USE ONLY)',
    'P': 'UNSERVICEABLE (RECLAMATION)',
    'Q': 'SUSPENDED (PRODUCT QUALITY DEFICIENCY)',
    'R': 'SUSPENDED (RECLAIMED ITEMS, AWAITING CONDITION DETERMINATION)',
    'S': 'UNSERVICEABLE (SCRAP)',
    'T': 'SERVICEABLE (AMMUNITION SUITABLE FOR TRAINING USE ONLY)',
    'V': 'UNSERVICEABLE (WASTE MILITARY MUNITIONS)',
    'X': 'SUSPENDED (REPAIR DECISION DELAYED)',
}


def validateNsn(nsn: str) -> bool:
    # 13 digits grouped 4-2-3-4, e.g. 1005-01-123-4567
    return bool(NSN_PATTERN.match(nsn))


def validateLin(lin: str) -> bool:
    return bool(LIN_PATTERN.match(lin))


def validateSerialNumber(serial: str) -> bool:
    return bool(SERIAL_NUMBER_PATTERN.match(serial.upper()))


def validateDocumentNumber(documentNumber: str) -> bool:
    # DODAAC + Julian date + serial
    return bool(DOCUMENT_NUMBER_PATTERN.match(documentNumber))


def isKnownUnitOfIssue(code: str) -> bool:
    return code in UNIT_OF_ISSUE_CODES


def isKnownConditionCode(code: str) -> bool:
    return code.upper() in CONDITION_CODES


def lookupUnitOfIssue(value: str) -> Optional[str]:
    """Return the unit code for a code or a unit name, or None."""
    candidate = value.strip().upper()
    if candidate in UNIT_OF_ISSUE_CODES:
        return candidate
    return UNIT_OF_ISSUE_BY_NAME.get(candidate)


def formatWarnings(
    stockNumber: str,
    lineItemNumber: str,
    unitOfIssue: str,
    conditionCode: str = ''
) -> List[str]:
    warnings = []

    if stockNumber and not validateNsn(stockNumber):
        warnings.append(f"stock number '{stockNumber}' is not in dddd-dd-ddd-dddd form")

    if lineItemNumber and not validateLin(lineItemNumber):
        warnings.append(f"line item number '{lineItemNumber}' is not 1-6 alphanumerics")

    if unitOfIssue and not isKnownUnitOfIssue(unitOfIssue):
        warnings.append(f"unknown unit of issue '{unitOfIssue}'")

    if conditionCode and not isKnownConditionCode(conditionCode):
        warnings.append(f"unknown condition code '{conditionCode}'")

    return warnings
