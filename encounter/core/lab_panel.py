"""
Lab Panel Normalizer - Flat lab row to typed lab results

Responsibilities:
- Treat every non-reserved column of a lab row as an analyte
- Attach the per-analyte flag ('<analyte> Flag' column) and display unit
- Normalize flags to exactly 'High' / 'Low' / ''
- Provide the abnormal-results view used for display prioritization

Design principles:
- Preserve source column order
- Unit table is a display hint, not a filter
- Unrecognized flags degrade to '' with a warning (never raise)
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from encounter.contracts import LabPanel, LabResult
from encounter.utils.lab_units import LAB_UNITS, get_unit

logger = logging.getLogger(__name__)

PATIENT_ID_COLUMN = "Patient ID"
TEST_DATE_COLUMN = "Test Date"
FLAG_SUFFIX = " Flag"

RESERVED_COLUMNS = {PATIENT_ID_COLUMN, TEST_DATE_COLUMN}

# Flag normalization mappings (case-insensitive, trimmed)
HIGH_VALUES = {'high', 'h'}
LOW_VALUES = {'low', 'l'}
FLAG_HIGH = "High"
FLAG_LOW = "Low"
FLAG_NORMAL = ""


def _cell(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None:
        return ""
    return (value if isinstance(value, str) else str(value)).strip()


def is_analyte_column(column: str) -> bool:
    """True for every column except Patient ID, Test Date and '* Flag'."""
    return column not in RESERVED_COLUMNS and not column.endswith(FLAG_SUFFIX)


def normalize_flag(flag: Optional[str]) -> str:
    """
    Normalize a raw flag cell to 'High', 'Low' or ''.

    Examples:
        >>> normalize_flag(' high ')
        'High'
        >>> normalize_flag('L')
        'Low'
        >>> normalize_flag(None)
        ''
    """
    if flag is None:
        return FLAG_NORMAL

    flag_lower = str(flag).strip().lower()

    if flag_lower in HIGH_VALUES:
        return FLAG_HIGH
    elif flag_lower in LOW_VALUES:
        return FLAG_LOW
    elif flag_lower:
        logger.warning(f"Unrecognized lab flag '{flag}' treated as normal")
    return FLAG_NORMAL


def normalize(row: Mapping[str, Any], unit_table: Optional[Mapping[str, str]] = None) -> LabPanel:
    """
    Map one lab-values row into a LabPanel.

    Args:
        row: Column name -> cell text, in source column order
        unit_table: Analyte -> unit (defaults to LAB_UNITS)

    Returns:
        LabPanel: results in column order, test_date or None

    Example:
        >>> panel = normalize({'Patient ID': 'P1000', 'ALT': '88', 'ALT Flag': ' high '})
        >>> panel.results[0]
        LabResult(name='ALT', value='88', unit='U/L', flag='High')
    """
    table = LAB_UNITS if unit_table is None else unit_table
    results: List[LabResult] = []

    for column in row.keys():
        if not isinstance(column, str) or not is_analyte_column(column):
            continue

        result = LabResult(
            name=column,
            value=_cell(row, column),
            unit=get_unit(column, table),
            flag=normalize_flag(_cell(row, column + FLAG_SUFFIX)),
        )
        results.append(result)

        if column not in table:
            logger.debug(f"Analyte '{column}' has no unit entry")

    test_date = _cell(row, TEST_DATE_COLUMN) or None

    logger.debug(f"Normalized {len(results)} lab result(s), test date {test_date}")
    return LabPanel(results=tuple(results), test_date=test_date)


def abnormal(results: Iterable[LabResult]) -> List[LabResult]:
    """
    Abnormal-results view: results whose normalized flag is High or Low.

    Returns a new list; the input is not modified.
    """
    return [r for r in results if normalize_flag(r.flag) in (FLAG_HIGH, FLAG_LOW)]
