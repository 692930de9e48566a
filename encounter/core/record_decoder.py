"""
Record Decoder - Encoded-list text fields to typed medical history

Responsibilities:
- Decode loosely delimited list fields such as
  "[('Flu', '2021-01-01'), ('Asthma', '2019-05-10')]"
- Pair parallel fields by position (allergen i <-> reaction i)
- Pass free-text history fields through unchanged

Design principles:
- Total: no input, however malformed, raises. Worst case is a single
  entity with best-effort strings.
- One grammar (FIELD_SPECS delimiter table + positional zip) instead of
  per-field string replacement chains
- Missing sibling components become "" (never None)

Grammar:
    field    := ['['] body [']']          quotes anywhere are dropped
    tuples   := element ( '), (' element )*
    element  := ['('] first [', ' second] [')']
    flat     := item ( ', ' item )*
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from encounter.contracts import (
    Allergy,
    Immunization,
    MedicalCondition,
    MedicalHistory,
    Medication,
    Surgery,
)

logger = logging.getLogger(__name__)

# Delimiters
TUPLE_SEPARATOR = "), ("
ITEM_SEPARATOR = ", "
QUOTE_CHARS = ("\"", "'")

# Encoding kinds
KIND_TUPLE = "tuple"
KIND_PAIRED = "paired"


@dataclass(frozen=True)
class FieldSpec:
    """
    One row of the decoding table.

    Attributes:
        target: MedicalHistory attribute that receives the entities
        entity: Entity class (two string fields, positional)
        kind: KIND_TUPLE for parenthesized pairs in one column,
              KIND_PAIRED for a flat list zipped with a sibling column
        column: Source column holding the encoded list
        sibling_column: Source column holding the paired values (KIND_PAIRED only)
    """
    target: str
    entity: type
    kind: str
    column: str
    sibling_column: Optional[str] = None


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec('activeConditions', MedicalCondition, KIND_TUPLE, 'Active Conditions'),
    FieldSpec('currentMedication', Medication, KIND_TUPLE, 'Current Medication'),
    FieldSpec('pastSurgeries', Surgery, KIND_PAIRED, 'Past Surgeries', 'Surgery Dates'),
    FieldSpec('allergies', Allergy, KIND_PAIRED, 'Allergies', 'Allergy Reactions'),
    FieldSpec('immunizations', Immunization, KIND_PAIRED, 'Immunizations', 'Immunization Dates'),
)

SOCIAL_HISTORY_COLUMN = 'Social History'
FAMILY_HISTORY_COLUMN = 'Family History'


def _raw_text(raw_fields: Mapping[str, Any], column: Optional[str]) -> str:
    """Fetch a column as text; None and missing keys become ''."""
    if column is None:
        return ""
    try:
        value = raw_fields.get(column)
    except AttributeError:
        return ""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _strip_one(text: str, prefix: str, suffix: str) -> str:
    """Strip at most one leading prefix and one trailing suffix."""
    if text.startswith(prefix):
        text = text[len(prefix):]
    if text.endswith(suffix):
        text = text[:-len(suffix)]
    return text


def prepare_field(text: str) -> str:
    """
    Normalize an encoded list field before splitting.

    Strips one leading '[' and one trailing ']' and drops every quote.

    Example:
        >>> prepare_field("[('Flu', '2021')]")
        '(Flu, 2021)'
    """
    text = text.strip()
    text = _strip_one(text, "[", "]")
    for quote in QUOTE_CHARS:
        text = text.replace(quote, "")
    return text.strip()


def split_tuples(text: str) -> List[Tuple[str, str]]:
    """
    Split a prepared tuple-list field into (first, second) pairs.

    Elements with no ', ' yield (element, '').

    Example:
        >>> split_tuples("(Flu, 2021), (Asthma, )")
        [('Flu', '2021'), ('Asthma', '')]
    """
    if not text:
        return []

    pairs = []
    for element in text.split(TUPLE_SEPARATOR):
        element = _strip_one(element.strip(), "(", ")")
        parts = element.split(ITEM_SEPARATOR, 1)
        first = parts[0].strip()
        second = parts[1].strip() if len(parts) > 1 else ""
        pairs.append((first, second))
    return pairs


def split_flat(text: str) -> List[str]:
    """Split a prepared flat list field on ', '."""
    if not text:
        return []
    return [item.strip() for item in text.split(ITEM_SEPARATOR)]


def zip_positional(primary: List[str], sibling: List[str]) -> List[Tuple[str, str]]:
    """
    Pair element i of primary with element i of sibling.

    An exhausted sibling pairs with ''. Extra sibling elements are dropped.
    """
    return [
        (item, sibling[index] if index < len(sibling) else "")
        for index, item in enumerate(primary)
    ]


def decode_field(raw_fields: Mapping[str, Any], spec: FieldSpec) -> tuple:
    """Decode one FieldSpec into a tuple of entities."""
    primary = prepare_field(_raw_text(raw_fields, spec.column))

    if spec.kind == KIND_TUPLE:
        pairs = split_tuples(primary)
    else:
        sibling = split_flat(prepare_field(_raw_text(raw_fields, spec.sibling_column)))
        pairs = zip_positional(split_flat(primary), sibling)
        if len(sibling) > len(pairs):
            logger.debug(
                f"{spec.sibling_column}: {len(sibling) - len(pairs)} unpaired value(s) ignored"
            )

    return tuple(spec.entity(first, second) for first, second in pairs)


def decode(raw_fields: Mapping[str, Any]) -> MedicalHistory:
    """
    Decode one raw medical-history record into a MedicalHistory.

    Args:
        raw_fields: Column name -> raw cell text for a single patient row

    Returns:
        MedicalHistory with every list field populated (possibly empty)

    Never raises. Unexpected failures while decoding a field are logged and
    that field decodes to an empty list.

    Example:
        >>> decode({'Active Conditions': "[('Flu', '2021'), ('Asthma', '')]"}).activeConditions
        (MedicalCondition(condition='Flu', date='2021'), MedicalCondition(condition='Asthma', date=''))
    """
    if raw_fields is None:
        raw_fields = {}

    decoded: Dict[str, Any] = {}
    for spec in FIELD_SPECS:
        try:
            decoded[spec.target] = decode_field(raw_fields, spec)
        except Exception as e:
            logger.error(f"Failed to decode '{spec.column}': {type(e).__name__} - {e}")
            decoded[spec.target] = ()
        logger.debug(f"{spec.column}: {len(decoded[spec.target])} entit(ies)")

    return MedicalHistory(
        socialHistory=_raw_text(raw_fields, SOCIAL_HISTORY_COLUMN),
        familyHistory=_raw_text(raw_fields, FAMILY_HISTORY_COLUMN),
        **decoded,
    )
