"""Built-in assessment method implementations.

Each handler takes a SAMContext and returns a SAMOutcome. Handlers raise
SAMTypeError (or any other exception) when the item data has the wrong
shape; the registry turns that into an Errored outcome. Prerequisite
chains in the SAM definitions are expected to guard against missing data,
e.g. ``attr_is_numeric`` requiring ``attr_is_populated`` first.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, List, Optional

from piqi.model.data import BaseText, CodeableConcept, ObservationValue, ReferenceRange

from .base import SAMContext, SAMHandler, SAMOutcome, SAMTypeError

VALUE_LIST_SAM = "attr_is_in_value_list"
UNIT_OF_MEASURE_SAM = "attr_is_uom"
UNIT_OF_MEASURE_LIST = "UCUM"

DEFAULT_QUALITATIVE_TYPES = "CE|CWE|CD|ST|FT|TX"


def split_values(raw: Optional[str]) -> List[str]:
    """Split a pipe- or comma-delimited list, preferring pipes."""
    if raw is None or not raw.strip():
        return []
    values = raw.split("|")
    if len(values) < 2:
        values = raw.split(",")
    return [v.strip() for v in values if v.strip()]


def _required_parameter(context: SAMContext, name: str) -> str:
    value = context.get_parameter(name)
    if value is None:
        msg = f"[{name}] parameter not found"
        raise ValueError(msg)
    return value


# =============================================================================
# Attribute checks
# =============================================================================


def attr_is_populated(context: SAMContext) -> SAMOutcome:
    data = context.data
    return SAMOutcome.done(data is not None and bool(data.text))


def attr_is_numeric(context: SAMContext) -> SAMOutcome:
    return SAMOutcome.done(context.require_data(BaseText).is_float())


def attr_is_integer(context: SAMContext) -> SAMOutcome:
    return SAMOutcome.done(context.require_data(BaseText).is_int())


def attr_is_decimal(context: SAMContext) -> SAMOutcome:
    text = context.require_data(BaseText).text or ""
    return SAMOutcome.done(re.fullmatch(r"\s*[-+]?(\d+\.?\d*|\.\d+)\s*", text) is not None)


def attr_is_positive_number(context: SAMContext) -> SAMOutcome:
    data = context.require_data(BaseText)
    value = data.float_value()
    if value is None:
        raise SAMTypeError("attr_is_positive_number expects numeric data")
    return SAMOutcome.done(value > 0)


def attr_is_negative_number(context: SAMContext) -> SAMOutcome:
    data = context.require_data(BaseText)
    value = data.float_value()
    if value is None:
        raise SAMTypeError("attr_is_negative_number expects numeric data")
    return SAMOutcome.done(value < 0)


def attr_is_date(context: SAMContext) -> SAMOutcome:
    return SAMOutcome.done(context.require_data(BaseText).is_datetime())


def attr_is_past_date(context: SAMContext) -> SAMOutcome:
    value = context.require_data(BaseText).datetime_value()
    if value is None:
        raise SAMTypeError("attr_is_past_date expects a date value")
    now = datetime.now(value.tzinfo) if value.tzinfo is not None else datetime.now()
    return SAMOutcome.done(value < now)


def attr_matches_regex(context: SAMContext) -> SAMOutcome:
    pattern = _required_parameter(context, "Custom Regular Expression")
    text = context.require_data(BaseText).text or ""
    return SAMOutcome.done(re.search(pattern, text) is not None)


def attr_is_in_list(context: SAMContext) -> SAMOutcome:
    data = context.require_data(BaseText)
    if not data.text:
        return SAMOutcome.done(False)
    allowed = split_values(_required_parameter(context, "LIST_CSV"))
    needle = data.text.strip().casefold()
    return SAMOutcome.done(any(v.casefold() == needle for v in allowed))


def attr_is_in_value_list(context: SAMContext) -> SAMOutcome:
    """Membership in the value list the resolver attached to the context."""
    data = context.require_data(BaseText)
    if context.value_list is None:
        msg = f"{context.sam.mnemonic} needs a value list"
        raise ValueError(msg)
    if not data.text:
        return SAMOutcome.done(False)
    return SAMOutcome.done(context.value_list.contains(data.text))


def attr_indicator_is_true(context: SAMContext) -> SAMOutcome:
    data = context.data
    if data is None or not data.text:
        raise SAMTypeError("Indicator data was unpopulated; check the SAM dependencies")
    return SAMOutcome.done(data.bool_value() is True)


def attr_is_coded(context: SAMContext) -> SAMOutcome:
    return SAMOutcome.done(isinstance(context.data, CodeableConcept))


# =============================================================================
# Codeable concept checks
# =============================================================================


def concept_has_code(context: SAMContext) -> SAMOutcome:
    concept = context.require_data(CodeableConcept)
    return SAMOutcome.done(any(c.has_code for c in concept.codings))


def concept_has_code_system(context: SAMContext) -> SAMOutcome:
    concept = context.require_data(CodeableConcept)
    return SAMOutcome.done(any(c.has_system for c in concept.codings))


def concept_has_display(context: SAMContext) -> SAMOutcome:
    concept = context.require_data(CodeableConcept)
    return SAMOutcome.done(
        (concept.has_text and concept.has_codings)
        or any(c.has_display for c in concept.codings)
    )


def concept_has_recognized_code_system(context: SAMContext) -> SAMOutcome:
    concept = context.require_data(CodeableConcept)
    recognised = any(
        context.bundle.get_code_system(system) is not None
        for coding in concept.codings
        for system in coding.systems
    )
    return SAMOutcome.done(recognised)


def concept_is_complete(context: SAMContext) -> SAMOutcome:
    concept = context.require_data(CodeableConcept)
    return SAMOutcome.done(any(c.is_complete for c in concept.codings))


# =============================================================================
# Observation value and range checks
# =============================================================================


def value_is_qualitative(context: SAMContext) -> SAMOutcome:
    value = context.require_data(ObservationValue)
    allowed = split_values(context.get_parameter("Valid Attribute List", DEFAULT_QUALITATIVE_TYPES))
    code = value.value_type.code if value.value_type is not None else None
    return SAMOutcome.done(
        code is not None and any(v.casefold() == code.casefold() for v in allowed)
    )


def value_matches_type(context: SAMContext) -> SAMOutcome:
    value = context.require_data(ObservationValue)
    value_type = value.value_type
    if value_type is None or value_type.code == "UNK":
        return SAMOutcome.done(False, "Value type is missing or unknown")
    if value_type.is_coded and not value.has_codings:
        return SAMOutcome.done(False, "Coded value type without codings")
    if value_type.is_numeric and value.value_number is None:
        return SAMOutcome.done(False, "Numeric value type without a number")
    if value_type.is_numeric and value_type.is_range and value.value_number2 is None:
        return SAMOutcome.done(False, "Range value type without both bounds")
    return SAMOutcome.done(value.has_text, "Value text is missing")


def value_type_in_list(context: SAMContext) -> SAMOutcome:
    value = context.require_data(ObservationValue)
    allowed = split_values(_required_parameter(context, "Value Type List"))
    code = value.value_type.code if value.value_type is not None else None
    return SAMOutcome.done(
        code is not None and any(v.casefold() == code.casefold() for v in allowed)
    )


def range_value_is_complete(context: SAMContext) -> SAMOutcome:
    return SAMOutcome.done(context.require_data(ReferenceRange).is_complete)


# =============================================================================
# Registry
# =============================================================================


BUILTIN_SAMS: Dict[str, SAMHandler] = {
    "attr_is_populated": attr_is_populated,
    "attr_is_numeric": attr_is_numeric,
    "attr_is_integer": attr_is_integer,
    "attr_is_decimal": attr_is_decimal,
    "attr_is_positive_number": attr_is_positive_number,
    "attr_is_negative_number": attr_is_negative_number,
    "attr_is_date": attr_is_date,
    "attr_is_past_date": attr_is_past_date,
    "attr_matches_regex": attr_matches_regex,
    "attr_is_in_list": attr_is_in_list,
    VALUE_LIST_SAM: attr_is_in_value_list,
    UNIT_OF_MEASURE_SAM: attr_is_in_value_list,
    "attr_indicator_is_true": attr_indicator_is_true,
    "attr_is_coded": attr_is_coded,
    "concept_has_code": concept_has_code,
    "concept_has_code_system": concept_has_code_system,
    "concept_has_display": concept_has_display,
    "concept_has_recognized_code_system": concept_has_recognized_code_system,
    "concept_is_complete": concept_is_complete,
    "value_is_qualitative": value_is_qualitative,
    "value_matches_type": value_matches_type,
    "value_type_in_list": value_type_in_list,
    "range_value_is_complete": range_value_is_complete,
}
