"""Typed attribute data attached to evaluation items.

Every attribute value in a message is parsed into one of these shapes
depending on the entity's data-type tag. Parsing is lenient: a value that
cannot be interpreted keeps its text and leaves the derived fields empty,
so assessment methods can judge it.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, Field

from piqi.errors import MessageFormatError

from .types import ConceptState

_TRUE_TEXT = {"1", "TRUE", "T", "YES", "Y"}
_FALSE_TEXT = {"0", "FALSE", "F", "NO", "N"}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%Y%m%d",
    "%Y%m%d%H%M%S",
    "%Y%m%d%H%M",
)

_DATE_PATTERNS = [
    re.compile(r"^(0?[1-9]|1[0-2])[- /.](0?[1-9]|[12][0-9]|3[01])[- /.](\d{4})$"),
    re.compile(r"^\d{8}(0[0-9]|1[0-9]|2[0-3])([0-5][0-9]){2}$"),
    re.compile(
        r"^\d{8}(0[0-9]|1[0-9]|2[0-3])([0-5][0-9]){2}-((0[0-9]|1[0-9]|2[0-3])([0-5][0-9]){2})$"
    ),
    re.compile(r"^((19|20)\d{2})(0[1-9]|1[0-2])(0[1-9]|[12]\d|3[01])([01]\d|2[0-3])([0-5]\d)$"),
]


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _first_string(node: dict, *names: str) -> Optional[str]:
    for name in names:
        value = node.get(name)
        if value is not None:
            return str(value)
    return None


def _parse_float(text: Optional[str]) -> Optional[float]:
    if _blank(text):
        return None
    try:
        return float(text)
    except ValueError:
        return None


class DataType(BaseModel):
    """Observation value type from the data type library (e.g. NM, CE, SN)."""

    code: str = Field(description="Type code, e.g. NM")
    name: str = Field(default="", description="Display name of the type")
    is_coded: bool = Field(default=False)
    is_numeric: bool = Field(default=False)
    is_range: bool = Field(default=False)


class BaseText(BaseModel):
    """Plain text attribute with lenient conversion helpers."""

    text: Optional[str] = Field(default=None, description="Raw text value")

    def __str__(self) -> str:
        return self.text or ""

    @property
    def has_text(self) -> bool:
        return not _blank(self.text)

    def int_value(self) -> Optional[int]:
        if _blank(self.text):
            return None
        try:
            return int(self.text.strip())
        except ValueError:
            return None

    def is_int(self) -> bool:
        return self.int_value() is not None

    def float_value(self) -> Optional[float]:
        return _parse_float(self.text)

    def is_float(self) -> bool:
        return self.float_value() is not None

    def datetime_value(self) -> Optional[datetime]:
        if _blank(self.text):
            return None
        raw = self.text.strip()
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(raw, fmt)
            except ValueError:
                continue
        return None

    def is_datetime(self) -> bool:
        if self.datetime_value() is not None:
            return True
        if _blank(self.text):
            return False
        return any(pattern.match(self.text.strip()) for pattern in _DATE_PATTERNS)

    def bool_value(self) -> Optional[bool]:
        if _blank(self.text):
            return None
        upper = self.text.strip().upper()
        if upper in _TRUE_TEXT:
            return True
        if upper in _FALSE_TEXT:
            return False
        return None

    @classmethod
    def from_json(cls, node: Any) -> "BaseText":
        if isinstance(node, dict):
            return cls(text=_first_string(node, "text", "Text"))
        return cls(text=None if node is None else str(node))


class Coding(BaseModel):
    """One code from a code system, as carried in a codeable concept."""

    systems: List[str] = Field(
        default_factory=list,
        description="All system identifiers supplied (system, system-id)",
    )
    system: Optional[str] = Field(default=None, description="First non-blank system")
    code: Optional[str] = Field(default=None)
    display: Optional[str] = Field(default=None)

    @property
    def has_system(self) -> bool:
        return not _blank(self.system)

    @property
    def has_code(self) -> bool:
        return not _blank(self.code)

    @property
    def has_display(self) -> bool:
        return not _blank(self.display)

    @property
    def is_complete(self) -> bool:
        return self.has_system and self.has_code and self.has_display

    @classmethod
    def from_json(cls, node: dict) -> "Coding":
        systems = [
            str(node[name])
            for name in ("system", "system-id")
            if node.get(name) is not None
        ]
        system = next((s for s in systems if not _blank(s)), None)
        return cls(
            systems=systems,
            system=system,
            code=_first_string(node, "code"),
            display=_first_string(node, "display"),
        )


class CodeableConcept(BaseText):
    """Text plus zero or more codings."""

    codings: List[Coding] = Field(default_factory=list)

    @property
    def has_codings(self) -> bool:
        return len(self.codings) > 0

    @property
    def concept_state(self) -> ConceptState:
        if self.has_text and self.has_codings:
            return ConceptState.BOTH
        if self.has_text:
            return ConceptState.TEXT_ONLY
        if self.has_codings:
            return ConceptState.CONCEPTS_ONLY
        return ConceptState.NONE

    def _backfill_display(self) -> None:
        # Text falls back to the first coding display; blank displays take the text.
        if not self.text and self.codings:
            first = next((c.display for c in self.codings if c.display), None)
            if first:
                self.text = first
        if self.text:
            for coding in self.codings:
                if not coding.display:
                    coding.display = self.text

    @classmethod
    def from_json(cls, node: Any) -> "CodeableConcept":
        if not isinstance(node, dict):
            return cls(text=None if node is None else str(node))
        if "text" not in node and "codings" not in node:
            first = next(iter(node.values()), None)
            return cls(text=None if first is None else str(first))
        codings = node.get("codings") or []
        if not isinstance(codings, list):
            msg = f"Concept codings must be a list, got {type(codings).__name__}"
            raise MessageFormatError(msg)
        concept = cls(
            text=_first_string(node, "text"),
            codings=[Coding.from_json(c) for c in codings if isinstance(c, dict)],
        )
        concept._backfill_display()
        return concept


class ObservationValue(CodeableConcept):
    """Observation result: a concept with a declared value type and numbers."""

    type_concept: Optional[CodeableConcept] = Field(
        default=None,
        description="Coded type as supplied in the message",
    )
    value_type: Optional[DataType] = Field(
        default=None,
        description="Resolved data type; ST when the message does not say",
    )
    value_number: Optional[float] = Field(default=None)
    value_number2: Optional[float] = Field(
        default=None,
        description="Upper bound for range types (text 'low^high')",
    )

    @classmethod
    def from_json(  # type: ignore[override]
        cls, node: Any, data_types: Sequence[DataType] = ()
    ) -> "ObservationValue":
        if isinstance(node, dict) and ("text" in node or "codings" in node):
            concept = CodeableConcept.from_json(node)
            value = cls(text=concept.text, codings=concept.codings)
        elif isinstance(node, dict):
            value = cls(text=_first_string(node, "value"))
        else:
            value = cls(text=None if node is None else str(node))

        if isinstance(node, dict) and node.get("type") is not None:
            value.type_concept = CodeableConcept.from_json(node["type"])

        if value.type_concept is not None:
            value.value_type = next(
                (dt for dt in data_types if dt.code == value.type_concept.text),
                None,
            )
        if value.value_type is None:
            value.value_type = next((dt for dt in data_types if dt.code == "ST"), None)

        if value.value_type is not None and value.value_type.is_numeric:
            if value.value_type.is_range:
                bits = (value.text or "").split("^")
                value.value_number = _parse_float(bits[0])
                if len(bits) > 1:
                    value.value_number2 = _parse_float(bits[1])
            else:
                value.value_number = _parse_float(value.text)
        return value


class ReferenceRange(BaseText):
    """Reference range with optional low and high bounds."""

    low_value: Optional[str] = Field(default=None)
    high_value: Optional[str] = Field(default=None)

    @property
    def has_low(self) -> bool:
        return not _blank(self.low_value)

    @property
    def has_high(self) -> bool:
        return not _blank(self.high_value)

    @property
    def is_complete(self) -> bool:
        return self.has_low and self.has_high

    @classmethod
    def from_json(cls, node: Any) -> "ReferenceRange":
        if not isinstance(node, dict):
            return cls(text=None if node is None else str(node))
        return cls(
            text=_first_string(node, "text", "Text"),
            low_value=_first_string(node, "lowValue", "LowValue"),
            high_value=_first_string(node, "highValue", "HighValue"),
        )
