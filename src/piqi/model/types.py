from __future__ import annotations

from enum import Enum


class EntityDataType(str, Enum):
    """Data-type tag carried by every entity of the message schema.

    The first three values describe structural levels; everything after
    ELEMENT is an attribute data type.
    """

    ROOT = "ROOT"
    CLASS = "CLS"
    ELEMENT = "ELM"
    REFERENCE_RANGE = "RV"  # Low/high reference range
    OBSERVATION_VALUE = "OBSVAL"  # Typed observation result
    CODEABLE_CONCEPT = "CC"  # Text plus codings
    TEXT = "ATR"  # Plain text attribute

    @property
    def is_attribute(self) -> bool:
        return self not in (
            EntityDataType.ROOT,
            EntityDataType.CLASS,
            EntityDataType.ELEMENT,
        )


class Cardinality(str, Enum):
    """How many elements a class may hold in a message."""

    ONE = "One"
    ZERO_TO_MANY = "ZeroToMany"
    ONE_TO_MANY = "OneToMany"


class ItemType(str, Enum):
    """Level of an evaluation item in the evaluation tree."""

    ROOT = "Root"
    CLASS = "Class"
    ELEMENT = "Element"
    ATTRIBUTE = "Attribute"


class ProcessState(str, Enum):
    """Processing state of an evaluation result.

    PENDING is the only non-terminal state.
    """

    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class SAMResultState(str, Enum):
    """Outcome reported by a single SAM implementation."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    SKIPPED = "Skipped"
    ERRORED = "Errored"


class ScoringEffect(str, Enum):
    """Whether a criterion contributes to the score or is only reported."""

    SCORING = "Scoring"
    INFORMATIONAL = "Informational"


class SAMParameterType(str, Enum):
    """Declared shape of a SAM parameter value."""

    CSV = "CSV"
    REGEX = "Regex"
    SINGLE = "Single"
    OBJECT = "Object"  # JSON object expanded into one parameter per property
    OBJECTS = "Objects"


class ConceptState(str, Enum):
    """What a codeable concept actually carries."""

    NONE = "None"
    TEXT_ONLY = "TextOnly"
    CONCEPTS_ONLY = "ConceptsOnly"
    BOTH = "Both"
