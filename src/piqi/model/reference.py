"""Reference data: rubrics, criteria, SAM definitions and lookup tables.

Everything here is loaded once per request and treated as read-only by the
evaluation engine.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .data import DataType
from .entities import Entity, EntityModel
from .types import EntityDataType, SAMParameterType, ScoringEffect

# =============================================================================
# SAM definitions
# =============================================================================


class SAMParameter(BaseModel):
    """Declared parameter of a SAM definition."""

    model_config = ConfigDict(frozen=True)

    name: str
    parameter_type: SAMParameterType = SAMParameterType.SINGLE
    data_type: Optional[EntityDataType] = None


class SAMDefinition(BaseModel):
    """Named, parameterised assessment method descriptor."""

    model_config = ConfigDict(frozen=True)

    mnemonic: str = Field(description="Dispatch key of the assessment method")
    name: str = Field(description="Display name used in audits and reports")
    description: Optional[str] = Field(default=None)
    prerequisite_sam_mnemonic: Optional[str] = Field(
        default=None,
        description="Single SAM that must pass before this one is meaningful",
    )
    success_alias: Optional[str] = Field(default=None)
    failure_alias: Optional[str] = Field(default=None)
    parameters: List[SAMParameter] = Field(default_factory=list)


# =============================================================================
# Rubric
# =============================================================================


class CriterionParameter(BaseModel):
    """A parameter value bound to a criterion."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: Optional[str] = None
    parameter_type: SAMParameterType = SAMParameterType.SINGLE


class EvaluationCriterion(BaseModel):
    """Rubric rule binding an entity to an assessment method."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(ge=0, description="Execution order within an item")
    description: Optional[str] = Field(default=None)
    entity: str = Field(description="Target entity mnemonic")
    sam_mnemonic: str = Field(description="Primary SAM mnemonic")
    sam_parameters: List[CriterionParameter] = Field(default_factory=list)
    conditional_sam: Optional[str] = Field(
        default=None,
        description="Guard SAM; when it fails the criterion is skipped",
    )
    conditional_sam_parameters: List[CriterionParameter] = Field(default_factory=list)
    scoring_effect: ScoringEffect = ScoringEffect.SCORING
    scoring_weight: int = Field(default=1, ge=0)
    is_critical: bool = Field(default=False)
    processing_url: Optional[str] = Field(default=None)
    sam_name_override: Optional[str] = Field(default=None)
    success_name_override: Optional[str] = Field(default=None)
    failure_name_override: Optional[str] = Field(default=None)

    @property
    def is_scoring(self) -> bool:
        return self.scoring_effect == ScoringEffect.SCORING


class ModelReference(BaseModel):
    """Model a rubric or message declares itself against."""

    model_config = ConfigDict(frozen=True)

    mnemonic: str
    name: Optional[str] = None


class EvaluationRubric(BaseModel):
    model_config = ConfigDict(frozen=True)

    mnemonic: str
    name: str
    description: Optional[str] = None
    version: Optional[str] = None
    model: ModelReference
    criteria: List[EvaluationCriterion] = Field(default_factory=list)


# =============================================================================
# Lookup tables
# =============================================================================


class CodeSystem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    mnemonic: str
    fhir_uri: Optional[str] = None
    identifiers: List[str] = Field(default_factory=list)

    def matches(self, identifier: str) -> bool:
        return identifier in (self.name, self.mnemonic, self.fhir_uri) or (
            identifier in self.identifiers
        )


class CodeListItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    text: Optional[str] = None


class ValueList(BaseModel):
    model_config = ConfigDict(frozen=True)

    mnemonic: str
    items: List[CodeListItem] = Field(default_factory=list)

    def contains(self, value: str) -> bool:
        """Case-insensitive match against codes or display texts."""
        needle = value.strip().casefold()
        return any(
            item.code.casefold() == needle
            or (item.text is not None and item.text.casefold() == needle)
            for item in self.items
        )


# =============================================================================
# Model mnemonics
# =============================================================================

_MODEL_MNEMONIC = re.compile(r"^(.*?)_V(\d+)(?:_(.*))?$")


def parse_model_mnemonic(mnemonic: str) -> tuple[str, int, Optional[str]]:
    """Split ``<base>_V<n>[_<ext>]`` into (base, version, extension).

    Raises:
        ValueError: If the mnemonic does not follow the pattern.
    """
    match = _MODEL_MNEMONIC.match(mnemonic or "")
    if match is None:
        msg = f"Invalid model mnemonic: {mnemonic!r}"
        raise ValueError(msg)
    return match.group(1), int(match.group(2)), match.group(3)


def models_match(message_model: str, rubric_model: str) -> bool:
    """True when both mnemonics share a base name, ignoring case."""
    message_base, _, _ = parse_model_mnemonic(message_model)
    rubric_base, _, _ = parse_model_mnemonic(rubric_model)
    return message_base.casefold() == rubric_base.casefold()


# =============================================================================
# Bundle
# =============================================================================


class ReferenceBundle(BaseModel):
    """Everything one scoring request needs besides the message itself."""

    model_config = ConfigDict(frozen=True)

    entity_model: EntityModel
    rubric: EvaluationRubric
    sams: List[SAMDefinition] = Field(default_factory=list)
    code_systems: List[CodeSystem] = Field(default_factory=list)
    value_lists: List[ValueList] = Field(default_factory=list)
    data_types: List[DataType] = Field(default_factory=list)

    _sam_index: Dict[str, SAMDefinition] = PrivateAttr(default_factory=dict)
    _value_list_index: Dict[str, ValueList] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object) -> None:
        for sam in self.sams:
            self._sam_index.setdefault(sam.mnemonic, sam)
        for value_list in self.value_lists:
            self._value_list_index.setdefault(value_list.mnemonic, value_list)

    def get_sam(self, mnemonic: str) -> Optional[SAMDefinition]:
        return self._sam_index.get(mnemonic)

    def get_entity(self, mnemonic: str) -> Optional[Entity]:
        return self.entity_model.get(mnemonic)

    def get_entity_class(self, mnemonic: str) -> Optional[Entity]:
        return self.entity_model.class_of(mnemonic)

    def get_code_system(self, identifier: Optional[str]) -> Optional[CodeSystem]:
        if not identifier:
            return None
        return next((cs for cs in self.code_systems if cs.matches(identifier)), None)

    def get_value_list(self, mnemonic: str) -> Optional[ValueList]:
        return self._value_list_index.get(mnemonic)
