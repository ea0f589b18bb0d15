from .builder import build_message_tree
from .data import BaseText, CodeableConcept, Coding, DataType, ObservationValue, ReferenceRange
from .entities import Entity, EntityModel
from .items import EvaluationItem, EvaluationMessage, MessageHeader
from .reference import (
    CodeListItem,
    CodeSystem,
    CriterionParameter,
    EvaluationCriterion,
    EvaluationRubric,
    ModelReference,
    ReferenceBundle,
    SAMDefinition,
    SAMParameter,
    ValueList,
)
from .results import EvaluationResult

__all__ = [
    "BaseText",
    "CodeListItem",
    "CodeSystem",
    "CodeableConcept",
    "Coding",
    "CriterionParameter",
    "DataType",
    "Entity",
    "EntityModel",
    "EvaluationCriterion",
    "EvaluationItem",
    "EvaluationMessage",
    "EvaluationResult",
    "EvaluationRubric",
    "MessageHeader",
    "ObservationValue",
    "ModelReference",
    "ReferenceBundle",
    "ReferenceRange",
    "SAMDefinition",
    "SAMParameter",
    "ValueList",
    "build_message_tree",
]
