"""Audited message: the evaluated tree annotated with per-level scores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from piqi.model.data import BaseText, CodeableConcept, ObservationValue, ReferenceRange
from piqi.model.entities import Entity
from piqi.model.items import EvaluationItem, EvaluationMessage
from piqi.model.reference import ReferenceBundle
from piqi.model.results import EvaluationResult
from piqi.model.types import Cardinality
from piqi.statistics.models import MessageStatistics, ScoreCounters


def _concept_node(concept: CodeableConcept) -> Dict[str, Any]:
    return {
        "text": concept.text,
        "codings": [
            {"system": c.system, "code": c.code, "display": c.display}
            for c in concept.codings
        ],
    }


def data_node(data: Optional[BaseText]) -> Any:
    """JSON form of attribute data as echoed in the audited message."""
    if data is None:
        return None
    if isinstance(data, ObservationValue):
        node = _concept_node(data)
        node["type"] = data.value_type.code if data.value_type is not None else None
        return node
    if isinstance(data, CodeableConcept):
        return _concept_node(data)
    if isinstance(data, ReferenceRange):
        return {
            "text": data.text,
            "lowValue": data.low_value,
            "highValue": data.high_value,
        }
    return data.text or ""


def _score_block(prefix: str, counters: Optional[ScoreCounters]) -> Dict[str, int]:
    counters = counters or ScoreCounters()
    return {
        f"{prefix}Score": counters.score,
        f"{prefix}ScoreWeighted": counters.weighted_score,
        f"{prefix}CriticalFailureCount": counters.critical_failure_count,
        f"{prefix}Numerator": counters.numerator,
        f"{prefix}Denominator": counters.denominator,
        f"{prefix}WeightedNumerator": counters.weighted_numerator,
        f"{prefix}WeightedDenominator": counters.weighted_denominator,
    }


def _assessment(result: EvaluationResult, entity: Entity) -> Dict[str, Any]:
    return {
        "attributeMnemonic": entity.mnemonic,
        "attributeName": entity.display_name,
        "assessment": result.display_name,
        "effect": result.scoring_effect.value,
        "status": result.state.value,
        "reason": result.reason or result.skip_cause or "",
    }


@dataclass(frozen=True, slots=True)
class AuditRenderer:
    """Renders the audited message returned when a caller asks for audit.

    Classes and attributes appear in display-name order, elements in
    sequence order. Model classes or attributes missing from the message
    still appear, with empty data.
    """

    def render(
        self,
        message: EvaluationMessage,
        stats: MessageStatistics,
        bundle: ReferenceBundle,
    ) -> Dict[str, Any]:
        header = message.header
        document: Dict[str, Any] = {
            "EntityModelMnemonic": header.model_mnemonic or bundle.entity_model.mnemonic,
            "DataProviderID": header.data_provider_id,
            "DataSourceID": header.data_source_id,
            "MessageID": header.message_id,
        }
        audit = _score_block("message", stats.message)
        audit["evaluationRubric"] = bundle.rubric.name or bundle.rubric.mnemonic
        audit["assessmentItems"] = self._item_assessments(message)
        document["Audit"] = audit

        root = message.root
        root_node: Dict[str, Any] = {}
        for class_entity in sorted(root.entity.children, key=lambda e: e.display_name):
            class_item = root.children.get(class_entity.mnemonic)
            root_node[class_entity.display_name] = self._class_node(class_entity, class_item, stats)
        document[root.entity.payload_key] = root_node
        return document

    def _item_assessments(self, message: EvaluationMessage) -> List[Dict[str, Any]]:
        # Root, class and element results have no attribute to hang off.
        assessments: List[Dict[str, Any]] = []
        for item in message.items():
            if item.entity.data_type.is_attribute:
                continue
            for result in item.primary_results():
                entry = _assessment(result, item.entity)
                entry["itemKey"] = item.key
                assessments.append(entry)
        return assessments

    def _class_node(
        self,
        class_entity: Entity,
        class_item: Optional[EvaluationItem],
        stats: MessageStatistics,
    ) -> Any:
        elements: List[Dict[str, Any]] = []
        if class_item is not None:
            for element_item in class_item.ordered_children():
                elements.append(self._element_node(element_item, stats))
        if class_entity.cardinality == Cardinality.ONE:
            return elements[0] if elements else {}
        return elements

    def _element_node(self, element_item: EvaluationItem, stats: MessageStatistics) -> Dict[str, Any]:
        node: Dict[str, Any] = {}
        element_stats = stats.elements.get(element_item.key)
        for attribute_entity in sorted(
            element_item.entity.children, key=lambda e: (e.display_name, e.mnemonic)
        ):
            attribute_item = next(
                (c for c in element_item.children.values() if c.mnemonic == attribute_entity.mnemonic),
                None,
            )
            node[attribute_entity.display_name] = self._attribute_node(
                attribute_entity, attribute_item, stats
            )
        node["elementAudit"] = _score_block("element", element_stats)
        return node

    def _attribute_node(
        self,
        entity: Entity,
        item: Optional[EvaluationItem],
        stats: MessageStatistics,
    ) -> Dict[str, Any]:
        counters = stats.attribute(item.key) if item is not None else None
        results = item.primary_results() if item is not None else []
        return {
            "data": data_node(item.data) if item is not None else None,
            "attributeAudit": {
                "scoringData": _score_block("attribute", counters),
                "assessmentItems": [_assessment(r, entity) for r in results if r.is_scoring],
                "InformationalItems": [_assessment(r, entity) for r in results if not r.is_scoring],
            },
        }
