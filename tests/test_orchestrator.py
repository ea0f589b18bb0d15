from __future__ import annotations

from typing import List

import pytest

from piqi.errors import ConfigurationError
from piqi.evaluation.context import RequestContext
from piqi.evaluation.orchestrator import EvaluationOrchestrator
from piqi.model.builder import build_message_tree
from piqi.model.types import ProcessState
from piqi.sams.registry import SAMRegistry


def _evaluate(bundle, payload):
    message = build_message_tree(payload, bundle.entity_model, bundle.data_types)
    orchestrator = EvaluationOrchestrator(
        RequestContext.create(bundle, SAMRegistry.with_builtins())
    )
    return message, orchestrator, orchestrator.evaluate(message)


def test_walk_order_is_deterministic(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(2, "LAB_UNIT", "attr_is_uom"),
        criterion_factory(1, "LAB_TEST", "concept_has_code"),
        criterion_factory(1, "LAB_VALUE", "attr_is_numeric"),
        criterion_factory(1, "DEMO_BIRTH", "attr_is_date"),
        criterion_factory(1, "LAB_UNIT", "attr_is_populated"),
    ]
    bundle = bundle_factory(criteria)

    _, _, primaries = _evaluate(bundle, payload)

    order: List[str] = [f"{r.item_key}:{r.sam_mnemonic}" for r in primaries]
    assert order == [
        "PAT|DEMO|DEMO_ELM.1|DEMO_BIRTH:attr_is_date",
        "PAT|LAB|LAB_ELM.1|LAB_VALUE:attr_is_numeric",
        "PAT|LAB|LAB_ELM.1|LAB_TEST:concept_has_code",
        "PAT|LAB|LAB_ELM.1|LAB_UNIT:attr_is_populated",
        "PAT|LAB|LAB_ELM.1|LAB_UNIT:attr_is_uom",
        "PAT|LAB|LAB_ELM.2|LAB_VALUE:attr_is_numeric",
        "PAT|LAB|LAB_ELM.2|LAB_TEST:concept_has_code",
        "PAT|LAB|LAB_ELM.2|LAB_UNIT:attr_is_populated",
        "PAT|LAB|LAB_ELM.2|LAB_UNIT:attr_is_uom",
    ]


def test_class_and_root_criteria_run_after_children(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "PAT", "attr_is_populated"),
        criterion_factory(1, "LAB", "attr_is_populated"),
        criterion_factory(1, "LAB_UNIT", "attr_is_populated"),
    ]
    bundle = bundle_factory(criteria)

    _, _, primaries = _evaluate(bundle, payload)

    assert [r.item_key for r in primaries] == [
        "PAT|LAB|LAB_ELM.1|LAB_UNIT",
        "PAT|LAB|LAB_ELM.2|LAB_UNIT",
        "PAT|LAB",
        "PAT",
    ]


def test_every_result_reaches_a_terminal_state(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_RANGE", "range_value_is_complete"),
        criterion_factory(2, "LAB_TEST", "concept_is_complete"),
        criterion_factory(3, "LAB_VALUE", "attr_is_numeric"),
    ]
    bundle = bundle_factory(criteria)

    message, _, _ = _evaluate(bundle, payload)

    results = [r for item in message.items() for r in item.results]
    assert results
    assert all(r.state != ProcessState.PENDING for r in results)

    missing_range = message.find("PAT|LAB|LAB_ELM.2|LAB_RANGE").primary_results()[0]
    assert missing_range.state == ProcessState.FAILED
    assert missing_range.failing_sam_mnemonic == "attr_is_populated"


def test_reevaluation_is_idempotent(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_TEST", "concept_is_complete"),
        criterion_factory(2, "LAB_UNIT", "attr_is_uom"),
    ]
    bundle = bundle_factory(criteria)
    message, orchestrator, first = _evaluate(bundle, payload)
    first_states = [(r.item_key, r.sam_mnemonic, r.state) for r in first]
    first_counts = {item.key: len(item.results) for item in message.items()}

    second = orchestrator.evaluate(message)

    assert [(r.item_key, r.sam_mnemonic, r.state) for r in second] == first_states
    assert {item.key: len(item.results) for item in message.items()} == first_counts


def test_duplicate_criterion_on_item_is_rejected(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_UNIT", "attr_is_populated"),
        criterion_factory(1, "LAB_UNIT", "attr_is_populated"),
    ]
    bundle = bundle_factory(criteria)

    with pytest.raises(ConfigurationError, match="more than once"):
        _evaluate(bundle, payload)


def test_unknown_criterion_entity_is_rejected(bundle_factory, criterion_factory) -> None:
    bundle = bundle_factory([criterion_factory(1, "NOPE", "attr_is_populated")])

    with pytest.raises(ConfigurationError, match="NOPE"):
        RequestContext.create(bundle, SAMRegistry.with_builtins())
