from __future__ import annotations

from piqi.evaluation.context import RequestContext
from piqi.evaluation.orchestrator import EvaluationOrchestrator
from piqi.model.builder import build_message_tree
from piqi.model.types import ScoringEffect
from piqi.sams.registry import SAMRegistry
from piqi.statistics.aggregator import StatisticsAggregator
from piqi.statistics.models import MessageStatistics, ScoreCounters, calculate_score
from piqi.statistics.report import build_score_report

ELEMENT_ONE = "PAT|LAB|LAB_ELM.1"
ELEMENT_TWO = "PAT|LAB|LAB_ELM.2"


def _aggregate(bundle, payload) -> MessageStatistics:
    message = build_message_tree(payload, bundle.entity_model, bundle.data_types)
    EvaluationOrchestrator(RequestContext.create(bundle, SAMRegistry.with_builtins())).evaluate(
        message
    )
    return StatisticsAggregator(bundle).aggregate(message)


def test_calculate_score_truncates_and_handles_zero() -> None:
    assert calculate_score(1, 3) == 33
    assert calculate_score(2, 3) == 66
    assert calculate_score(3, 3) == 100
    assert calculate_score(0, 0) == 0


def test_single_passing_criterion_scores_full(payload, bundle_factory, criterion_factory) -> None:
    bundle = bundle_factory([criterion_factory(1, "LAB_UNIT", "attr_is_populated")])

    stats = _aggregate(bundle, payload)

    element = stats.elements[ELEMENT_ONE]
    assert element.numerator == 1
    assert element.denominator == 1
    assert element.score == 100
    assert stats.message.score == 100


def test_weighted_and_critical_failure(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_UNIT", "attr_is_date", scoring_weight=1, is_critical=True),
        criterion_factory(2, "LAB_UNIT", "attr_is_populated", scoring_weight=3),
    ]
    bundle = bundle_factory(criteria)

    stats = _aggregate(bundle, payload)

    element = stats.elements[ELEMENT_ONE]
    assert element.weighted_denominator == 4
    assert element.weighted_numerator == 3
    assert element.weighted_score == 75
    assert element.critical_failure_count == 1
    assert element.numerator == 1
    assert element.denominator == 2

    labs = stats.classes["LAB"]
    assert labs.weighted_score == 75
    assert labs.critical_failure_count == 2
    assert labs.element_count == 2
    assert labs.clean_count == 0

    assert len(stats.critical_failures) == 1
    entry = next(iter(stats.critical_failures.values()))
    assert entry.failed_count == 2
    assert entry.fail_sam_mnemonic == "attr_is_date"


def test_rollups_sum_exactly(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_TEST", "concept_is_complete", scoring_weight=2),
        criterion_factory(1, "LAB_VALUE", "attr_is_numeric"),
        criterion_factory(1, "LAB_RANGE", "range_value_is_complete", is_critical=True),
        criterion_factory(1, "LAB_UNIT", "attr_is_uom"),
        criterion_factory(1, "DEMO_GENDER", "concept_has_code"),
        criterion_factory(1, "LAB", "attr_is_populated"),
    ]
    bundle = bundle_factory(criteria)

    stats = _aggregate(bundle, payload)

    for element in stats.elements.values():
        totals = ScoreCounters()
        for attribute in element.attributes.values():
            totals.absorb(attribute)
        assert element.numerator == totals.numerator
        assert element.denominator == totals.denominator
        assert element.weighted_numerator == totals.weighted_numerator
        assert element.critical_failure_count == totals.critical_failure_count

    for class_stats in stats.classes.values():
        elements = stats.elements_of(class_stats.class_mnemonic)
        assert class_stats.numerator == sum(e.numerator for e in elements)
        assert class_stats.denominator == sum(e.denominator for e in elements)
        assert class_stats.weighted_denominator == sum(e.weighted_denominator for e in elements)

    # The class-level criterion counts toward the message but not the class.
    class_total = sum(c.denominator for c in stats.classes.values())
    assert stats.message.denominator == class_total + 1


def test_no_scoring_results_scores_zero(payload, bundle_factory) -> None:
    bundle = bundle_factory([])

    stats = _aggregate(bundle, payload)

    assert stats.message.denominator == 0
    assert stats.message.score == 0
    assert {m: c.element_count for m, c in stats.classes.items()} == {
        "DEMO": 1,
        "LAB": 2,
        "MED": 0,
    }


def test_skipped_results_count_toward_totals_only(payload, bundle_factory, criterion_factory) -> None:
    criterion = criterion_factory(1, "LAB_UNIT", "attr_is_populated", conditional_sam="attr_is_date")
    bundle = bundle_factory([criterion])

    stats = _aggregate(bundle, payload)

    assert stats.message.total_count == 2
    assert stats.message.skip_count == 2
    assert stats.message.denominator == 0
    skip = stats.skips["LAB_UNIT|attr_is_populated|attr_is_date"]
    assert skip.skip_count == 2


def test_critical_informational_failure_is_indexed_but_not_counted(payload, bundle_factory, criterion_factory) -> None:
    criterion = criterion_factory(
        1,
        "LAB_UNIT",
        "attr_is_date",
        scoring_effect=ScoringEffect.INFORMATIONAL,
        is_critical=True,
    )
    bundle = bundle_factory([criterion])

    stats = _aggregate(bundle, payload)

    assert stats.message.critical_failure_count == 0
    assert stats.message.fail_count == 0
    assert stats.message.denominator == 0
    assert stats.message.info_processed_count == 2
    assert list(stats.critical_failures) == ["LAB_UNIT|attr_is_date|attr_is_date"]
    assert stats.critical_failures["LAB_UNIT|attr_is_date|attr_is_date"].failed_count == 2
    assert stats.info_failed_count == 2

    tally = stats.informational["LAB_UNIT|attr_is_date"]
    assert tally.failed_count == 2
    assert tally.class_mnemonic == "LAB"
    assert "LAB_UNIT|attr_is_date|attr_is_date" in stats.fails


def test_score_report_lists_every_class(payload, bundle_factory, criterion_factory) -> None:
    criteria = [
        criterion_factory(1, "LAB_UNIT", "attr_is_uom"),
        criterion_factory(
            2,
            "LAB_TEST",
            "concept_has_code",
            scoring_effect=ScoringEffect.INFORMATIONAL,
            sam_name_override="Test is coded",
        ),
    ]
    bundle = bundle_factory(criteria)
    message = build_message_tree(payload, bundle.entity_model, bundle.data_types)
    EvaluationOrchestrator(RequestContext.create(bundle, SAMRegistry.with_builtins())).evaluate(
        message
    )
    stats = StatisticsAggregator(bundle).aggregate(message)

    report = build_score_report(stats, bundle, message.header)

    assert report.message_id == "message-1"
    assert report.evaluation_rubric == "Lab rubric"
    assert report.message_results.numerator == 1
    assert report.message_results.denominator == 2
    assert report.message_results.score == 50
    assert [c.data_class_name for c in report.data_class_results] == [
        "demographics",
        "labResults",
        "medications",
    ]
    assert [c.instance_count for c in report.data_class_results] == [1, 2, 0]

    assert len(report.informational_results) == 1
    informational = report.informational_results[0]
    assert informational.data_class_name == "labResults"
    evaluation = informational.evaluations[0]
    assert evaluation.evaluation_name == "Test is coded"
    assert evaluation.instance_count == 2
    assert evaluation.numerator == 1
    assert evaluation.denominator == 2
