from __future__ import annotations

import logging
from typing import Iterable

from piqi.model.items import EvaluationItem, EvaluationMessage
from piqi.model.reference import ReferenceBundle
from piqi.model.results import EvaluationResult
from piqi.model.types import ItemType, ProcessState

from .models import (
    AttributeStats,
    ClassStats,
    CriticalFailureEntry,
    ElementStats,
    FailEntry,
    InformationalTally,
    MessageStatistics,
    SkipEntry,
)

logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """Folds primary evaluation results into message, class, element and
    attribute rollups plus the skip, fail, critical-failure and
    informational indexes.

    Attribute results roll up into their element and class. Results on
    root, class or element items count at message level only, so every
    element stays the sum of its attributes and every class the sum of its
    elements.
    """

    def __init__(self, bundle: ReferenceBundle) -> None:
        self._bundle = bundle

    def aggregate(self, message: EvaluationMessage) -> MessageStatistics:
        stats = MessageStatistics()

        for class_item in message.class_items():
            for element_item in class_item.ordered_children():
                stats.elements[element_item.key] = self._element_stats(class_item, element_item)

        for item in message.items():
            self._fold(stats, item, item.primary_results())

        for element in stats.elements.values():
            element.recalculate()

        for class_entity in self._bundle.entity_model.classes:
            class_stats = ClassStats(
                class_mnemonic=class_entity.mnemonic,
                class_name=class_entity.display_name,
            )
            class_stats.calculate(stats.elements_of(class_entity.mnemonic))
            stats.classes[class_entity.mnemonic] = class_stats

        logger.debug(
            f"Aggregated {stats.message.total_count} results: "
            f"{stats.message.numerator}/{stats.message.denominator}"
        )
        return stats

    def _element_stats(self, class_item: EvaluationItem, element_item: EvaluationItem) -> ElementStats:
        element = ElementStats(
            item_key=element_item.key,
            class_mnemonic=class_item.mnemonic,
            element_mnemonic=element_item.mnemonic,
            sequence=element_item.element_sequence or 1,
        )
        for attribute_item in element_item.ordered_children():
            element.attributes[attribute_item.key] = AttributeStats(
                item_key=attribute_item.key,
                entity_mnemonic=attribute_item.mnemonic,
                class_mnemonic=class_item.mnemonic,
                element_sequence=element.sequence,
            )
        return element

    def _fold(
        self,
        stats: MessageStatistics,
        item: EvaluationItem,
        results: Iterable[EvaluationResult],
    ) -> None:
        for result in results:
            stats.message.add(result)
            if item.item_type == ItemType.ATTRIBUTE:
                attribute = self._attribute_for(stats, item)
                attribute.add(result)

            if not result.is_scoring:
                self._tally_informational(stats, item, result)

            if result.state == ProcessState.SKIPPED:
                key = f"{result.entity_mnemonic}|{result.sam_mnemonic}|{result.skip_cause}"
                skip = stats.skips.get(key)
                if skip is None:
                    skip = SkipEntry(
                        key=key,
                        entity_mnemonic=result.entity_mnemonic,
                        sam_mnemonic=result.sam_mnemonic,
                        skip_cause=result.skip_cause,
                        is_scoring=result.is_scoring,
                    )
                    stats.skips[key] = skip
                skip.skip_count += 1
            elif result.state == ProcessState.FAILED:
                self._record_failure(stats, result)

    def _attribute_for(self, stats: MessageStatistics, item: EvaluationItem) -> AttributeStats:
        element_key = item.key.rsplit("|", 1)[0]
        return stats.elements[element_key].attributes[item.key]

    def _record_failure(self, stats: MessageStatistics, result: EvaluationResult) -> None:
        key = f"{result.entity_mnemonic}|{result.sam_mnemonic}|{result.failing_sam_mnemonic}"
        fail = stats.fails.get(key)
        if fail is None:
            fail = FailEntry(
                key=key,
                entity_mnemonic=result.entity_mnemonic,
                sam_mnemonic=result.sam_mnemonic,
                fail_sam_mnemonic=result.failing_sam_mnemonic,
                is_scoring=result.is_scoring,
                is_critical=result.is_critical,
            )
            stats.fails[key] = fail
        fail.fail_count += 1

        # Indexed whenever flagged; only scoring failures reach the critical counters.
        if not result.is_critical:
            return
        critical = stats.critical_failures.get(key)
        if critical is None:
            critical = CriticalFailureEntry(
                key=key,
                entity_mnemonic=result.entity_mnemonic,
                sam_mnemonic=result.sam_mnemonic,
                fail_sam_mnemonic=result.failing_sam_mnemonic,
                weight=result.weight,
            )
            stats.critical_failures[key] = critical
        critical.increment(result.state)

    def _tally_informational(
        self,
        stats: MessageStatistics,
        item: EvaluationItem,
        result: EvaluationResult,
    ) -> None:
        key = f"{result.entity_mnemonic}|{result.sam_mnemonic}"
        tally = stats.informational.get(key)
        if tally is None:
            tally = InformationalTally(
                key=key,
                class_mnemonic=result.class_mnemonic,
                entity_mnemonic=result.entity_mnemonic,
                entity_name=item.entity.name,
                sam_mnemonic=result.sam_mnemonic,
                evaluation_name=result.display_name,
                is_critical=result.is_critical,
                weight=result.weight,
            )
            stats.informational[key] = tally
        tally.increment(result.state)
        if result.state == ProcessState.PASSED:
            stats.info_passed_count += 1
        elif result.state == ProcessState.FAILED:
            stats.info_failed_count += 1
