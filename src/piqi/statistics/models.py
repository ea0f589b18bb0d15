"""Counters and indexes produced by folding evaluation results."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from pydantic import BaseModel, Field

from piqi.model.results import EvaluationResult
from piqi.model.types import ProcessState


def calculate_score(numerator: int, denominator: int) -> int:
    """Truncated percentage; 0 when there is nothing to score."""
    if denominator <= 0:
        return 0
    return numerator * 100 // denominator


# =============================================================================
# Rollup counters
# =============================================================================


class ScoreCounters(BaseModel):
    """Counters shared by every rollup level.

    ``pass_count`` is the numerator and ``scoring_processed_count`` the
    denominator. Skipped results count toward totals only. Informational
    results are processed but never reach a numerator or denominator.
    """

    total_count: int = Field(default=0, ge=0)
    skip_count: int = Field(default=0, ge=0)
    processed_count: int = Field(default=0, ge=0)
    scoring_processed_count: int = Field(default=0, ge=0)
    info_processed_count: int = Field(default=0, ge=0)
    pass_count: int = Field(default=0, ge=0)
    fail_count: int = Field(default=0, ge=0)
    critical_failure_count: int = Field(default=0, ge=0)
    weighted_total: int = Field(default=0, ge=0)
    weighted_denominator: int = Field(default=0, ge=0)
    weighted_numerator: int = Field(default=0, ge=0)

    @property
    def numerator(self) -> int:
        return self.pass_count

    @property
    def denominator(self) -> int:
        return self.scoring_processed_count

    @property
    def score(self) -> int:
        return calculate_score(self.numerator, self.denominator)

    @property
    def weighted_score(self) -> int:
        return calculate_score(self.weighted_numerator, self.weighted_denominator)

    @property
    def is_clean(self) -> bool:
        return self.fail_count < 1

    def add(self, result: EvaluationResult) -> None:
        """Fold one primary result into these counters."""
        self.total_count += 1
        if result.is_scoring:
            self.weighted_total += result.weight

        if result.state == ProcessState.SKIPPED:
            self.skip_count += 1
            return

        self.processed_count += 1
        if not result.is_scoring:
            self.info_processed_count += 1
            return

        self.scoring_processed_count += 1
        self.weighted_denominator += result.weight
        if result.state == ProcessState.PASSED:
            self.pass_count += 1
            self.weighted_numerator += result.weight
        else:
            self.fail_count += 1
            if result.is_critical:
                self.critical_failure_count += 1

    def absorb(self, other: "ScoreCounters") -> None:
        """Add every counter of ``other`` into this one."""
        for name in ScoreCounters.model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))


class AttributeStats(ScoreCounters):
    item_key: str
    entity_mnemonic: str
    class_mnemonic: str
    element_sequence: int = Field(ge=1)


class ElementStats(ScoreCounters):
    item_key: str
    class_mnemonic: str
    element_mnemonic: str
    sequence: int = Field(ge=1)
    attributes: Dict[str, AttributeStats] = Field(
        default_factory=dict,
        description="Attribute rollups keyed by item key",
    )

    def recalculate(self) -> None:
        """Reset the counters to the sum of the attribute rollups."""
        totals = ScoreCounters()
        for attribute in self.attributes.values():
            totals.absorb(attribute)
        for name in ScoreCounters.model_fields:
            setattr(self, name, getattr(totals, name))


class ClassStats(ScoreCounters):
    class_mnemonic: str
    class_name: str
    element_count: int = Field(default=0, ge=0)
    clean_count: int = Field(default=0, ge=0)

    def calculate(self, elements: Iterable[ElementStats]) -> None:
        """Reset the counters to the sum over ``elements``."""
        totals = ScoreCounters()
        element_count = 0
        clean_count = 0
        for element in elements:
            totals.absorb(element)
            element_count += 1
            clean_count += 1 if element.is_clean else 0
        for name in ScoreCounters.model_fields:
            setattr(self, name, getattr(totals, name))
        self.element_count = element_count
        self.clean_count = clean_count


# =============================================================================
# Flat indexes
# =============================================================================


class OutcomeTally(BaseModel):
    """Skipped/processed/passed/failed counts for one index entry."""

    total_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)
    processed_count: int = Field(default=0, ge=0)
    passed_count: int = Field(default=0, ge=0)
    failed_count: int = Field(default=0, ge=0)

    def increment(self, state: ProcessState) -> None:
        self.total_count += 1
        if state == ProcessState.SKIPPED:
            self.skipped_count += 1
            return
        self.processed_count += 1
        if state == ProcessState.PASSED:
            self.passed_count += 1
        else:
            self.failed_count += 1


class InformationalTally(OutcomeTally):
    """Informational results for one (entity, SAM) pair."""

    key: str
    class_mnemonic: Optional[str] = None
    entity_mnemonic: str
    entity_name: str
    sam_mnemonic: str
    evaluation_name: str
    is_critical: bool = False
    weight: int = Field(default=0, ge=0)


class CriticalFailureEntry(OutcomeTally):
    key: str
    entity_mnemonic: str
    sam_mnemonic: str
    fail_sam_mnemonic: Optional[str] = None
    weight: int = Field(default=0, ge=0)


class SkipEntry(BaseModel):
    key: str
    entity_mnemonic: str
    sam_mnemonic: str
    skip_cause: Optional[str] = None
    is_scoring: bool = True
    skip_count: int = Field(default=0, ge=0)


class FailEntry(BaseModel):
    key: str
    entity_mnemonic: str
    sam_mnemonic: str
    fail_sam_mnemonic: Optional[str] = None
    is_scoring: bool = True
    is_critical: bool = False
    fail_count: int = Field(default=0, ge=0)


# =============================================================================
# Message statistics
# =============================================================================


class MessageStatistics(BaseModel):
    """All rollups and indexes for one evaluated message."""

    message: ScoreCounters = Field(default_factory=ScoreCounters)
    info_passed_count: int = Field(default=0, ge=0)
    info_failed_count: int = Field(default=0, ge=0)
    classes: Dict[str, ClassStats] = Field(
        default_factory=dict,
        description="Class rollups keyed by class mnemonic",
    )
    elements: Dict[str, ElementStats] = Field(
        default_factory=dict,
        description="Element rollups keyed by element item key",
    )
    critical_failures: Dict[str, CriticalFailureEntry] = Field(default_factory=dict)
    informational: Dict[str, InformationalTally] = Field(default_factory=dict)
    skips: Dict[str, SkipEntry] = Field(default_factory=dict)
    fails: Dict[str, FailEntry] = Field(default_factory=dict)

    def attribute(self, item_key: str) -> Optional[AttributeStats]:
        for element in self.elements.values():
            if item_key in element.attributes:
                return element.attributes[item_key]
        return None

    def elements_of(self, class_mnemonic: str) -> list[ElementStats]:
        return sorted(
            (e for e in self.elements.values() if e.class_mnemonic == class_mnemonic),
            key=lambda e: e.sequence,
        )
