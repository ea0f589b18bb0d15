"""Scoring payload returned to callers."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from piqi.model.items import MessageHeader
from piqi.model.reference import ReferenceBundle

from .models import ClassStats, InformationalTally, MessageStatistics, ScoreCounters


class ScoreResult(BaseModel):
    numerator: int = Field(default=0, ge=0)
    denominator: int = Field(default=0, ge=0)
    score: int = Field(default=0, ge=0, le=100, description="Truncated percentage")
    weighted_numerator: int = Field(default=0, ge=0)
    weighted_denominator: int = Field(default=0, ge=0)
    weighted_score: int = Field(default=0, ge=0, le=100)
    critical_failure_count: int = Field(default=0, ge=0)

    @classmethod
    def from_counters(cls, counters: ScoreCounters) -> "ScoreResult":
        return cls(
            numerator=counters.numerator,
            denominator=counters.denominator,
            score=counters.score,
            weighted_numerator=counters.weighted_numerator,
            weighted_denominator=counters.weighted_denominator,
            weighted_score=counters.weighted_score,
            critical_failure_count=counters.critical_failure_count,
        )


class DataClassScoreResult(ScoreResult):
    data_class_name: str
    instance_count: int = Field(default=0, ge=0, description="Elements of this class in the message")

    @classmethod
    def from_class(cls, class_stats: ClassStats) -> "DataClassScoreResult":
        base = ScoreResult.from_counters(class_stats)
        return cls(
            data_class_name=class_stats.class_name,
            instance_count=class_stats.element_count,
            **base.model_dump(),
        )


class InformationalEvaluation(BaseModel):
    entity_name: str
    evaluation_name: str
    instance_count: int = Field(default=0, ge=0)
    numerator: int = Field(default=0, ge=0, description="Passed results")
    denominator: int = Field(default=0, ge=0, description="Processed results")

    @classmethod
    def from_tally(cls, tally: InformationalTally) -> "InformationalEvaluation":
        return cls(
            entity_name=tally.entity_name,
            evaluation_name=tally.evaluation_name,
            instance_count=tally.total_count,
            numerator=tally.passed_count,
            denominator=tally.processed_count,
        )


class InformationalResult(BaseModel):
    data_class_name: str
    evaluations: List[InformationalEvaluation] = Field(default_factory=list)


class ScoreReport(BaseModel):
    """Message, per-class and informational results for one message."""

    data_provider_id: Optional[str] = None
    data_source_id: Optional[str] = None
    message_id: Optional[str] = None
    evaluation_rubric: str
    message_results: ScoreResult
    data_class_results: List[DataClassScoreResult] = Field(default_factory=list)
    informational_results: List[InformationalResult] = Field(default_factory=list)


def build_score_report(
    stats: MessageStatistics,
    bundle: ReferenceBundle,
    header: Optional[MessageHeader] = None,
) -> ScoreReport:
    """Shape aggregated statistics into the external scoring payload.

    Every class of the entity model gets a DataClassScoreResult, including
    classes absent from the message (instance count 0). Classes are sorted
    by display name.
    """
    header = header or MessageHeader()

    class_results = sorted(
        (DataClassScoreResult.from_class(c) for c in stats.classes.values()),
        key=lambda r: r.data_class_name,
    )

    informational_results: List[InformationalResult] = []
    for class_entity in sorted(bundle.entity_model.classes, key=lambda e: e.display_name):
        tallies = sorted(
            (t for t in stats.informational.values() if t.class_mnemonic == class_entity.mnemonic),
            key=lambda t: (t.entity_name, t.evaluation_name),
        )
        if not tallies:
            continue
        informational_results.append(
            InformationalResult(
                data_class_name=class_entity.display_name,
                evaluations=[InformationalEvaluation.from_tally(t) for t in tallies],
            )
        )

    return ScoreReport(
        data_provider_id=header.data_provider_id,
        data_source_id=header.data_source_id,
        message_id=header.message_id,
        evaluation_rubric=bundle.rubric.name or bundle.rubric.mnemonic,
        message_results=ScoreResult.from_counters(stats.message),
        data_class_results=class_results,
        informational_results=informational_results,
    )
