"""Result aggregation and score reporting."""

from .aggregator import StatisticsAggregator
from .models import (
    AttributeStats,
    ClassStats,
    CriticalFailureEntry,
    ElementStats,
    FailEntry,
    InformationalTally,
    MessageStatistics,
    ScoreCounters,
    SkipEntry,
    calculate_score,
)
from .report import (
    DataClassScoreResult,
    InformationalEvaluation,
    InformationalResult,
    ScoreReport,
    ScoreResult,
    build_score_report,
)

__all__ = [
    "AttributeStats",
    "ClassStats",
    "CriticalFailureEntry",
    "DataClassScoreResult",
    "ElementStats",
    "FailEntry",
    "InformationalEvaluation",
    "InformationalResult",
    "InformationalTally",
    "MessageStatistics",
    "ScoreCounters",
    "ScoreReport",
    "ScoreResult",
    "SkipEntry",
    "StatisticsAggregator",
    "build_score_report",
    "calculate_score",
]
