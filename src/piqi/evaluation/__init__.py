"""Criterion resolution and tree evaluation."""

from .context import RequestContext
from .orchestrator import EvaluationOrchestrator
from .resolver import (
    EVAL_IS_VALID,
    INVALID_CRITERIA_REASON,
    CriterionResolver,
    Resolution,
    criterion_parameters_valid,
)

__all__ = [
    "EVAL_IS_VALID",
    "INVALID_CRITERIA_REASON",
    "CriterionResolver",
    "EvaluationOrchestrator",
    "RequestContext",
    "Resolution",
    "criterion_parameters_valid",
]
