"""Scoring engine facade: one call per inbound message.

``ScoringEngine.score`` runs the whole pipeline for a message payload:
model validation, tree building, evaluation, aggregation, report shaping
and (optionally) the audited message. Request-fatal errors are logged and
returned as a failed response; nothing partial is ever returned.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from piqi.config import EngineConfig
from piqi.errors import ConfigurationError, MessageFormatError, PiqiError
from piqi.evaluation.context import RequestContext
from piqi.evaluation.orchestrator import EvaluationOrchestrator
from piqi.model.builder import build_message_tree, read_header
from piqi.model.items import EvaluationMessage
from piqi.model.reference import ReferenceBundle, models_match
from piqi.reporting.audit import AuditRenderer
from piqi.sams.registry import SAMRegistry
from piqi.statistics.aggregator import StatisticsAggregator
from piqi.statistics.models import MessageStatistics
from piqi.statistics.report import ScoreReport, build_score_report

logger = logging.getLogger(__name__)


class ScoringRequest(BaseModel):
    """Caller-supplied options for one scoring call."""

    data_provider_id: Optional[str] = Field(
        default=None,
        description="Overrides the provider id found in the message header",
    )
    data_source_id: Optional[str] = Field(default=None)
    message_id: Optional[str] = Field(default=None)
    audit: Optional[bool] = Field(
        default=None,
        description="Produce the audited message; None uses the engine default",
    )


class ScoringResponse(BaseModel):
    succeeded: bool
    error_message: Optional[str] = None
    elapsed_ms: float = Field(default=0.0, ge=0)
    scoring_data: Optional[ScoreReport] = None
    audited_message: Optional[Dict[str, Any]] = None


class ScoringOutcome(BaseModel):
    """Everything one successful run produced, for callers that need more
    than the response payload (the CLI's HTML report, tests)."""

    message: EvaluationMessage
    statistics: MessageStatistics
    report: ScoreReport
    audited_message: Optional[Dict[str, Any]] = None


class ScoringEngine:
    """Scores messages against a reference bundle."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[SAMRegistry] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._registry = registry or SAMRegistry.with_builtins()

    @classmethod
    def from_env(cls, registry: Optional[SAMRegistry] = None) -> "ScoringEngine":
        return cls(config=EngineConfig.from_env(), registry=registry)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def registry(self) -> SAMRegistry:
        return self._registry

    def score(
        self,
        request: ScoringRequest,
        message_payload: Dict[str, Any],
        bundle: ReferenceBundle,
    ) -> ScoringResponse:
        """Score one message.

        Args:
            request: Header overrides and the audit flag
            message_payload: Decoded JSON message
            bundle: Reference data for this request

        Returns:
            ScoringResponse; ``succeeded`` is False when the request failed,
            with ``error_message`` set and no scoring data.
        """
        response, _ = self.score_detailed(request, message_payload, bundle)
        return response

    def score_detailed(
        self,
        request: ScoringRequest,
        message_payload: Dict[str, Any],
        bundle: ReferenceBundle,
    ) -> Tuple[ScoringResponse, Optional[ScoringOutcome]]:
        """Like ``score`` but also hands back the outcome of a successful run."""
        started = time.perf_counter()
        logger.info(f"Scoring message against rubric {bundle.rubric.mnemonic}")

        try:
            outcome = self.run(request, message_payload, bundle)
        except PiqiError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.exception(f"Scoring failed after {elapsed_ms:.1f} ms: {e}")
            response = ScoringResponse(
                succeeded=False,
                error_message=str(e),
                elapsed_ms=elapsed_ms,
            )
            return response, None

        elapsed_ms = (time.perf_counter() - started) * 1000
        message_results = outcome.report.message_results
        logger.info(
            f"Scored message {outcome.report.message_id or '-'}: "
            f"{message_results.score} ({message_results.numerator}/"
            f"{message_results.denominator}) in {elapsed_ms:.1f} ms"
        )
        response = ScoringResponse(
            succeeded=True,
            elapsed_ms=elapsed_ms,
            scoring_data=outcome.report,
            audited_message=outcome.audited_message,
        )
        return response, outcome

    def run(
        self,
        request: ScoringRequest,
        message_payload: Dict[str, Any],
        bundle: ReferenceBundle,
    ) -> ScoringOutcome:
        """Run the pipeline and return every intermediate product.

        Raises:
            ConfigurationError: On an inconsistent bundle or a model mismatch.
            MessageFormatError: When the payload does not fit the entity model.
            SAMExecutionError: When a SAM reports Errored.
        """
        if not isinstance(message_payload, dict):
            raise MessageFormatError("Message payload must be a JSON object")
        self._validate_models(read_header(message_payload).model_mnemonic, bundle)

        try:
            message = build_message_tree(message_payload, bundle.entity_model, bundle.data_types)
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            msg = f"Message could not be read against model {bundle.entity_model.mnemonic}: {e}"
            raise MessageFormatError(msg) from e
        message.header = message.header.model_copy(
            update={
                "data_provider_id": request.data_provider_id or message.header.data_provider_id,
                "data_source_id": request.data_source_id or message.header.data_source_id,
                "message_id": request.message_id or message.header.message_id,
            }
        )

        context = RequestContext.create(bundle, self._registry)
        EvaluationOrchestrator(context).evaluate(message)

        stats = StatisticsAggregator(bundle).aggregate(message)
        report = build_score_report(stats, bundle, message.header)

        audit = self._config.audit_by_default if request.audit is None else request.audit
        audited_message = AuditRenderer().render(message, stats, bundle) if audit else None

        return ScoringOutcome(
            message=message,
            statistics=stats,
            report=report,
            audited_message=audited_message,
        )

    def _validate_models(self, message_model: Optional[str], bundle: ReferenceBundle) -> None:
        rubric_model = bundle.rubric.model.mnemonic
        message_model = message_model or bundle.entity_model.mnemonic
        try:
            rubric_matches = models_match(rubric_model, bundle.entity_model.mnemonic)
            message_matches = models_match(message_model, rubric_model)
        except ValueError as e:
            raise MessageFormatError(str(e)) from e

        if not rubric_matches:
            msg = (
                f"Rubric {bundle.rubric.mnemonic} targets model {rubric_model}, "
                f"not {bundle.entity_model.mnemonic}"
            )
            raise ConfigurationError(msg)
        if not message_matches and self._config.enforce_model_match:
            msg = f"Message model {message_model} does not match rubric model {rubric_model}"
            raise ConfigurationError(msg)
        if not message_matches:
            logger.warning(
                f"Message model {message_model} does not match rubric model {rubric_model}"
            )
