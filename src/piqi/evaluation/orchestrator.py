from __future__ import annotations

import logging
from typing import List, Set, Tuple

from piqi.errors import ConfigurationError
from piqi.model.items import EvaluationItem, EvaluationMessage
from piqi.model.results import EvaluationResult

from .context import RequestContext
from .resolver import CriterionResolver

logger = logging.getLogger(__name__)


class EvaluationOrchestrator:
    """Walks the evaluation tree and records every criterion outcome.

    Order is fixed so audits are reproducible: classes by display name,
    elements by sequence, attributes by display name, criteria by sequence.
    Each element's attributes run before the element's own criteria, each
    class's elements before the class's criteria, and root criteria last.
    """

    def __init__(self, context: RequestContext) -> None:
        self._context = context
        self._resolver = CriterionResolver(context)

    def evaluate(self, message: EvaluationMessage) -> List[EvaluationResult]:
        """Evaluate every item of ``message`` in place.

        Returns:
            Primary results in evaluation order.

        Raises:
            ConfigurationError: On an inconsistent reference bundle.
            SAMExecutionError: When a SAM reports Errored.
        """
        primaries: List[EvaluationResult] = []
        for item in message.root.walk():
            primaries.extend(self.evaluate_item(item))
        logger.debug(f"Evaluated {len(primaries)} criteria on {message.root.key}")
        return primaries

    def evaluate_item(self, item: EvaluationItem) -> List[EvaluationResult]:
        item.results = []
        seen: Set[Tuple[int, str]] = set()
        primaries: List[EvaluationResult] = []

        for criterion in self._context.criteria_for(item.mnemonic):
            marker = (criterion.sequence, criterion.sam_mnemonic)
            if marker in seen:
                msg = (
                    f"Criterion {criterion.sam_mnemonic} (sequence {criterion.sequence}) "
                    f"is defined more than once for {item.mnemonic}"
                )
                raise ConfigurationError(msg)
            seen.add(marker)

            resolution = self._resolver.resolve(item, criterion)
            item.results.extend(resolution.results)
            primaries.append(resolution.primary)
        return primaries
