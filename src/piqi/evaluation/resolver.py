"""Dependency and conditional-guard resolution for one criterion on one item."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from piqi.errors import ConfigurationError, SAMExecutionError
from piqi.model.items import EvaluationItem
from piqi.model.reference import (
    CriterionParameter,
    EvaluationCriterion,
    SAMDefinition,
    ValueList,
)
from piqi.model.results import EvaluationResult
from piqi.model.types import ProcessState, SAMParameterType
from piqi.sams.base import PROCESSING_URL_PARAMETER, SAMContext
from piqi.sams.builtin import UNIT_OF_MEASURE_LIST, UNIT_OF_MEASURE_SAM, VALUE_LIST_SAM

from .context import RequestContext

logger = logging.getLogger(__name__)

EVAL_IS_VALID = "Eval_IsValid"
INVALID_CRITERIA_REASON = "invalid evaluation criteria"


def criterion_parameters_valid(criterion: EvaluationCriterion, sam: SAMDefinition) -> bool:
    """Every parameter the SAM declares is supplied with a non-empty value."""
    supplied = {p.name: p.value for p in criterion.sam_parameters}
    return all(supplied.get(declared.name) for declared in sam.parameters)


@dataclass(slots=True)
class Resolution:
    """Primary result of a criterion plus the guard and prerequisite results
    produced on the way, in execution order."""

    primary: EvaluationResult
    trail: List[EvaluationResult] = field(default_factory=list)

    @property
    def results(self) -> List[EvaluationResult]:
        return [*self.trail, self.primary]


class CriterionResolver:
    """Runs a criterion's guard and SAM chain against an item.

    Chains are singly linked through ``prerequisite_sam_mnemonic``. They
    are collected onto a stack in discovery order and popped, so the
    deepest prerequisite runs first and the requested SAM last. The first
    Failed outcome fails the target and stops the walk.
    """

    def __init__(self, context: RequestContext) -> None:
        self._context = context

    def resolve(self, item: EvaluationItem, criterion: EvaluationCriterion) -> Resolution:
        """Evaluate ``criterion`` on ``item``.

        Raises:
            ConfigurationError: If the bundle is missing a SAM definition,
                prerequisite or value list the criterion needs.
            SAMExecutionError: If any SAM in the chain reports Errored.
        """
        sam = self._context.require_sam(criterion.sam_mnemonic)
        primary = EvaluationResult.for_criterion(item, criterion, sam.mnemonic, sam_name=sam.name)
        resolution = Resolution(primary=primary)

        if not criterion_parameters_valid(criterion, sam):
            logger.warning(
                f"Invalid evaluation criteria: {criterion.description or criterion.sam_mnemonic} "
                f"(sequence {criterion.sequence}) on {item.key}"
            )
            primary.mark_skipped(EVAL_IS_VALID, INVALID_CRITERIA_REASON)
            return resolution

        if criterion.conditional_sam:
            guard_sam = self._context.require_sam(criterion.conditional_sam)
            guard = EvaluationResult.for_criterion(
                item,
                criterion,
                guard_sam.mnemonic,
                sam_name=guard_sam.name,
                is_conditional=True,
            )
            self._walk_chain(
                item,
                guard,
                criterion.conditional_sam_parameters,
                criterion.processing_url,
                resolution.trail,
            )
            resolution.trail.append(guard)
            if guard.state == ProcessState.FAILED:
                primary.mark_skipped(guard_sam.mnemonic, guard.reason)
                return resolution

        self._walk_chain(
            item,
            primary,
            criterion.sam_parameters,
            criterion.processing_url,
            resolution.trail,
        )
        return resolution

    # =========================================================================
    # Chain walk
    # =========================================================================

    def build_chain(self, mnemonic: str) -> List[SAMDefinition]:
        """Return the prerequisite chain of ``mnemonic`` in discovery order.

        The requested SAM is first; its deepest prerequisite is last.
        """
        chain: List[SAMDefinition] = []
        seen: set[str] = set()
        next_mnemonic: Optional[str] = mnemonic
        while next_mnemonic:
            if next_mnemonic in seen:
                msg = f"Prerequisite cycle detected at SAM {next_mnemonic} (chain of {mnemonic})"
                raise ConfigurationError(msg)
            seen.add(next_mnemonic)
            sam = self._context.bundle.get_sam(next_mnemonic)
            if sam is None:
                msg = f"Dependency SAM {next_mnemonic} not found."
                raise ConfigurationError(msg)
            chain.append(sam)
            next_mnemonic = sam.prerequisite_sam_mnemonic
        return chain

    def _walk_chain(
        self,
        item: EvaluationItem,
        target: EvaluationResult,
        parameters: Sequence[CriterionParameter],
        processing_url: Optional[str],
        trail: List[EvaluationResult],
    ) -> None:
        stack = self.build_chain(target.sam_mnemonic)

        while stack:
            sam = stack.pop()
            is_target = not stack
            sam_parameters = (
                self._resolve_parameters(sam, parameters, processing_url) if is_target else []
            )
            context = SAMContext(
                item=item,
                sam=sam,
                bundle=self._context.bundle,
                parameters=sam_parameters,
                value_list=self._value_list_for(sam, parameters if is_target else ()),
            )
            outcome = self._context.registry.execute(sam.mnemonic, context)
            if outcome.errored:
                raise SAMExecutionError(sam.mnemonic, outcome.reason)

            if not is_target:
                step = EvaluationResult.for_criterion(
                    item,
                    target.criterion,
                    sam.mnemonic,
                    sam_name=sam.name,
                    is_conditional=target.is_conditional,
                    is_dependent=True,
                )
                if outcome.failed:
                    step.mark_failed(sam.mnemonic, outcome.reason or sam.name)
                else:
                    step.mark_passed()
                trail.append(step)

            if outcome.failed:
                target.mark_failed(sam.mnemonic, outcome.reason or sam.name)
                return

        target.mark_passed()

    # =========================================================================
    # Parameters
    # =========================================================================

    def _resolve_parameters(
        self,
        sam: SAMDefinition,
        parameters: Sequence[CriterionParameter],
        processing_url: Optional[str],
    ) -> List[Tuple[str, str]]:
        if not parameters:
            return []

        resolved: List[Tuple[str, str]] = []
        if processing_url:
            resolved.append((PROCESSING_URL_PARAMETER, processing_url))

        declared = {p.name: p for p in sam.parameters}
        for parameter in parameters:
            definition = declared.get(parameter.name)
            if definition is None or parameter.value is None:
                logger.warning(
                    f"Invalid SAM parameter for {sam.mnemonic}: {parameter.name}, {parameter.value}"
                )
                continue
            if definition.parameter_type == SAMParameterType.OBJECT:
                resolved.extend(self._expand_object(parameter))
            else:
                resolved.append((definition.name, parameter.value))
        return resolved

    def _expand_object(self, parameter: CriterionParameter) -> List[Tuple[str, str]]:
        try:
            values = json.loads(parameter.value or "")
        except json.JSONDecodeError as exc:
            msg = f"Invalid or missing parameter value(s): {parameter.name}"
            raise ConfigurationError(msg) from exc
        if not isinstance(values, dict):
            msg = f"Invalid or missing parameter value(s): {parameter.name}"
            raise ConfigurationError(msg)

        expanded: List[Tuple[str, str]] = []
        for name, value in values.items():
            if value is None:
                msg = f"Invalid property in {parameter.name} criteria parameter object"
                raise ConfigurationError(msg)
            expanded.append((name, value if isinstance(value, str) else json.dumps(value)))
        return expanded

    def _value_list_for(
        self, sam: SAMDefinition, parameters: Sequence[CriterionParameter]
    ) -> Optional[ValueList]:
        if sam.mnemonic == VALUE_LIST_SAM:
            list_name = parameters[0].value if parameters else None
        elif sam.mnemonic == UNIT_OF_MEASURE_SAM:
            list_name = UNIT_OF_MEASURE_LIST
        else:
            return None

        if not list_name:
            return None
        value_list = self._context.bundle.get_value_list(list_name)
        if value_list is None:
            msg = f"Failed to load value data for [{list_name}]"
            raise ConfigurationError(msg)
        return value_list
