from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from .reference import EvaluationCriterion
from .types import ItemType, ProcessState, ScoringEffect

if TYPE_CHECKING:
    from .items import EvaluationItem


class EvaluationResult(BaseModel):
    """Outcome of one criterion against one SAM of its chain on one item.

    Weight, criticality and scoring effect are copied from the criterion
    when the result is created. State moves from PENDING to exactly one
    terminal state and never changes again.
    """

    item_key: str = Field(description="Key of the evaluation item this result belongs to")
    item_type: ItemType
    entity_mnemonic: str
    class_mnemonic: Optional[str] = Field(
        default=None,
        description="Owning class entity; None for root items",
    )
    element_sequence: Optional[int] = Field(default=None, ge=1)
    criterion: EvaluationCriterion
    sam_mnemonic: str = Field(description="SAM this result represents")
    sam_name: Optional[str] = Field(default=None)

    weight: int = Field(ge=0)
    is_critical: bool = False
    scoring_effect: ScoringEffect = ScoringEffect.SCORING

    is_conditional: bool = Field(
        default=False,
        description="Result of a conditional guard check",
    )
    is_dependent: bool = Field(
        default=False,
        description="Result of a prerequisite step in a chain",
    )

    state: ProcessState = ProcessState.PENDING
    reason: Optional[str] = None
    failing_sam_mnemonic: Optional[str] = Field(
        default=None,
        description="SAM in the chain that failed",
    )
    skip_cause: Optional[str] = Field(
        default=None,
        description="Mnemonic of the check that caused the skip",
    )

    @property
    def is_primary(self) -> bool:
        return not self.is_conditional and not self.is_dependent

    @property
    def is_scoring(self) -> bool:
        return self.scoring_effect == ScoringEffect.SCORING

    @property
    def is_pending(self) -> bool:
        return self.state == ProcessState.PENDING

    @property
    def display_name(self) -> str:
        """Assessment name shown in audits: the override or the SAM name."""
        return self.criterion.sam_name_override or self.sam_name or self.sam_mnemonic

    def _finish(self, state: ProcessState) -> None:
        if not self.is_pending:
            msg = (
                f"Result for {self.sam_mnemonic} on {self.item_key} is already "
                f"{self.state.value}"
            )
            raise ValueError(msg)
        self.state = state

    def mark_passed(self) -> None:
        self._finish(ProcessState.PASSED)

    def mark_failed(self, sam_mnemonic: str, reason: Optional[str] = None) -> None:
        self._finish(ProcessState.FAILED)
        self.failing_sam_mnemonic = sam_mnemonic
        self.reason = reason

    def mark_skipped(self, cause: str, reason: Optional[str] = None) -> None:
        self._finish(ProcessState.SKIPPED)
        self.skip_cause = cause
        self.reason = reason

    @classmethod
    def for_criterion(
        cls,
        item: "EvaluationItem",
        criterion: EvaluationCriterion,
        sam_mnemonic: str,
        *,
        sam_name: Optional[str] = None,
        is_conditional: bool = False,
        is_dependent: bool = False,
    ) -> "EvaluationResult":
        return cls(
            item_key=item.key,
            item_type=item.item_type,
            entity_mnemonic=item.entity.mnemonic,
            class_mnemonic=item.class_mnemonic,
            element_sequence=item.element_sequence,
            criterion=criterion,
            sam_mnemonic=sam_mnemonic,
            sam_name=sam_name,
            weight=criterion.scoring_weight,
            is_critical=criterion.is_critical,
            scoring_effect=criterion.scoring_effect,
            is_conditional=is_conditional,
            is_dependent=is_dependent,
        )
