"""Dispatch contract shared by every assessment method (SAM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, Field

from piqi.model.data import BaseText
from piqi.model.items import EvaluationItem
from piqi.model.reference import ReferenceBundle, SAMDefinition, ValueList
from piqi.model.types import SAMResultState

DataT = TypeVar("DataT", bound=BaseText)

PROCESSING_URL_PARAMETER = "Processing URL"


class SAMOutcome(BaseModel):
    """What a single SAM implementation reports back."""

    state: SAMResultState
    reason: Optional[str] = Field(
        default=None,
        description="Explanation for Failed/Skipped, or the error text for Errored",
    )

    @property
    def succeeded(self) -> bool:
        return self.state == SAMResultState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state == SAMResultState.FAILED

    @property
    def errored(self) -> bool:
        return self.state == SAMResultState.ERRORED

    @classmethod
    def done(cls, passed: bool, reason: Optional[str] = None) -> "SAMOutcome":
        state = SAMResultState.SUCCEEDED if passed else SAMResultState.FAILED
        return cls(state=state, reason=None if passed else reason)

    @classmethod
    def skipped(cls, reason: Optional[str] = None) -> "SAMOutcome":
        return cls(state=SAMResultState.SKIPPED, reason=reason)

    @classmethod
    def error(cls, message: str) -> "SAMOutcome":
        return cls(state=SAMResultState.ERRORED, reason=message)


class SAMTypeError(TypeError):
    """Item data does not have the shape an assessment method requires."""


@dataclass(frozen=True, slots=True)
class SAMContext:
    """Input handed to a SAM: the target item plus its resolved parameters."""

    item: EvaluationItem
    sam: SAMDefinition
    bundle: ReferenceBundle
    parameters: List[Tuple[str, str]] = field(default_factory=list)
    value_list: Optional[ValueList] = None

    @property
    def data(self) -> Optional[BaseText]:
        return self.item.data

    def get_parameter(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return next((value for key, value in self.parameters if key == name), default)

    def require_data(self, data_type: Type[DataT]) -> DataT:
        """Return the item data as ``data_type`` or raise SAMTypeError."""
        data = self.item.data
        if not isinstance(data, data_type):
            msg = (
                f"{self.sam.mnemonic} expects {data_type.__name__} data on "
                f"{self.item.key}, got {type(data).__name__}"
            )
            raise SAMTypeError(msg)
        return data


SAMHandler = Callable[[SAMContext], SAMOutcome]


def default_sam(context: SAMContext) -> SAMOutcome:
    """Fallback for SAMs without a registered implementation: always fails."""
    return SAMOutcome.done(False, f"No implementation registered for {context.sam.mnemonic}")
