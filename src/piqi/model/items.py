"""Evaluation tree: Root -> Class -> Element -> Attribute items."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from .data import BaseText
from .entities import Entity
from .results import EvaluationResult
from .types import ItemType


class EvaluationItem(BaseModel):
    """One node of the evaluation tree for a single message.

    Keys are composite paths: ``root``, ``root|class``,
    ``root|class|element.seq`` and ``root|class|element.seq|attribute``.
    """

    key: str = Field(description="Composite path key, unique within a message")
    item_type: ItemType
    entity: Entity
    class_entity: Optional[Entity] = Field(
        default=None,
        description="Owning class entity; None for the root item",
    )
    element_sequence: Optional[int] = Field(
        default=None,
        ge=1,
        description="1-based element sequence within its class",
    )
    data: Optional[BaseText] = Field(
        default=None,
        description="Parsed attribute data; None when absent from the message",
    )
    children: Dict[str, "EvaluationItem"] = Field(default_factory=dict)
    results: List[EvaluationResult] = Field(default_factory=list)

    @property
    def mnemonic(self) -> str:
        return self.entity.mnemonic

    @property
    def display_name(self) -> str:
        return self.entity.display_name

    @property
    def class_mnemonic(self) -> Optional[str]:
        return self.class_entity.mnemonic if self.class_entity is not None else None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def add_child(self, child: "EvaluationItem", child_key: Optional[str] = None) -> None:
        name = child_key or child.entity.mnemonic
        if name in self.children:
            msg = f"Duplicate child {name} under {self.key}"
            raise ValueError(msg)
        self.children[name] = child

    def ordered_children(self) -> List["EvaluationItem"]:
        """Children in evaluation order.

        Elements sort by sequence; classes and attributes sort by display
        name, with the mnemonic as a tie-break.
        """
        items = list(self.children.values())
        if self.item_type == ItemType.CLASS:
            return sorted(items, key=lambda i: i.element_sequence or 0)
        return sorted(items, key=lambda i: (i.display_name, i.mnemonic))

    def primary_results(self) -> List[EvaluationResult]:
        return [r for r in self.results if r.is_primary]

    def walk(self) -> Iterator["EvaluationItem"]:
        """Yield items post-order: children (in evaluation order) before self."""
        for child in self.ordered_children():
            yield from child.walk()
        yield self


class MessageHeader(BaseModel):
    model_mnemonic: Optional[str] = Field(default=None, description="Entity model mnemonic")
    data_provider_id: Optional[str] = None
    data_source_id: Optional[str] = None
    message_id: Optional[str] = None
    transaction_date: Optional[str] = None


class EvaluationMessage(BaseModel):
    """A parsed message: header plus the evaluation tree and a key index."""

    header: MessageHeader = Field(default_factory=MessageHeader)
    root: EvaluationItem

    def items(self) -> Iterator[EvaluationItem]:
        return self.root.walk()

    def find(self, key: str) -> Optional[EvaluationItem]:
        return next((item for item in self.root.walk() if item.key == key), None)

    def class_items(self) -> List[EvaluationItem]:
        return self.root.ordered_children()
