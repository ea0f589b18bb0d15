"""Entity metadata: the fixed schema tree a message model version describes."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .types import Cardinality, EntityDataType


class Entity(BaseModel):
    """One level of the message schema (root, class, element or attribute)."""

    model_config = ConfigDict(frozen=True)

    mnemonic: str = Field(description="Stable unique identity of the entity")
    name: str = Field(description="Display name")
    field_name: Optional[str] = Field(
        default=None,
        description="Property name used for this entity in message payloads",
    )
    short_name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    data_type: EntityDataType = Field(description="Data-type tag")
    cardinality: Optional[Cardinality] = Field(
        default=None,
        description="Element cardinality; only meaningful on class entities",
    )
    children: List["Entity"] = Field(
        default_factory=list,
        description="Ordered child entities",
    )

    @property
    def display_name(self) -> str:
        return self.field_name or self.name

    @property
    def payload_key(self) -> str:
        return self.field_name or self.name

    def iter_tree(self) -> Iterator["Entity"]:
        """Yield this entity and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.iter_tree()


class EntityModel(BaseModel):
    """A versioned entity tree with mnemonic lookup."""

    model_config = ConfigDict(frozen=True)

    mnemonic: str = Field(description="Model mnemonic, e.g. PAT_CLINICAL_V1")
    name: Optional[str] = Field(default=None)
    root: Entity = Field(description="Root entity of the schema tree")

    _index: Dict[str, Entity] = PrivateAttr(default_factory=dict)
    _class_of: Dict[str, Entity] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object) -> None:
        for entity in self.root.iter_tree():
            if entity.mnemonic in self._index:
                msg = f"Duplicate entity mnemonic in model {self.mnemonic}: {entity.mnemonic}"
                raise ValueError(msg)
            self._index[entity.mnemonic] = entity
        for class_entity in self.root.children:
            for entity in class_entity.iter_tree():
                self._class_of[entity.mnemonic] = class_entity

    @property
    def classes(self) -> List[Entity]:
        return list(self.root.children)

    def get(self, mnemonic: str) -> Optional[Entity]:
        return self._index.get(mnemonic)

    def class_of(self, mnemonic: str) -> Optional[Entity]:
        """Return the class entity that owns ``mnemonic`` (itself for classes)."""
        return self._class_of.get(mnemonic)

    def __contains__(self, mnemonic: object) -> bool:
        return mnemonic in self._index
