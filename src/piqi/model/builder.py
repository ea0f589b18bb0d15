"""Build the evaluation tree for a message payload."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

from piqi.errors import MessageFormatError

from .data import BaseText, CodeableConcept, DataType, ObservationValue, ReferenceRange
from .entities import Entity, EntityModel
from .items import EvaluationItem, EvaluationMessage, MessageHeader
from .types import Cardinality, EntityDataType, ItemType

logger = logging.getLogger(__name__)

_HEADER_FIELDS = {
    "model_mnemonic": "EntityModel",
    "data_provider_id": "DataProviderID",
    "data_source_id": "DataSourceID",
    "message_id": "MessageID",
    "transaction_date": "TransactionDate",
}


def _lookup(node: Dict[str, Any], name: str) -> Any:
    if name in node:
        return node[name]
    lowered = name.casefold()
    for key, value in node.items():
        if key.casefold() == lowered:
            return value
    return None


def parse_attribute(
    entity: Entity, value: Any, data_types: Sequence[DataType] = ()
) -> Optional[BaseText]:
    """Parse a raw payload value into the typed shape for ``entity``."""
    if value is None:
        return None
    if entity.data_type == EntityDataType.CODEABLE_CONCEPT:
        return CodeableConcept.from_json(value)
    if entity.data_type == EntityDataType.OBSERVATION_VALUE:
        return ObservationValue.from_json(value, data_types)
    if entity.data_type == EntityDataType.REFERENCE_RANGE:
        return ReferenceRange.from_json(value)
    if isinstance(value, (dict, list)):
        return BaseText(text=json.dumps(value))
    return BaseText(text=str(value))


def read_header(payload: Dict[str, Any]) -> MessageHeader:
    values = {
        field: _lookup(payload, name)
        for field, name in _HEADER_FIELDS.items()
    }
    return MessageHeader(
        **{k: (str(v) if v is not None else None) for k, v in values.items()}
    )


def _element_entity(class_entity: Entity) -> Entity:
    if not class_entity.children:
        msg = f"Class {class_entity.mnemonic} has no element entity"
        raise MessageFormatError(msg)
    return class_entity.children[0]


def _build_element(
    class_item: EvaluationItem,
    element_entity: Entity,
    sequence: int,
    node: Any,
    data_types: Sequence[DataType],
) -> EvaluationItem:
    if not isinstance(node, dict):
        msg = (
            f"Element {element_entity.mnemonic}.{sequence} of "
            f"{class_item.mnemonic} must be an object"
        )
        raise MessageFormatError(msg)

    child_key = f"{element_entity.mnemonic}.{sequence}"
    element_item = EvaluationItem(
        key=f"{class_item.key}|{child_key}",
        item_type=ItemType.ELEMENT,
        entity=element_entity,
        class_entity=class_item.entity,
        element_sequence=sequence,
    )
    class_item.add_child(element_item, child_key)

    for attribute_entity in element_entity.children:
        raw = _lookup(node, attribute_entity.name)
        if raw is None and attribute_entity.field_name:
            raw = _lookup(node, attribute_entity.field_name)
        element_item.add_child(
            EvaluationItem(
                key=f"{element_item.key}|{attribute_entity.mnemonic}",
                item_type=ItemType.ATTRIBUTE,
                entity=attribute_entity,
                class_entity=class_item.entity,
                element_sequence=sequence,
                data=parse_attribute(attribute_entity, raw, data_types),
            )
        )
    return element_item


def build_message_tree(
    payload: Dict[str, Any],
    entity_model: EntityModel,
    data_types: Sequence[DataType] = (),
) -> EvaluationMessage:
    """Turn a message payload into its evaluation tree.

    Args:
        payload: Decoded JSON message. The root entity's field holds one
            property per class.
        entity_model: Schema the message claims to follow.
        data_types: Observation value type library.

    Returns:
        EvaluationMessage with header fields and the root item.

    Raises:
        MessageFormatError: If the payload does not fit the entity model.
    """
    if not isinstance(payload, dict):
        raise MessageFormatError("Message payload must be a JSON object")

    root_entity = entity_model.root
    root_node = _lookup(payload, root_entity.payload_key)
    if root_node is None and root_entity.field_name:
        root_node = _lookup(payload, root_entity.name)
    if not isinstance(root_node, dict):
        msg = f"Root element {root_entity.payload_key!r} not found in message"
        raise MessageFormatError(msg)

    root_item = EvaluationItem(
        key=root_entity.mnemonic,
        item_type=ItemType.ROOT,
        entity=root_entity,
    )

    for class_entity in root_entity.children:
        class_node = _lookup(root_node, class_entity.payload_key)
        if class_node is None and class_entity.field_name:
            class_node = _lookup(root_node, class_entity.name)
        if class_node is None:
            continue

        class_item = EvaluationItem(
            key=f"{root_item.key}|{class_entity.mnemonic}",
            item_type=ItemType.CLASS,
            entity=class_entity,
            class_entity=class_entity,
        )
        root_item.add_child(class_item)
        element_entity = _element_entity(class_entity)

        if class_entity.cardinality == Cardinality.ONE:
            _build_element(class_item, element_entity, 1, class_node, data_types)
            continue

        if not isinstance(class_node, list):
            msg = f"Class {class_entity.payload_key!r} expects an array of elements"
            raise MessageFormatError(msg)
        for sequence, node in enumerate(class_node, start=1):
            _build_element(class_item, element_entity, sequence, node, data_types)

    message = EvaluationMessage(header=read_header(payload), root=root_item)
    logger.debug(
        f"Built evaluation tree for {root_entity.mnemonic} with "
        f"{len(root_item.children)} classes"
    )
    return message
