from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from piqi.model.data import DataType
from piqi.model.entities import Entity, EntityModel
from piqi.model.reference import (
    CodeListItem,
    CodeSystem,
    EvaluationCriterion,
    EvaluationRubric,
    ModelReference,
    ReferenceBundle,
    SAMDefinition,
    SAMParameter,
    ValueList,
)
from piqi.model.types import Cardinality, EntityDataType

BundleFactory = Callable[..., ReferenceBundle]


def _attribute(mnemonic: str, name: str, data_type: EntityDataType = EntityDataType.TEXT) -> Entity:
    return Entity(mnemonic=mnemonic, name=name, data_type=data_type)


def _class(
    mnemonic: str,
    name: str,
    field_name: str,
    cardinality: Cardinality,
    attributes: List[Entity],
) -> Entity:
    element = Entity(
        mnemonic=f"{mnemonic}_ELM",
        name=f"{name} element",
        data_type=EntityDataType.ELEMENT,
        children=attributes,
    )
    return Entity(
        mnemonic=mnemonic,
        name=name,
        field_name=field_name,
        data_type=EntityDataType.CLASS,
        cardinality=cardinality,
        children=[element],
    )


def build_entity_model() -> EntityModel:
    demographics = _class(
        "DEMO",
        "Demographics",
        "demographics",
        Cardinality.ONE,
        [
            _attribute("DEMO_BIRTH", "birthDate"),
            _attribute("DEMO_GENDER", "gender", EntityDataType.CODEABLE_CONCEPT),
        ],
    )
    labs = _class(
        "LAB",
        "Lab Results",
        "labResults",
        Cardinality.ZERO_TO_MANY,
        [
            _attribute("LAB_TEST", "test", EntityDataType.CODEABLE_CONCEPT),
            _attribute("LAB_VALUE", "resultValue", EntityDataType.OBSERVATION_VALUE),
            _attribute("LAB_RANGE", "referenceRange", EntityDataType.REFERENCE_RANGE),
            _attribute("LAB_UNIT", "unitOfMeasure"),
        ],
    )
    medications = _class(
        "MED",
        "Medications",
        "medications",
        Cardinality.ZERO_TO_MANY,
        [_attribute("MED_CODE", "medication", EntityDataType.CODEABLE_CONCEPT)],
    )
    root = Entity(
        mnemonic="PAT",
        name="Patient",
        field_name="patient",
        data_type=EntityDataType.ROOT,
        children=[labs, demographics, medications],
    )
    return EntityModel(mnemonic="LAB_V1", name="Lab model", root=root)


def build_sams() -> List[SAMDefinition]:
    return [
        SAMDefinition(mnemonic="attr_is_populated", name="Populated"),
        SAMDefinition(
            mnemonic="concept_has_code",
            name="Has code",
            prerequisite_sam_mnemonic="attr_is_populated",
        ),
        SAMDefinition(
            mnemonic="concept_is_complete",
            name="Concept complete",
            prerequisite_sam_mnemonic="concept_has_code",
        ),
        SAMDefinition(
            mnemonic="attr_is_numeric",
            name="Numeric",
            prerequisite_sam_mnemonic="attr_is_populated",
        ),
        SAMDefinition(
            mnemonic="attr_is_date",
            name="Valid date",
            prerequisite_sam_mnemonic="attr_is_populated",
        ),
        SAMDefinition(
            mnemonic="attr_is_in_value_list",
            name="In value list",
            prerequisite_sam_mnemonic="attr_is_populated",
            parameters=[SAMParameter(name="Value List")],
        ),
        SAMDefinition(
            mnemonic="attr_is_uom",
            name="Unit of measure",
            prerequisite_sam_mnemonic="attr_is_populated",
        ),
        SAMDefinition(
            mnemonic="range_value_is_complete",
            name="Range complete",
            prerequisite_sam_mnemonic="attr_is_populated",
        ),
        SAMDefinition(
            mnemonic="attr_matches_regex",
            name="Matches pattern",
            prerequisite_sam_mnemonic="attr_is_populated",
            parameters=[SAMParameter(name="Custom Regular Expression")],
        ),
    ]


def build_payload() -> Dict[str, Any]:
    return {
        "EntityModel": "LAB_V1",
        "DataProviderID": "provider-1",
        "DataSourceID": "source-1",
        "MessageID": "message-1",
        "patient": {
            "demographics": {
                "birthDate": "1980-04-02",
                "gender": {
                    "text": "Female",
                    "codings": [
                        {"system": "AdministrativeGender", "code": "F", "display": "Female"}
                    ],
                },
            },
            "labResults": [
                {
                    "test": {
                        "text": "Glucose",
                        "codings": [{"system": "LOINC", "code": "2345-7", "display": "Glucose"}],
                    },
                    "resultValue": {"text": "95", "type": "NM"},
                    "referenceRange": {"text": "70-99", "lowValue": "70", "highValue": "99"},
                    "unitOfMeasure": "mg/dL",
                },
                {
                    "test": {"text": "Sodium"},
                    "resultValue": {"text": "high", "type": "NM"},
                    "unitOfMeasure": "furlongs",
                },
            ],
        },
    }


def make_criterion(
    sequence: int,
    entity: str,
    sam: str,
    *,
    parameters: Optional[Dict[str, Optional[str]]] = None,
    **kwargs: Any,
) -> EvaluationCriterion:
    sam_parameters = [
        {"name": name, "value": value} for name, value in (parameters or {}).items()
    ]
    return EvaluationCriterion(
        sequence=sequence,
        entity=entity,
        sam_mnemonic=sam,
        sam_parameters=sam_parameters,
        **kwargs,
    )


def build_bundle(
    criteria: List[EvaluationCriterion],
    sams: Optional[List[SAMDefinition]] = None,
) -> ReferenceBundle:
    return ReferenceBundle(
        entity_model=build_entity_model(),
        rubric=EvaluationRubric(
            mnemonic="LAB_RUBRIC",
            name="Lab rubric",
            model=ModelReference(mnemonic="LAB_V1"),
            criteria=criteria,
        ),
        sams=build_sams() if sams is None else sams,
        code_systems=[
            CodeSystem(name="LOINC", mnemonic="LN", fhir_uri="http://loinc.org"),
        ],
        value_lists=[
            ValueList(mnemonic="UCUM", items=[CodeListItem(code="mg/dL"), CodeListItem(code="mmol/L")]),
            ValueList(mnemonic="LabTests", items=[CodeListItem(code="2345-7", text="Glucose")]),
        ],
        data_types=[
            DataType(code="ST", name="String"),
            DataType(code="NM", name="Numeric", is_numeric=True),
            DataType(code="SN", name="Structured numeric", is_numeric=True, is_range=True),
            DataType(code="CE", name="Coded entry", is_coded=True),
        ],
    )


@pytest.fixture
def entity_model() -> EntityModel:
    return build_entity_model()


@pytest.fixture
def payload() -> Dict[str, Any]:
    return build_payload()


@pytest.fixture
def bundle_factory() -> BundleFactory:
    return build_bundle


@pytest.fixture
def criterion_factory() -> Callable[..., EvaluationCriterion]:
    return make_criterion
