from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from piqi.errors import ConfigurationError
from piqi.model.reference import EvaluationCriterion, ReferenceBundle, SAMDefinition
from piqi.sams.registry import SAMRegistry


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Read-only reference data and SAM registry for one scoring request.

    Passed explicitly through every call; nothing in the evaluation engine
    keeps a "current bundle" between requests.
    """

    bundle: ReferenceBundle
    registry: SAMRegistry
    criteria_by_entity: Dict[str, List[EvaluationCriterion]] = field(default_factory=dict)

    @classmethod
    def create(cls, bundle: ReferenceBundle, registry: SAMRegistry) -> "RequestContext":
        """Index the rubric by target entity, rejecting unknown entities."""
        criteria_by_entity: Dict[str, List[EvaluationCriterion]] = {}
        for criterion in bundle.rubric.criteria:
            if bundle.get_entity(criterion.entity) is None:
                msg = (
                    f"Criteria entity ({criterion.entity}) missing from entity "
                    "reference list or invalid."
                )
                raise ConfigurationError(msg)
            criteria_by_entity.setdefault(criterion.entity, []).append(criterion)
        for criteria in criteria_by_entity.values():
            criteria.sort(key=lambda c: c.sequence)
        return cls(bundle=bundle, registry=registry, criteria_by_entity=criteria_by_entity)

    def criteria_for(self, entity_mnemonic: str) -> List[EvaluationCriterion]:
        return self.criteria_by_entity.get(entity_mnemonic, [])

    def require_sam(self, mnemonic: str) -> SAMDefinition:
        sam = self.bundle.get_sam(mnemonic)
        if sam is None:
            msg = f"SAM ({mnemonic}) missing from SAM reference list or invalid."
            raise ConfigurationError(msg)
        return sam
