"""Named predicates that gate workflow steps.

The vocabulary is closed: each predicate checks whether the incoming payload
carries a truthy value for one of its fields.

    library_needed           library | dependencies
    context_needed           codebase | repository
    library_research_needed  library_research | api_docs

Unknown names evaluate to true so that a typo never silently drops a step.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from utils.logger import get_logger

logger = get_logger(__name__)


class StepCondition(str, Enum):
    LIBRARY_NEEDED = "library_needed"
    CONTEXT_NEEDED = "context_needed"
    LIBRARY_RESEARCH_NEEDED = "library_research_needed"

    @property
    def fields(self) -> Tuple[str, ...]:
        return _CONDITION_FIELDS[self]

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in cls._value2member_map_

    def holds(self, payload: Mapping[str, Any]) -> bool:
        return any(payload.get(f) for f in self.fields)


_CONDITION_FIELDS = {
    StepCondition.LIBRARY_NEEDED: ("library", "dependencies"),
    StepCondition.CONTEXT_NEEDED: ("codebase", "repository"),
    StepCondition.LIBRARY_RESEARCH_NEEDED: ("library_research", "api_docs"),
}


def evaluate_condition(name: Optional[str], payload: Mapping[str, Any]) -> bool:
    if name is None:
        return True
    if not StepCondition.is_known(name):
        logger.warning("unknown_step_condition", condition=name)
        return True
    return StepCondition(name).holds(payload)
