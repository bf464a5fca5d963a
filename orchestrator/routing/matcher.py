"""First-match routing over an ordered list of rules."""
from __future__ import annotations

from typing import List, Optional, Sequence

from orchestrator.models import Condition, RoutingRule, TaskContext


def condition_holds(condition: Condition, task: TaskContext) -> bool:
    if condition.task_type is not None and task.task_type not in condition.task_type:
        return False
    # complexity and target only constrain tasks that declare them
    if condition.complexity is not None and task.complexity and task.complexity not in condition.complexity:
        return False
    # an absent flag matches neither true nor false
    if condition.context_required is not None and condition.context_required != task.context_required:
        return False
    if condition.target is not None and task.target and task.target not in condition.target:
        return False
    return True


class RuleMatcher:
    """Evaluates rules in declaration order and returns the first that holds."""

    def __init__(self, rules: Sequence[RoutingRule]):
        self._rules: List[RoutingRule] = list(rules)

    @property
    def rules(self) -> List[RoutingRule]:
        return list(self._rules)

    def match(self, task: TaskContext) -> Optional[RoutingRule]:
        return next((rule for rule in self._rules if condition_holds(rule.condition, task)), None)

    def rules_for_task_type(self, task_type: Optional[str] = None) -> List[RoutingRule]:
        """Rules that explicitly list ``task_type``; all rules when it is None."""
        if task_type is None:
            return self.rules
        return [r for r in self._rules if r.condition.task_type and task_type in r.condition.task_type]
