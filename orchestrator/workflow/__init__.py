from .conditions import StepCondition, evaluate_condition
from .engine import WorkflowEngine

__all__ = ["StepCondition", "WorkflowEngine", "evaluate_condition"]
