from .matcher import RuleMatcher, condition_holds
from .sequence import SequenceExecutor

__all__ = ["RuleMatcher", "SequenceExecutor", "condition_holds"]
