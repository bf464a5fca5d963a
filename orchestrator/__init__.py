"""Capability task router and multi-step workflow orchestrator."""

__version__ = "0.1.0"

from orchestrator.config import load_config, parse_config
from orchestrator.exceptions import ConfigurationError, OrchestratorError, ToolInvocationError
from orchestrator.invokers import CallableInvoker, Invoker
from orchestrator.orchestrator import Orchestrator, RouteOutcome

__all__ = [
    "__version__",
    "CallableInvoker",
    "ConfigurationError",
    "Invoker",
    "Orchestrator",
    "OrchestratorError",
    "RouteOutcome",
    "ToolInvocationError",
    "load_config",
    "parse_config",
]
