"""
Exceptions raised across the orchestration layer.

Only configuration errors are meant to escape the engine. Invocation errors
are raised by invokers and converted into failed ``CallResult`` values by the
call executor.
"""
from __future__ import annotations

from typing import List, Optional


class OrchestratorError(Exception):
    """Base exception for all orchestration errors."""


class ConfigurationError(OrchestratorError):
    """The orchestration artifact is missing, unparseable or inconsistent."""

    def __init__(self, message: str, *, problems: Optional[List[str]] = None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class ToolInvocationError(OrchestratorError):
    """Raised when a remote tool call fails for any reason."""

    def __init__(self, message: str, *, endpoint: str, tool: str):
        self.endpoint = endpoint
        self.tool = tool
        self.message = message
        super().__init__(f"Tool '{endpoint}.{tool}': {message}")


class ProviderNotFoundError(ToolInvocationError):
    """The referenced provider is not present in the capability registry."""

    def __init__(self, provider: str, *, tool: str):
        super().__init__(f"Provider '{provider}' not found in configuration", endpoint=provider, tool=tool)
