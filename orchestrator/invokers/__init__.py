"""Capability invocation channels.

``MCPInvoker`` lives in ``orchestrator.invokers.mcp`` and is imported
explicitly so the MCP SDK is only loaded when used.
"""
from .base import Invoker
from .callable import CallableInvoker

__all__ = ["Invoker", "CallableInvoker"]
