"""Adapter turning a plain function into an ``Invoker``."""
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Union

from orchestrator.invokers.base import Invoker

InvokeFn = Callable[[str, str, Dict[str, Any]], Union[Any, Awaitable[Any]]]


class CallableInvoker(Invoker):
    """Wraps a sync or async ``fn(endpoint, tool, payload)``."""

    def __init__(self, fn: InvokeFn):
        self._fn = fn

    async def invoke(self, endpoint: str, tool: str, payload: Dict[str, Any]) -> Any:
        result = self._fn(endpoint, tool, payload)
        if inspect.isawaitable(result):
            result = await result
        return result
