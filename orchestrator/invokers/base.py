"""Abstract capability invocation channel."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict


class Invoker(ABC):
    """Transport-agnostic contract for calling a tool on a remote provider.

    Implementations raise on failure (preferably ``ToolInvocationError``);
    they never retry. Retrying and fallback belong to the call executor.
    """

    @abstractmethod
    async def invoke(self, endpoint: str, tool: str, payload: Dict[str, Any]) -> Any:
        """Call ``tool`` on the provider identified by ``endpoint`` and return its result."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any transport resources. Default: nothing to release."""
