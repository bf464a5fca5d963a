"""
Model Context Protocol invoker.

Opens a client session to the provider's declared endpoint for every call and
closes it afterwards. Supported transports:

    stdio            endpoint.command + endpoint.args
    http             endpoint.url (streamable HTTP) + endpoint.headers
    sse              endpoint.url + endpoint.headers

Usage:
    invoker = MCPInvoker.from_registry(registry)
    data = await invoker.invoke("linear", "create_issue", {"title": "..."})
"""
from __future__ import annotations

import contextlib
import json
from typing import Any, Dict, Mapping

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from orchestrator.exceptions import ToolInvocationError
from orchestrator.invokers.base import Invoker
from orchestrator.models import Endpoint
from orchestrator.registry import CapabilityRegistry
from utils.logger import get_logger

logger = get_logger(__name__)


class MCPInvoker(Invoker):
    """Calls tools on MCP servers described by provider endpoints."""

    def __init__(self, endpoints: Mapping[str, Endpoint], *, timeout_seconds: float = 30.0):
        self._endpoints = dict(endpoints)
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_registry(cls, registry: CapabilityRegistry, **kwargs: Any) -> "MCPInvoker":
        endpoints = {p.endpoint_id: p.endpoint for p in registry.list_providers().values()}
        return cls(endpoints, **kwargs)

    async def invoke(self, endpoint: str, tool: str, payload: Dict[str, Any]) -> Any:
        target = self._endpoints.get(endpoint)
        if target is None:
            raise ToolInvocationError("no endpoint registered", endpoint=endpoint, tool=tool)

        logger.debug("mcp_call_start", endpoint=endpoint, tool=tool, transport=target.type)
        async with contextlib.AsyncExitStack() as stack:
            read, write = await self._open_transport(stack, endpoint, tool, target)
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
            result = await session.call_tool(tool, payload)

        if result.isError:
            raise ToolInvocationError(_content_text(result) or "tool reported an error", endpoint=endpoint, tool=tool)
        return _decode_result(result)

    async def _open_transport(self, stack: contextlib.AsyncExitStack, endpoint: str, tool: str, target: Endpoint):
        if target.type == "stdio" or (target.command and not target.url):
            if not target.command:
                raise ToolInvocationError("stdio endpoint requires a command", endpoint=endpoint, tool=tool)
            params = StdioServerParameters(command=target.command, args=list(target.args))
            return await stack.enter_async_context(stdio_client(params))

        if target.type in ("http", "streamable_http") and target.url:
            read, write, _ = await stack.enter_async_context(
                streamablehttp_client(target.url, headers=dict(target.headers), timeout=self.timeout_seconds)
            )
            return read, write

        if target.type == "sse" and target.url:
            return await stack.enter_async_context(sse_client(target.url, headers=dict(target.headers)))

        raise ToolInvocationError(
            f"endpoint type '{target.type}' cannot be reached without a command or url",
            endpoint=endpoint,
            tool=tool,
        )


def _content_text(result: Any) -> str:
    parts = [getattr(item, "text", "") for item in (result.content or [])]
    return "\n".join(p for p in parts if p)


def _decode_result(result: Any) -> Any:
    """Prefer structured content; otherwise parse text content as JSON when possible."""
    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return structured
    text = _content_text(result)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return {"text": text}
