"""
MCP server exposing the orchestrator's entry points as tools.

Tools: route_task, execute_workflow, list_available_mcps,
get_routing_rules, list_workflows.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from orchestrator import api
from orchestrator.orchestrator import Orchestrator
from utils.logger import get_logger

logger = get_logger(__name__)

SERVER_NAME = "capability-orchestrator"
TRANSPORTS = ("stdio", "streamable-http", "sse")


def _provided(**arguments: Any) -> Dict[str, Any]:
    return {k: v for k, v in arguments.items() if v is not None}


def build_server(orchestrator: Orchestrator, *, name: str = SERVER_NAME) -> FastMCP:
    server = FastMCP(
        name=name,
        instructions=(
            "Routes tasks to the most appropriate capability provider and runs "
            "predefined multi-step workflows across providers."
        ),
    )

    @server.tool(
        name="route_task",
        description=(
            "Route a task to the most appropriate provider and tool based on task type, "
            "complexity and requirements"
        ),
    )
    async def route_task(
        task_type: str,
        description: str,
        complexity: Optional[str] = None,
        context_required: Optional[bool] = None,
        target: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        return await api.route_task(orchestrator, _provided(
            task_type=task_type,
            description=description,
            complexity=complexity,
            context_required=context_required,
            target=target,
            metadata=metadata,
            timeout_seconds=timeout_seconds,
        ))

    @server.tool(
        name="execute_workflow",
        description="Execute a predefined multi-step workflow that coordinates several providers",
    )
    async def execute_workflow(
        workflow_name: str,
        description: str,
        library: Optional[str] = None,
        codebase: Optional[str] = None,
        issue_title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        arguments = dict(extra or {})
        arguments.update(_provided(
            workflow_name=workflow_name,
            description=description,
            library=library,
            codebase=codebase,
            issue_title=issue_title,
            metadata=metadata,
            timeout_seconds=timeout_seconds,
        ))
        return await api.execute_workflow(orchestrator, arguments)

    @server.tool(
        name="list_available_mcps",
        description="List available providers, their capabilities and tools",
    )
    async def list_available_mcps(capability_filter: Optional[str] = None) -> Dict[str, Any]:
        return await api.list_available_mcps(orchestrator, _provided(capability_filter=capability_filter))

    @server.tool(
        name="get_routing_rules",
        description="Get the routing rules that decide which provider and tool handle a task",
    )
    async def get_routing_rules(task_type: Optional[str] = None) -> Dict[str, Any]:
        return await api.get_routing_rules(orchestrator, _provided(task_type=task_type))

    @server.tool(
        name="list_workflows",
        description="List the predefined multi-step workflows",
    )
    async def list_workflows() -> Dict[str, Any]:
        return await api.list_workflows(orchestrator)

    logger.info("mcp_server_built", name=name, tools=5)
    return server


def serve(orchestrator: Orchestrator, *, transport: str = "stdio") -> None:
    if transport not in TRANSPORTS:
        raise ValueError(f"Unknown transport '{transport}'. Allowed: {', '.join(TRANSPORTS)}")
    server = build_server(orchestrator)
    logger.info("mcp_server_starting", transport=transport)
    server.run(transport=transport)
