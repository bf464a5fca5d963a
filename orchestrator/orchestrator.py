"""
Orchestrator facade: the engine's entry points.

    orchestrator = Orchestrator(config, invoker=CallableInvoker(my_call))
    outcome = await orchestrator.route_task("research", "best caching strategies")
    run = await orchestrator.execute_workflow("bug_fix", {"description": "..."})

Every entry point returns a structured value with an explicit success flag;
remote failures and routing misses never surface as exceptions.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from orchestrator.cache import ResultCache
from orchestrator.config import load_config
from orchestrator.deadline import Deadline
from orchestrator.executor import CallExecutor
from orchestrator.invokers.base import Invoker
from orchestrator.models import (
    CallResult,
    CapabilityProvider,
    FallbackStrategy,
    OrchestrationConfig,
    RoutingRule,
    Sequence,
    TaskContext,
    Workflow,
    WorkflowResult,
)
from orchestrator.registry import CapabilityRegistry
from orchestrator.routing import RuleMatcher, SequenceExecutor
from orchestrator.workflow import WorkflowEngine
from utils.logger import get_logger, trace_method
from utils.observability import observe

logger = get_logger(__name__)


@dataclass
class RouteOutcome:
    """Result of ``route_task``: the rule that fired (if any) and the call result."""

    result: CallResult
    rule: Optional[RoutingRule] = None

    @property
    def success(self) -> bool:
        return self.result.success


def new_correlation_id() -> str:
    return uuid.uuid4().hex


class Orchestrator:
    def __init__(
        self,
        config: OrchestrationConfig,
        *,
        invoker: Invoker,
        cache: Optional[ResultCache] = None,
    ):
        settings = config.integration_settings
        self.config = config
        self.registry = CapabilityRegistry(config.providers)
        self.cache = cache if cache is not None else ResultCache(
            enabled=settings.result_caching, ttl_seconds=settings.cache_duration
        )
        self.executor = CallExecutor(
            registry=self.registry,
            invoker=invoker,
            cache=self.cache,
            default_timeout=settings.default_timeout,
            max_concurrent_calls=settings.max_concurrent_calls,
            log_settings=settings.logging,
        )
        self.matcher = RuleMatcher(config.routing_rules)
        self.sequences = SequenceExecutor(self.executor)
        self.workflow_engine = WorkflowEngine(workflows=config.workflows, executor=self.executor)

    @classmethod
    def from_config_file(cls, path: str | Path | None = None, *, invoker: Optional[Invoker] = None) -> "Orchestrator":
        """Load the artifact and wire an MCP invoker unless one is supplied."""
        config = load_config(path)
        if invoker is None:
            from orchestrator.invokers.mcp import MCPInvoker

            invoker = MCPInvoker.from_registry(CapabilityRegistry(config.providers))
        return cls(config, invoker=invoker)

    # ── entry points ──────────────────────────────────────────────────────

    @observe(root=True, redact=("description", "metadata"), capture_output=False)
    async def route_task(
        self,
        task_type: str,
        description: str,
        *,
        complexity: Optional[str] = None,
        context_required: Optional[bool] = None,
        target: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RouteOutcome:
        task = TaskContext(
            task_type=task_type,
            description=description,
            complexity=complexity,
            context_required=context_required,
            target=target,
            metadata=dict(metadata or {}),
            correlation_id=correlation_id or new_correlation_id(),
        )
        return await self.route(task, timeout=timeout)

    async def route(self, task: TaskContext, *, timeout: Optional[float] = None) -> RouteOutcome:
        logger.info(
            "task_routing",
            task_type=task.task_type,
            complexity=task.complexity,
            correlation_id=task.correlation_id,
        )
        rule = self.matcher.match(task)
        if rule is None:
            logger.warning("no_route", task_type=task.task_type, correlation_id=task.correlation_id)
            return RouteOutcome(result=CallResult.failure(f"No routing rule found for task type: {task.task_type}"))

        deadline = Deadline.after(timeout)
        payload = _task_payload(task)
        action = rule.action
        if isinstance(action, Sequence):
            result = await self.sequences.run(action, payload, task.correlation_id, deadline=deadline)
        else:
            result = await self.executor.invoke(
                action.provider,
                action.tool,
                {**payload, **action.params},
                task.correlation_id,
                fallback=action.fallback,
                deadline=deadline,
            )

        logger.info(
            "task_routed",
            rule=rule.name,
            provider=result.provider,
            tool=result.tool,
            success=result.success,
            correlation_id=task.correlation_id,
        )
        return RouteOutcome(result=result, rule=rule)

    @observe(root=True, redact=("payload",), capture_output=False)
    async def execute_workflow(
        self,
        workflow_name: str,
        payload: Dict[str, Any],
        *,
        correlation_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> WorkflowResult:
        return await self.workflow_engine.run(
            workflow_name,
            payload,
            correlation_id=correlation_id,
            deadline=Deadline.after(timeout),
        )

    # ── introspection ─────────────────────────────────────────────────────

    @trace_method
    def list_available_mcps(self, capability_filter: Optional[str] = None) -> List[CapabilityProvider]:
        if capability_filter:
            return self.registry.filter_by_capability(capability_filter)
        return list(self.registry.list_providers().values())

    @trace_method
    def get_routing_rules(self, task_type: Optional[str] = None) -> List[RoutingRule]:
        return self.matcher.rules_for_task_type(task_type)

    @trace_method
    def list_workflows(self) -> Mapping[str, Workflow]:
        return self.workflow_engine.workflows

    @property
    def fallback_strategies(self) -> List[FallbackStrategy]:
        return list(self.config.fallback_strategies)


def _task_payload(task: TaskContext) -> Dict[str, Any]:
    """Payload sent to the routed tool. Never carries the correlation id."""
    payload: Dict[str, Any] = {"description": task.description}
    if task.metadata:
        payload["metadata"] = task.metadata
    return payload
