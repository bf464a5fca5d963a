"""
Tool-facing handlers around the orchestrator's entry points.

Each handler validates its arguments, calls the engine and formats the JSON
envelope ``{success, data | error, metadata}``. Handlers are transport-free;
``orchestrator.server`` exposes them as MCP tools.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from pydantic import ValidationError

from orchestrator import __version__
from orchestrator.models import (
    CapabilityProvider,
    RoutingRule,
    SingleCall,
    Workflow,
    WorkflowStep,
)
from orchestrator.orchestrator import Orchestrator
from orchestrator.schemas import (
    ExecuteWorkflowArgs,
    GetRoutingRulesArgs,
    ListMCPsArgs,
    ResponseMetadata,
    RouteTaskArgs,
    ToolResponse,
)
from utils.logger import get_logger

logger = get_logger(__name__)

Handler = TypeVar("Handler", bound=Callable[..., Awaitable[Dict[str, Any]]])

SECONDS_PER_STEP = 5
AI_STEP_SECONDS = 20
DEPLOY_STEP_SECONDS = 30
AI_CAPABILITIES = {"ai", "research"}
DEPLOY_CAPABILITIES = {"deployment"}


def envelope(success: bool, *, data: Optional[Dict[str, Any]] = None, error: Optional[str] = None,
             execution_time_ms: float = 0.0) -> Dict[str, Any]:
    response = ToolResponse(
        success=success,
        data=data,
        error=error,
        metadata=ResponseMetadata(execution_time_ms=execution_time_ms, version=__version__),
    )
    return {k: v for k, v in response.model_dump(mode="json").items() if v is not None}


def guarded(tool_name: str) -> Callable[[Handler], Handler]:
    """Turn argument errors and unexpected exceptions into failure envelopes."""

    def decorate(fn: Handler) -> Handler:
        @wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                return await fn(*args, **kwargs)
            except ValidationError as exc:
                logger.warning("tool_arguments_invalid", tool=tool_name, error=str(exc))
                return envelope(False, error=f"Invalid arguments for {tool_name}: {exc}")
            except Exception as exc:
                logger.exception("tool_failed", tool=tool_name, error=str(exc))
                return envelope(False, error=str(exc) or exc.__class__.__name__)
        return wrapper  # type: ignore[return-value]

    return decorate


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


# ── route_task ──────────────────────────────────────────────────────────────

@guarded("route_task")
async def route_task(orchestrator: Orchestrator, arguments: Dict[str, Any]) -> Dict[str, Any]:
    args = RouteTaskArgs.model_validate(arguments)
    outcome = await orchestrator.route_task(
        args.task_type,
        args.description,
        complexity=args.complexity,
        context_required=args.context_required,
        target=args.target,
        metadata=args.metadata,
        timeout=args.timeout_seconds,
    )
    result = outcome.result
    if not result.success:
        return envelope(False, error=result.error, execution_time_ms=result.execution_time_ms)

    rule_name = outcome.rule.name if outcome.rule else None
    return envelope(
        True,
        data={
            "routed_to": {"provider": result.provider, "tool": result.tool},
            "rule": rule_name,
            "result": result.data,
            "execution_time_ms": result.execution_time_ms,
            "cached": result.cached,
            "fallback_used": result.fallback_used,
            "routing_explanation": (
                f"Task '{args.task_type}' was routed to {result.provider}.{result.tool} by rule "
                f"'{rule_name}' based on complexity: {args.complexity or 'auto-detected'}"
            ),
        },
        execution_time_ms=result.execution_time_ms,
    )


# ── execute_workflow ────────────────────────────────────────────────────────

@guarded("execute_workflow")
async def execute_workflow(orchestrator: Orchestrator, arguments: Dict[str, Any]) -> Dict[str, Any]:
    args = ExecuteWorkflowArgs.model_validate(arguments)
    run = await orchestrator.execute_workflow(args.workflow_name, args.payload(), timeout=args.timeout_seconds)

    results = []
    for index, result in enumerate(run.results):
        results.append({
            "step": run.step_names[index] if index < len(run.step_names) else None,
            "provider": result.provider,
            "tool": result.tool,
            "success": result.success,
            "execution_time_ms": result.execution_time_ms,
            "error": result.error,
            "data": result.data if result.success else None,
        })

    steps = len(run.results)
    summary = (
        f"Workflow '{args.workflow_name}' completed successfully with {steps} steps"
        if run.success
        else f"Workflow '{args.workflow_name}' failed after {steps} steps"
    )
    return envelope(
        run.success,
        data={
            "workflow_id": run.run_id,
            "workflow_name": args.workflow_name,
            "steps_executed": steps,
            "successful_steps": run.successful_steps,
            "failed_steps": run.failed_steps,
            "results": results,
            "summary": summary,
        },
        error=None if run.success else next(r.error for r in run.results if not r.success),
        execution_time_ms=run.total_execution_time_ms,
    )


# ── introspection ───────────────────────────────────────────────────────────

def describe_provider(provider: CapabilityProvider) -> Dict[str, Any]:
    return {
        "id": provider.id,
        "name": provider.name,
        "description": provider.description,
        "capabilities": list(provider.capabilities),
        "endpoint_type": provider.endpoint.type,
        "tools": list(provider.tools),
        "tool_details": [
            {"name": name, "description": tool.description, "use_cases": list(tool.use_cases)}
            for name, tool in provider.tools.items()
        ],
        "models": dict(provider.models) or None,
    }


@guarded("list_available_mcps")
async def list_available_mcps(orchestrator: Orchestrator, arguments: Dict[str, Any]) -> Dict[str, Any]:
    args = ListMCPsArgs.model_validate(arguments)
    providers = orchestrator.list_available_mcps(args.capability_filter)
    summaries = [describe_provider(p) for p in providers]
    return envelope(True, data={
        "total_mcps": len(summaries),
        "filtered_by": args.capability_filter or "none",
        "mcps": summaries,
        "capability_summary": _unique(tag for p in providers for tag in p.capabilities),
        "total_tools": sum(len(s["tools"]) for s in summaries),
    })


def describe_rule(rule: RoutingRule) -> Dict[str, Any]:
    action = rule.action
    summary: Dict[str, Any] = {"name": rule.name, "condition": rule.condition.to_dict()}
    if isinstance(action, SingleCall):
        summary["primary_action"] = {"provider": action.provider, "tool": action.tool, "params": dict(action.params)}
        summary["fallback"] = (
            {"provider": action.fallback.provider, "tool": action.fallback.tool, "params": dict(action.fallback.params)}
            if action.fallback else None
        )
        target = f"{action.provider}.{action.tool}"
    else:
        summary["sequence_actions"] = [
            {"provider": s.provider, "tool": s.tool, "params": dict(s.params)} for s in action.sequence
        ]
        target = "sequence"
    task_types = ", ".join(rule.condition.task_type or []) or "tasks"
    summary["description"] = rule.description or f"Routes {task_types} to {target}"
    return summary


@guarded("get_routing_rules")
async def get_routing_rules(orchestrator: Orchestrator, arguments: Dict[str, Any]) -> Dict[str, Any]:
    args = GetRoutingRulesArgs.model_validate(arguments)
    rules = orchestrator.get_routing_rules(args.task_type)
    return envelope(True, data={
        "total_rules": len(rules),
        "filtered_by": args.task_type or "none",
        "rules": [describe_rule(r) for r in rules],
        "task_types_covered": _unique(t for r in rules for t in (r.condition.task_type or [])),
        "complexity_levels": _unique(c for r in rules for c in (r.condition.complexity or [])),
    })


def estimate_duration(steps: List[WorkflowStep], orchestrator: Orchestrator) -> str:
    total = len(steps) * SECONDS_PER_STEP
    for step in steps:
        provider = orchestrator.registry.get_provider(step.provider)
        tags = set(provider.capabilities) if provider else set()
        if tags & AI_CAPABILITIES:
            total += AI_STEP_SECONDS
        if tags & DEPLOY_CAPABILITIES:
            total += DEPLOY_STEP_SECONDS
    return f"{total}s"


def describe_workflow(workflow: Workflow, orchestrator: Orchestrator) -> Dict[str, Any]:
    return {
        "name": workflow.name,
        "description": workflow.description,
        "triggers": list(workflow.triggers),
        "step_count": len(workflow.steps),
        "steps": [
            {
                "name": s.name,
                "provider": s.provider,
                "tool": s.tool,
                "optional": s.optional,
                "conditional": s.condition is not None,
            }
            for s in workflow.steps
        ],
        "providers_involved": _unique(s.provider for s in workflow.steps),
        "estimated_duration": estimate_duration(workflow.steps, orchestrator),
    }


@guarded("list_workflows")
async def list_workflows(orchestrator: Orchestrator, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    summaries = [describe_workflow(w, orchestrator) for w in orchestrator.list_workflows().values()]
    return envelope(True, data={
        "total_workflows": len(summaries),
        "workflows": summaries,
        "available_triggers": _unique(t for w in summaries for t in w["triggers"]),
        "providers_used": _unique(p for w in summaries for p in w["providers_involved"]),
    })
