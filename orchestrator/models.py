"""Data models for the orchestration layer.

Configuration models are frozen dataclasses built once at startup (see
``orchestrator.config``) and never mutated afterwards. Per-call models
(``TaskContext``, ``CallResult``, ``WorkflowRun``, ``WorkflowResult``) are
ephemeral and live for a single request.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

__all__ = [
    "ToolDescriptor",
    "Endpoint",
    "CapabilityProvider",
    "Condition",
    "Fallback",
    "SingleCall",
    "SequenceStep",
    "Sequence",
    "RoutingRule",
    "WorkflowStep",
    "Workflow",
    "LoggingSettings",
    "IntegrationSettings",
    "FallbackStrategy",
    "ModelPreference",
    "OrchestrationConfig",
    "TaskContext",
    "CallResult",
    "WorkflowRun",
    "WorkflowResult",
]


# ── Capability registry ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ToolDescriptor:
    """A single tool exposed by a provider."""

    description: str = ""
    use_cases: List[str] = field(default_factory=list)
    parameters: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Endpoint:
    """Where a provider lives. Opaque to the engine, resolved by the invoker."""

    type: str = "mcp_call"
    server_name: Optional[str] = None
    url: Optional[str] = None
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CapabilityProvider:
    """A registered remote capability source exposing one or more tools."""

    id: str
    name: str
    description: str = ""
    capabilities: List[str] = field(default_factory=list)
    tools: Dict[str, ToolDescriptor] = field(default_factory=dict)
    endpoint: Endpoint = field(default_factory=Endpoint)
    models: Dict[str, str] = field(default_factory=dict)

    @property
    def endpoint_id(self) -> str:
        """Identifier handed to the invocation channel."""
        return self.endpoint.server_name or self.id


# ── Routing rules ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Condition:
    """Routing condition. An unset field always matches."""

    task_type: Optional[List[str]] = None
    complexity: Optional[List[str]] = None
    context_required: Optional[bool] = None
    target: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class Fallback:
    """Alternate call tried once when a single-call action fails."""

    provider: str
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SingleCall:
    provider: str
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)
    fallback: Optional[Fallback] = None


@dataclass(frozen=True)
class SequenceStep:
    provider: str
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)
    use_previous_result: bool = False
    pass_result_to_next: bool = False


@dataclass(frozen=True)
class Sequence:
    sequence: List[SequenceStep]


@dataclass(frozen=True)
class RoutingRule:
    """Declarative condition -> action mapping. Order of declaration matters."""

    name: str
    action: Union[SingleCall, Sequence]
    condition: Condition = field(default_factory=Condition)
    description: str = ""

    @property
    def is_sequence(self) -> bool:
        return isinstance(self.action, Sequence)


# ── Workflows ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorkflowStep:
    """One provider/tool invocation inside a workflow."""

    name: str
    provider: str
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None
    context_from: List[str] = field(default_factory=list)
    resource_from: Optional[str] = None
    optional: bool = False
    creates_resource: Optional[bool] = None

    @property
    def records_resource(self) -> bool:
        """Whether an ``id`` in this step's output is a trackable resource."""
        if self.creates_resource is not None:
            return self.creates_resource
        return self.tool.startswith("create_")


@dataclass(frozen=True)
class Workflow:
    name: str
    steps: List[WorkflowStep]
    description: str = ""
    triggers: List[str] = field(default_factory=list)


# ── Settings ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LoggingSettings:
    level: str = "info"
    include_payloads: bool = False
    include_responses: bool = False
    correlation_tracking: bool = True


@dataclass(frozen=True)
class IntegrationSettings:
    result_caching: bool = True
    cache_duration: float = 300.0  # seconds
    default_timeout: Optional[float] = None  # seconds, per channel call
    max_concurrent_calls: int = 10
    logging: LoggingSettings = field(default_factory=LoggingSettings)


@dataclass(frozen=True)
class FallbackStrategy:
    """Advisory retry/backoff metadata; surfaced for introspection only."""

    condition: str
    strategy: str
    max_retries: Optional[int] = None
    delay_seconds: List[float] = field(default_factory=list)
    mappings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    notification: Optional[str] = None


@dataclass(frozen=True)
class ModelPreference:
    primary: str
    fallback: str


@dataclass(frozen=True)
class OrchestrationConfig:
    providers: Dict[str, CapabilityProvider] = field(default_factory=dict)
    routing_rules: List[RoutingRule] = field(default_factory=list)
    workflows: Dict[str, Workflow] = field(default_factory=dict)
    fallback_strategies: List[FallbackStrategy] = field(default_factory=list)
    integration_settings: IntegrationSettings = field(default_factory=IntegrationSettings)
    model_preferences: Dict[str, ModelPreference] = field(default_factory=dict)


# ── Per-request models ──────────────────────────────────────────────────────

@dataclass
class TaskContext:
    """An ad-hoc task to be routed."""

    task_type: str
    description: str = ""
    complexity: Optional[str] = None
    context_required: Optional[bool] = None
    target: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    correlation_id: str = ""


@dataclass
class CallResult:
    """Outcome of a single remote invocation (or of a whole sequence)."""

    success: bool
    provider: str = ""
    tool: str = ""
    data: Any = None
    error: Optional[str] = None
    execution_time_ms: float = 0.0
    cached: bool = False
    fallback_used: bool = False

    @classmethod
    def failure(cls, error: str, *, provider: str = "", tool: str = "", execution_time_ms: float = 0.0) -> "CallResult":
        return cls(success=False, provider=provider, tool=tool, error=error, execution_time_ms=execution_time_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "provider": self.provider,
            "tool": self.tool,
            "data": self.data if self.success else None,
            "error": self.error,
            "execution_time_ms": self.execution_time_ms,
            "cached": self.cached,
            "fallback_used": self.fallback_used,
        }


@dataclass
class WorkflowRun:
    """Per-execution scratch state. Discarded when the run completes."""

    run_id: str
    outputs: Dict[str, Any] = field(default_factory=dict)
    resources: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowResult:
    success: bool
    run_id: str
    workflow_name: str
    results: List[CallResult] = field(default_factory=list)
    step_names: List[str] = field(default_factory=list)

    @property
    def successful_steps(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_steps(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_execution_time_ms(self) -> float:
        return sum(r.execution_time_ms for r in self.results)
