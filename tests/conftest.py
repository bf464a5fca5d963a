import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from orchestrator.config import parse_config
from orchestrator.invokers.base import Invoker
from orchestrator.exceptions import ToolInvocationError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInvoker(Invoker):
    """Records every call and answers from a script.

    ``responses`` maps ``(endpoint, tool)`` to a value, an exception instance or
    a callable taking the payload. Unscripted calls echo ``{"tool": ..., "payload": ...}``.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, str], Any]] = None, delay: float = 0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def fail(self, endpoint: str, tool: str, message: str = "boom") -> None:
        self.responses[(endpoint, tool)] = ToolInvocationError(message, endpoint=endpoint, tool=tool)

    def tools_called(self) -> List[Tuple[str, str]]:
        return [(endpoint, tool) for endpoint, tool, _ in self.calls]

    def payload_for(self, tool: str) -> Dict[str, Any]:
        return next(payload for _, t, payload in self.calls if t == tool)

    async def invoke(self, endpoint: str, tool: str, payload: Dict[str, Any]) -> Any:
        self.calls.append((endpoint, tool, payload))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get((endpoint, tool), None)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(payload)
        if response is None:
            return {"tool": tool, "payload": payload}
        return response


SAMPLE_CONFIG: Dict[str, Any] = {
    "providers": {
        "perplexity": {
            "name": "Perplexity",
            "capabilities": ["research", "ai"],
            "tools": {
                "perplexity_ask": {"description": "Ask"},
                "perplexity_research": {"description": "Research"},
            },
        },
        "context7": {
            "name": "Context7",
            "capabilities": ["documentation"],
            "tools": {"get_library_docs": {"description": "Docs"}},
        },
        "linear": {
            "name": "Linear",
            "capabilities": ["project_management"],
            "tools": {
                "create_issue": {"description": "Create"},
                "create_comment": {"description": "Comment"},
            },
        },
        "poe": {
            "name": "Poe",
            "capabilities": ["ai", "code_generation"],
            "tools": {"ask": {"description": "Ask"}, "analyze_code": {"description": "Analyze"}},
        },
        "vercel": {
            "name": "Vercel",
            "capabilities": ["deployment"],
            "tools": {"deploy_project": {"description": "Deploy"}},
        },
    },
    "routing_rules": [
        {
            "name": "deep_research",
            "condition": {"task_type": ["research"], "complexity": ["high"]},
            "action": {"provider": "perplexity", "tool": "perplexity_research"},
        },
        {
            "name": "quick_research",
            "condition": {"task_type": ["research"]},
            "action": {
                "provider": "perplexity",
                "tool": "perplexity_ask",
                "fallback": {"provider": "poe", "tool": "ask"},
            },
        },
        {
            "name": "contextual_code_generation",
            "condition": {"task_type": ["code_generation"], "context_required": True},
            "action": {
                "sequence": [
                    {"provider": "context7", "tool": "get_library_docs", "pass_result_to_next": True},
                    {"provider": "poe", "tool": "ask", "use_previous_result": True},
                ]
            },
        },
        {
            "name": "deployment",
            "condition": {"task_type": ["deployment"], "target": ["vercel"]},
            "action": {"provider": "vercel", "tool": "deploy_project"},
        },
    ],
    "workflows": {
        "bug_fix": {
            "description": "Analyze, research and track a bug",
            "triggers": ["bug", "fix"],
            "steps": [
                {"name": "analyze_bug", "provider": "poe", "tool": "analyze_code"},
                {"name": "research_solution", "provider": "perplexity", "tool": "perplexity_ask",
                 "context_from": ["analyze_bug"]},
                {"name": "get_docs", "provider": "context7", "tool": "get_library_docs",
                 "condition": "library_needed", "optional": True},
                {"name": "create_issue", "provider": "linear", "tool": "create_issue",
                 "context_from": ["analyze_bug", "research_solution"]},
                {"name": "add_comment", "provider": "linear", "tool": "create_comment",
                 "resource_from": "create_issue"},
            ],
        },
        "feature_development": {
            "description": "Research and deploy",
            "triggers": ["feature"],
            "steps": [
                {"name": "research", "provider": "perplexity", "tool": "perplexity_research"},
                {"name": "deploy", "provider": "vercel", "tool": "deploy_project"},
            ],
        },
    },
    "integration_settings": {"result_caching": True, "cache_duration": 300, "max_concurrent_calls": 4},
}


@pytest.fixture
def raw_config() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_CONFIG)


@pytest.fixture
def config(raw_config):
    return parse_config(raw_config)


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_orchestrator(config, invoker):
    """Build an Orchestrator over the sample config, optionally overriding pieces."""
    from orchestrator import Orchestrator

    def _make(cfg=None, *, inv=None, **kwargs):
        return Orchestrator(cfg or config, invoker=inv or invoker, **kwargs)

    return _make
