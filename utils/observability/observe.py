"""Simple, minimal tracing decorator for the orchestrator."""

from __future__ import annotations

from functools import wraps
from inspect import iscoroutinefunction, signature
from typing import Any, Callable, Iterable, Optional
from dataclasses import is_dataclass, asdict
import json
import time

SECRET_REDACT_KEYS = {
    "apikey", "accesstoken", "refreshtoken", "clientsecret", "secret", "password",
    "authorization", "bearer", "cookie", "setcookie", "privatekey", "sshkey", "token",
}


def observe(
    _fn: Optional[Callable[..., Any]] = None,
    *,
    root: bool = False,
    redact: Iterable[str] = (),
    capture_output: bool = True,
) -> Callable[..., Any]:
    """Minimal tracing decorator.

    Usage:
        @observe
        def my_function(): ...

        @observe
        async def my_coroutine(): ...

        @observe(root=True)
        async def execute_workflow(): ...

        @observe(redact=("payload",), capture_output=False)
        async def invoke(provider, tool, payload): ...

    - Auto-names spans from function module.qualname
    - Records timing, exceptions, basic I/O
    - Marks entry-point spans with ``orchestrator.root`` when root=True
    - Arguments named in ``redact`` are recorded as ``<redacted>``; with
      capture_output=False only the structured result attributes are kept
    - No-op if OpenTelemetry unavailable
    """

    def _decorate(fn: Callable[..., Any]) -> Callable[..., Any]:
        module = getattr(fn, "__module__", "") or ""
        qualname = getattr(fn, "__qualname__", fn.__name__)
        span_name = f"{module}.{qualname}" if module else qualname
        hidden = frozenset(redact)

        if iscoroutinefunction(fn):
            @wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                tracer = _get_tracer()
                if tracer is None:
                    return await fn(*args, **kwargs)
                with _Span(tracer, span_name, fn, args, kwargs, root, hidden) as span:
                    result = await fn(*args, **kwargs)
                    _capture_output(span, result, capture_output)
                    return result
            return async_wrapper

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = _get_tracer()
            if tracer is None:
                return fn(*args, **kwargs)
            with _Span(tracer, span_name, fn, args, kwargs, root, hidden) as span:
                result = fn(*args, **kwargs)
                _capture_output(span, result, capture_output)
                return result
        return wrapper

    # Support both @observe and @observe() forms
    if callable(_fn):
        return _decorate(_fn)
    return _decorate


def _get_tracer() -> Any:
    try:
        from opentelemetry import trace
    except ImportError:
        return None
    return trace.get_tracer("capability-orchestrator")


class _Span:
    """Context manager that opens a span, captures inputs, timing and errors."""

    def __init__(self, tracer: Any, name: str, fn: Callable, args: tuple, kwargs: dict, root: bool,
                 hidden: frozenset = frozenset()):
        self._tracer = tracer
        self._name = name
        self._fn = fn
        self._args = args
        self._kwargs = kwargs
        self._root = root
        self._hidden = hidden
        self._cm = None
        self._span = None
        self._start = 0.0

    def __enter__(self) -> Any:
        self._start = time.perf_counter()
        self._cm = self._tracer.start_as_current_span(self._name)
        self._span = self._cm.__enter__()
        if self._root:
            self._span.set_attribute("orchestrator.root", True)
        _capture_input(self._span, self._fn, self._args, self._kwargs, self._hidden)
        return self._span

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            from opentelemetry import trace
            self._span.record_exception(exc)
            self._span.set_status(trace.Status(trace.StatusCode.ERROR))
        self._span.set_attribute("duration_ms", int((time.perf_counter() - self._start) * 1000))
        self._cm.__exit__(exc_type, exc, tb)
        return False


def _safe_preview(val: Any, max_len: int = 512) -> Any:
    """Create safe preview of any value, redacting secret-looking keys."""
    if val is None or isinstance(val, (bool, int, float)):
        return val
    if isinstance(val, str):
        return val if len(val) <= max_len else val[:max_len] + "..."
    if isinstance(val, dict):
        preview = {
            str(k): ("<redacted>" if _normalise_key(k) in SECRET_REDACT_KEYS else _safe_preview(v, max_len))
            for k, v in list(val.items())[:20]
        }
        if len(val) > 20:
            preview["..."] = f"{len(val) - 20} more keys"
        return preview
    if isinstance(val, (list, tuple)):
        items = [_safe_preview(v, max_len) for v in list(val)[:20]]
        return items + ["..."] if len(val) > 20 else items
    if is_dataclass(val) and not isinstance(val, type):
        return _safe_preview(asdict(val), max_len)
    if hasattr(val, "model_dump"):
        return _safe_preview(val.model_dump(), max_len)
    return repr(val)[:max_len]


def _normalise_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def _capture_input(span: Any, fn: Callable, args: tuple, kwargs: dict, hidden: frozenset = frozenset()) -> None:
    """Capture function inputs with smart previews and redaction."""
    try:
        bound = signature(fn).bind_partial(*args, **kwargs)
        inputs = {
            name: "<redacted>" if name in hidden else _safe_preview(value)
            for name, value in bound.arguments.items()
            if name not in {"self", "cls"}
        }
        input_str = json.dumps(inputs, ensure_ascii=False, separators=(",", ":"), default=str)
        span.set_attribute("input", input_str[:6144] + ("..." if len(input_str) > 6144 else ""))
    except (TypeError, ValueError):
        pass


def _capture_output(span: Any, result: Any, full: bool = True) -> None:
    """Capture outputs; CallResult/WorkflowResult-like values get structured attributes."""
    try:
        if hasattr(result, "success"):
            span.set_attribute("result_success", bool(result.success))
        if hasattr(result, "execution_time_ms"):
            span.set_attribute("execution_time_ms", float(result.execution_time_ms or 0))
        if hasattr(result, "results") and isinstance(result.results, list):
            span.set_attribute("steps_executed", len(result.results))
        if full:
            span.set_attribute("output", str(_safe_preview(result))[:8192])
    except (TypeError, ValueError):
        pass
