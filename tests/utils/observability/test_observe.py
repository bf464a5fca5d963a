"""Tests for @observe decorator."""

import asyncio
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

import pytest

from orchestrator.models import CallResult, WorkflowResult
from utils.observability.observe import SECRET_REDACT_KEYS, _safe_preview, observe


@pytest.fixture
def span():
    """Patch the tracer so spans land on a MagicMock."""
    mock_span = MagicMock()
    mock_tracer = MagicMock()
    mock_tracer.start_as_current_span.return_value.__enter__.return_value = mock_span
    with patch("opentelemetry.trace.get_tracer", return_value=mock_tracer):
        mock_span.tracer = mock_tracer
        yield mock_span


def attributes(span):
    return {call.args[0]: call.args[1] for call in span.set_attribute.call_args_list}


class TestSafePreview:
    """Tests for _safe_preview function."""

    def test_preview_primitives(self):
        assert _safe_preview(None) is None
        assert _safe_preview(True) is True
        assert _safe_preview(42) == 42
        assert _safe_preview(3.14) == 3.14

    def test_preview_long_string_truncated(self):
        result = _safe_preview("x" * 1000, max_len=100)

        assert len(result) == 103  # 100 + "..."
        assert result.endswith("...")

    def test_preview_redacts_credentials_in_payloads(self):
        payload = {"description": "deploy", "headers": {"Authorization": "Bearer abc"}, "api-key": "k"}

        result = _safe_preview(payload)

        assert result["description"] == "deploy"
        assert result["headers"]["Authorization"] == "<redacted>"
        assert result["api-key"] == "<redacted>"

    def test_secret_keys_are_normalised(self):
        assert all(key == key.lower() and "_" not in key for key in SECRET_REDACT_KEYS)
        assert _safe_preview({"accessToken": "t", "CLIENT_SECRET": "s"}) == {
            "accessToken": "<redacted>",
            "CLIENT_SECRET": "<redacted>",
        }

    def test_preview_list_truncates_with_marker(self):
        result = _safe_preview(list(range(50)))

        assert len(result) == 21  # 20 items + "..."
        assert result[-1] == "..."

    def test_preview_dict_truncates_with_marker(self):
        result = _safe_preview({f"key{i}": i for i in range(50)})

        assert result["..."] == "30 more keys"
        assert len([k for k in result if k != "..."]) == 20

    def test_preview_dataclass(self):
        @dataclass
        class Endpoint:
            url: str
            token: str

        assert _safe_preview(Endpoint(url="https://mcp.linear.app", token="secret")) == {
            "url": "https://mcp.linear.app",
            "token": "<redacted>",
        }


class TestObserveDecorator:
    """Tests for @observe decorator."""

    def test_observe_preserves_function_metadata(self):
        @observe
        def route():
            """Route a task."""
            return 42

        assert route.__name__ == "route"
        assert route.__doc__ == "Route a task."

    def test_observe_sync_function(self, span):
        @observe
        def double(x):
            return x * 2

        assert double(21) == 42
        span_name = span.tracer.start_as_current_span.call_args[0][0]
        assert span_name.endswith("double")
        assert "duration_ms" in attributes(span)

    def test_observe_async_function(self, span):
        @observe
        async def fetch(provider, tool):
            await asyncio.sleep(0)
            return {"provider": provider, "tool": tool}

        assert asyncio.run(fetch("poe", "ask")) == {"provider": "poe", "tool": "ask"}
        assert '"provider":"poe"' in attributes(span)["input"]

    def test_observe_root_marks_span(self, span):
        @observe(root=True)
        async def execute_workflow():
            return "done"

        asyncio.run(execute_workflow())
        assert attributes(span)["orchestrator.root"] is True

    def test_observe_records_call_results(self, span):
        @observe
        async def invoke():
            return CallResult(success=False, provider="poe", tool="ask", error="down", execution_time_ms=12.5)

        asyncio.run(invoke())
        attrs = attributes(span)
        assert attrs["result_success"] is False
        assert attrs["execution_time_ms"] == 12.5

    def test_observe_records_workflow_step_count(self, span):
        @observe
        def run():
            return WorkflowResult(success=True, run_id="r", workflow_name="bug_fix", results=[
                CallResult(success=True), CallResult(success=True),
            ])

        run()
        assert attributes(span)["steps_executed"] == 2

    def test_observe_records_and_propagates_exceptions(self, span):
        @observe
        async def failing():
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            asyncio.run(failing())
        span.record_exception.assert_called_once()
        span.set_status.assert_called_once()

    def test_observe_skips_self_in_inputs(self, span):
        class Engine:
            @observe
            def run(self, workflow_name):
                return workflow_name

        Engine().run("bug_fix")
        assert "self" not in attributes(span)["input"]
        assert "bug_fix" in attributes(span)["input"]

    def test_observe_redacts_named_arguments_and_output(self, span):
        @observe(redact=("payload",), capture_output=False)
        async def invoke(provider, payload):
            return CallResult(success=True, provider=provider, data={"answer": "private"})

        asyncio.run(invoke("poe", {"description": "private"}))
        attrs = attributes(span)
        assert "private" not in attrs["input"]
        assert '"payload":"<redacted>"' in attrs["input"]
        assert '"provider":"poe"' in attrs["input"]
        assert "output" not in attrs
        assert attrs["result_success"] is True
