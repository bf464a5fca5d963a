import asyncio

import pytest

from orchestrator.cache import ResultCache
from orchestrator.deadline import Deadline
from orchestrator.executor import CallExecutor
from orchestrator.models import Workflow, WorkflowStep
from orchestrator.registry import CapabilityRegistry
from orchestrator.workflow import WorkflowEngine


@pytest.fixture
def executor(config, invoker):
    return CallExecutor(
        registry=CapabilityRegistry(config.providers),
        invoker=invoker,
        cache=ResultCache(enabled=False),
    )


@pytest.fixture
def engine(config, executor):
    return WorkflowEngine(workflows=config.workflows, executor=executor)


@pytest.fixture
def scripted(invoker):
    invoker.responses.update({
        ("poe", "analyze_code"): {"root_cause": "null pointer"},
        ("perplexity", "perplexity_ask"): {"fix": "add a guard"},
        ("context7", "get_library_docs"): {"docs": "..."},
        ("linear", "create_issue"): {"id": "ISS-42", "url": "https://linear.app/ISS-42"},
        ("linear", "create_comment"): {"ok": True},
    })
    return invoker


def test_bug_fix_runs_every_applicable_step(engine, scripted):
    result = asyncio.run(engine.run("bug_fix", {"description": "crash on save"}))

    assert result.success
    # get_docs is gated on library_needed and the payload has no library
    assert result.step_names == ["analyze_bug", "research_solution", "create_issue", "add_comment"]
    assert ("context7", "get_library_docs") not in scripted.tools_called()
    assert result.successful_steps == 4 and result.failed_steps == 0
    assert len(result.run_id) == 21


def test_context_from_merges_earlier_outputs(engine, scripted):
    asyncio.run(engine.run("bug_fix", {"description": "crash"}))

    research = scripted.payload_for("perplexity_ask")
    assert research["context"] == {"analyze_bug": {"root_cause": "null pointer"}}
    issue = scripted.payload_for("create_issue")
    assert issue["context"] == {
        "analyze_bug": {"root_cause": "null pointer"},
        "research_solution": {"fix": "add a guard"},
    }
    assert issue["description"] == "crash"


def test_existing_context_is_extended_not_mutated(engine, scripted):
    payload = {"description": "crash", "context": {"reporter": "qa"}}
    asyncio.run(engine.run("bug_fix", payload))

    assert scripted.payload_for("perplexity_ask")["context"] == {
        "reporter": "qa",
        "analyze_bug": {"root_cause": "null pointer"},
    }
    assert payload["context"] == {"reporter": "qa"}


def test_resource_id_flows_to_later_step(engine, scripted):
    asyncio.run(engine.run("bug_fix", {"description": "crash"}))

    assert scripted.payload_for("create_comment")["id"] == "ISS-42"
    assert "id" not in scripted.payload_for("create_issue")


def test_mandatory_failure_halts_the_run(engine, scripted):
    scripted.fail("linear", "create_issue", "linear unavailable")

    result = asyncio.run(engine.run("bug_fix", {"description": "crash"}))

    assert not result.success
    assert result.step_names == ["analyze_bug", "research_solution", "create_issue"]
    assert [r.success for r in result.results] == [True, True, False]
    assert ("linear", "create_comment") not in scripted.tools_called()


def test_optional_failure_continues_but_fails_the_run(engine, scripted):
    scripted.fail("context7", "get_library_docs", "docs offline")

    result = asyncio.run(engine.run("bug_fix", {"description": "crash", "library": "react"}))

    assert result.success is False
    assert result.step_names == ["analyze_bug", "research_solution", "get_docs", "create_issue", "add_comment"]
    assert result.failed_steps == 1
    assert "docs offline" in result.results[2].error


def test_unknown_workflow_is_a_failed_result(engine, scripted):
    result = asyncio.run(engine.run("deploy_to_mars", {"description": "x"}))

    assert not result.success
    assert len(result.results) == 1
    assert result.results[0].error == "Workflow 'deploy_to_mars' not found"
    assert scripted.calls == []


def test_conditions_read_the_original_payload(executor, invoker):
    workflow = Workflow(name="docs", steps=[
        WorkflowStep(name="docs", provider="context7", tool="get_library_docs",
                     params={"library": "react"}, condition="library_needed"),
        WorkflowStep(name="answer", provider="poe", tool="ask"),
    ])
    engine = WorkflowEngine(workflows={"docs": workflow}, executor=executor)

    result = asyncio.run(engine.run("docs", {"description": "x"}))

    assert result.step_names == ["answer"]


def test_unknown_condition_runs_the_step(executor, invoker):
    workflow = Workflow(name="w", steps=[
        WorkflowStep(name="ask", provider="poe", tool="ask", condition="moon_is_full"),
    ])
    engine = WorkflowEngine(workflows={"w": workflow}, executor=executor)

    result = asyncio.run(engine.run("w", {}))

    assert result.step_names == ["ask"]


def test_explicit_creates_resource_overrides_tool_name(executor, invoker):
    invoker.responses[("linear", "create_issue")] = {"id": "ISS-1"}
    invoker.responses[("vercel", "deploy_project")] = {"id": "dpl-9"}
    workflow = Workflow(name="w", steps=[
        WorkflowStep(name="draft", provider="linear", tool="create_issue", creates_resource=False),
        WorkflowStep(name="deploy", provider="vercel", tool="deploy_project", creates_resource=True),
        WorkflowStep(name="note_draft", provider="linear", tool="create_comment", resource_from="draft"),
        WorkflowStep(name="note_deploy", provider="poe", tool="ask", resource_from="deploy"),
    ])
    engine = WorkflowEngine(workflows={"w": workflow}, executor=executor)

    asyncio.run(engine.run("w", {}))

    assert "id" not in invoker.payload_for("create_comment")
    assert invoker.payload_for("ask")["id"] == "dpl-9"


def test_step_params_override_payload(executor, invoker):
    workflow = Workflow(name="w", steps=[
        WorkflowStep(name="ask", provider="poe", tool="ask", params={"model": "fast"}),
    ])
    engine = WorkflowEngine(workflows={"w": workflow}, executor=executor)

    asyncio.run(engine.run("w", {"model": "slow", "description": "x"}))

    assert invoker.payload_for("ask") == {"model": "fast", "description": "x"}


def test_deadline_expiry_stops_the_run(engine, scripted, clock):
    def slow_analysis(payload):
        clock.advance(10)
        return {"root_cause": "slow"}

    scripted.responses[("poe", "analyze_code")] = slow_analysis
    deadline = Deadline(5, clock=clock)

    result = asyncio.run(engine.run("bug_fix", {"description": "crash"}, deadline=deadline))

    assert not result.success
    assert result.step_names == ["analyze_bug", "research_solution"]
    assert "Deadline exceeded" in result.results[1].error
    assert scripted.tools_called() == [("poe", "analyze_code")]


def test_workflows_mapping_is_a_copy(engine):
    engine.workflows.clear()
    assert engine.get("bug_fix") is not None
