import asyncio

import pytest

from orchestrator.cache import ResultCache
from orchestrator.executor import CallExecutor
from orchestrator.models import Sequence, SequenceStep
from orchestrator.registry import CapabilityRegistry
from orchestrator.routing import SequenceExecutor
from orchestrator.routing.sequence import PREVIOUS_RESULT_FIELD, SEQUENCE_PROVIDER, SEQUENCE_TOOL


@pytest.fixture
def sequences(config, invoker):
    executor = CallExecutor(
        registry=CapabilityRegistry(config.providers),
        invoker=invoker,
        cache=ResultCache(enabled=False),
    )
    return SequenceExecutor(executor)


def test_steps_run_in_order_and_collect_outputs(sequences, invoker):
    invoker.responses[("context7", "get_library_docs")] = {"docs": "react hooks"}
    invoker.responses[("poe", "ask")] = {"code": "useEffect(...)"}
    sequence = Sequence(sequence=[
        SequenceStep(provider="context7", tool="get_library_docs"),
        SequenceStep(provider="poe", tool="ask"),
    ])

    result = asyncio.run(sequences.run(sequence, {"description": "hooks"}, "cid"))

    assert result.success
    assert (result.provider, result.tool) == (SEQUENCE_PROVIDER, SEQUENCE_TOOL)
    assert result.data == [{"docs": "react hooks"}, {"code": "useEffect(...)"}]
    assert invoker.tools_called() == [("context7", "get_library_docs"), ("poe", "ask")]


def test_use_previous_result_injects_last_output(sequences, invoker):
    invoker.responses[("context7", "get_library_docs")] = {"docs": "d"}
    sequence = Sequence(sequence=[
        SequenceStep(provider="context7", tool="get_library_docs"),
        SequenceStep(provider="poe", tool="ask", use_previous_result=True),
    ])

    asyncio.run(sequences.run(sequence, {"description": "x"}, "cid"))

    assert invoker.payload_for("ask")[PREVIOUS_RESULT_FIELD] == {"docs": "d"}
    assert PREVIOUS_RESULT_FIELD not in invoker.payload_for("get_library_docs")


def test_pass_result_to_next_merges_into_later_payloads(sequences, invoker):
    invoker.responses[("context7", "get_library_docs")] = {"docs": "d", "version": "18"}
    sequence = Sequence(sequence=[
        SequenceStep(provider="context7", tool="get_library_docs", pass_result_to_next=True),
        SequenceStep(provider="poe", tool="analyze_code"),
        SequenceStep(provider="poe", tool="ask"),
    ])

    asyncio.run(sequences.run(sequence, {"description": "x"}, "cid"))

    assert invoker.payload_for("analyze_code") == {"description": "x", "docs": "d", "version": "18"}
    assert invoker.payload_for("ask")["docs"] == "d"


def test_first_failure_aborts_the_sequence(sequences, invoker):
    invoker.fail("context7", "get_library_docs", "docs offline")
    sequence = Sequence(sequence=[
        SequenceStep(provider="context7", tool="get_library_docs"),
        SequenceStep(provider="poe", tool="ask"),
    ])

    result = asyncio.run(sequences.run(sequence, {}, "cid"))

    assert not result.success
    assert result.provider == "context7"
    assert "docs offline" in result.error
    assert invoker.tools_called() == [("context7", "get_library_docs")]
