"""Executes a rule's ad-hoc multi-step action."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from orchestrator.deadline import Deadline
from orchestrator.executor import CallExecutor
from orchestrator.models import CallResult, Sequence
from utils.logger import get_logger
from utils.observability import observe

logger = get_logger(__name__)

SEQUENCE_PROVIDER = "sequence"
SEQUENCE_TOOL = "multi-step"
PREVIOUS_RESULT_FIELD = "previous_result"


class SequenceExecutor:
    """Runs sequence steps in order, short-circuiting on the first failure."""

    def __init__(self, executor: CallExecutor):
        self.executor = executor

    @observe(redact=("payload",), capture_output=False)
    async def run(
        self,
        sequence: Sequence,
        payload: Dict[str, Any],
        correlation_id: str,
        deadline: Optional[Deadline] = None,
    ) -> CallResult:
        outputs: List[Any] = []
        base = dict(payload)
        total_ms = 0.0

        for index, step in enumerate(sequence.sequence):
            step_payload = {**base, **step.params}
            if step.use_previous_result and outputs:
                step_payload[PREVIOUS_RESULT_FIELD] = outputs[-1]

            result = await self.executor.invoke(step.provider, step.tool, step_payload, correlation_id, deadline=deadline)
            total_ms += result.execution_time_ms
            if not result.success:
                logger.warning(
                    "sequence_aborted",
                    step_index=index,
                    provider=step.provider,
                    tool=step.tool,
                    correlation_id=correlation_id,
                    error=result.error,
                )
                return result

            outputs.append(result.data)
            # Cumulative: every later step sees the merged data
            if step.pass_result_to_next and isinstance(result.data, dict):
                base = {**base, **result.data}

        logger.info("sequence_completed", steps=len(outputs), correlation_id=correlation_id)
        return CallResult(
            success=True,
            provider=SEQUENCE_PROVIDER,
            tool=SEQUENCE_TOOL,
            data=outputs,
            execution_time_ms=round(total_ms, 3),
        )
