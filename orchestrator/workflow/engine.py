"""
Workflow engine: runs a named, pre-declared workflow step by step.

Steps execute strictly in declaration order. Each step may be gated by a named
condition (evaluated against the original payload), may pull recorded outputs
of earlier steps into ``payload["context"]`` and may receive the resource id
created by an earlier step as ``payload["id"]``. A failing step halts the run
unless it is declared ``optional``. An optional failure is recorded and the run
continues, but the run is only successful when every executed step succeeded.
Workflow steps never use a fallback.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional

from orchestrator.deadline import Deadline
from orchestrator.executor import CallExecutor
from orchestrator.models import CallResult, Workflow, WorkflowResult, WorkflowRun, WorkflowStep
from orchestrator.workflow.conditions import evaluate_condition
from utils.logger import get_logger
from utils.observability import observe

logger = get_logger(__name__)

CONTEXT_FIELD = "context"
RESOURCE_ID_FIELD = "id"


def new_run_id() -> str:
    return uuid.uuid4().hex[:21]


class WorkflowEngine:
    def __init__(self, *, workflows: Mapping[str, Workflow], executor: CallExecutor):
        self._workflows = dict(workflows)
        self.executor = executor

    @property
    def workflows(self) -> Mapping[str, Workflow]:
        return dict(self._workflows)

    def get(self, name: str) -> Optional[Workflow]:
        return self._workflows.get(name)

    @observe(root=True, redact=("payload",), capture_output=False)
    async def run(
        self,
        workflow_name: str,
        payload: Dict[str, Any],
        correlation_id: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> WorkflowResult:
        run_id = new_run_id()
        correlation_id = correlation_id or payload.get("correlation_id") or run_id

        workflow = self._workflows.get(workflow_name)
        if workflow is None:
            logger.warning("workflow_not_found", workflow=workflow_name, correlation_id=correlation_id)
            return WorkflowResult(
                success=False,
                run_id=run_id,
                workflow_name=workflow_name,
                results=[CallResult.failure(f"Workflow '{workflow_name}' not found")],
            )

        logger.info("workflow_started", workflow=workflow_name, run_id=run_id, correlation_id=correlation_id)
        run = WorkflowRun(run_id=run_id)
        outcome = WorkflowResult(success=True, run_id=run_id, workflow_name=workflow_name)

        for step in workflow.steps:
            if not evaluate_condition(step.condition, payload):
                logger.info(
                    "workflow_step_skipped",
                    run_id=run_id,
                    step=step.name,
                    condition=step.condition,
                    correlation_id=correlation_id,
                )
                continue

            if deadline is not None and deadline.expired:
                result = CallResult.failure(
                    f"Deadline exceeded before step '{step.name}'", provider=step.provider, tool=step.tool
                )
            else:
                logger.info(
                    "workflow_step_started",
                    run_id=run_id,
                    step=step.name,
                    provider=step.provider,
                    tool=step.tool,
                    correlation_id=correlation_id,
                )
                step_payload = self._assemble_payload(step, payload, run)
                result = await self.executor.invoke(step.provider, step.tool, step_payload, correlation_id, deadline=deadline)

            self._record(step, result, run, outcome)

            if not result.success:
                outcome.success = False
                if step.optional and not (deadline is not None and deadline.expired):
                    logger.warning(
                        "optional_step_failed",
                        run_id=run_id,
                        step=step.name,
                        error=result.error,
                        correlation_id=correlation_id,
                    )
                    continue
                logger.error(
                    "workflow_halted",
                    run_id=run_id,
                    step=step.name,
                    error=result.error,
                    correlation_id=correlation_id,
                )
                break

        logger.info(
            "workflow_completed",
            workflow=workflow_name,
            run_id=run_id,
            success=outcome.success,
            steps_executed=len(outcome.results),
            correlation_id=correlation_id,
        )
        return outcome

    @staticmethod
    def _assemble_payload(step: WorkflowStep, payload: Dict[str, Any], run: WorkflowRun) -> Dict[str, Any]:
        step_payload = {**payload, **step.params}

        context_entries = {name: run.outputs[name] for name in step.context_from if run.outputs.get(name) is not None}
        if context_entries:
            existing = step_payload.get(CONTEXT_FIELD)
            base = dict(existing) if isinstance(existing, dict) else {}
            step_payload[CONTEXT_FIELD] = {**base, **context_entries}

        if step.resource_from is not None and step.resource_from in run.resources:
            step_payload[RESOURCE_ID_FIELD] = run.resources[step.resource_from]
        return step_payload

    @staticmethod
    def _record(step: WorkflowStep, result: CallResult, run: WorkflowRun, outcome: WorkflowResult) -> None:
        outcome.results.append(result)
        outcome.step_names.append(step.name)
        run.outputs[step.name] = result.data
        if (
            result.success
            and step.records_resource
            and isinstance(result.data, dict)
            and result.data.get(RESOURCE_ID_FIELD) is not None
        ):
            run.resources[step.name] = result.data[RESOURCE_ID_FIELD]
