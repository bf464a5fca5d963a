"""Argument and response models for the tool-facing API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "RouteTaskArgs",
    "ExecuteWorkflowArgs",
    "ListMCPsArgs",
    "GetRoutingRulesArgs",
    "ResponseMetadata",
    "ToolResponse",
]


class RouteTaskArgs(BaseModel):
    task_type: str = Field(min_length=1, description="Type of task (research, code_generation, bug_report, etc.)")
    description: str = Field(description="Description of the task to route")
    complexity: Optional[Literal["low", "medium", "high"]] = Field(default=None, description="Task complexity level")
    context_required: Optional[bool] = Field(default=None, description="Whether the task requires codebase context")
    target: Optional[str] = Field(default=None, description="Target platform or system")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Additional task metadata")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Overall deadline for the task")


class ExecuteWorkflowArgs(BaseModel):
    """Workflow arguments. Unknown fields are kept and become part of the payload."""

    model_config = ConfigDict(extra="allow")

    workflow_name: str = Field(min_length=1, description="Name of the workflow to execute")
    description: str = Field(description="Description of what needs to be accomplished")
    library: Optional[str] = Field(default=None, description="Library or technology involved")
    codebase: Optional[str] = Field(default=None, description="Codebase or repository context")
    issue_title: Optional[str] = Field(default=None, description="Title for any issues to be created")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Additional workflow context")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Overall deadline for the run")

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"workflow_name", "timeout_seconds"})


class ListMCPsArgs(BaseModel):
    capability_filter: Optional[str] = Field(default=None, description="Filter by capability (research, deployment, etc.)")


class GetRoutingRulesArgs(BaseModel):
    task_type: Optional[str] = Field(default=None, description="Filter rules by task type")


class ResponseMetadata(BaseModel):
    execution_time_ms: float = 0.0
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    version: str = ""


class ToolResponse(BaseModel):
    """Envelope returned by every tool: explicit success flag plus data or error."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
