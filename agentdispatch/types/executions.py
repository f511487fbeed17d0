"""Execution record and workflow engine data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ExecutionStatus(str, Enum):
    """Dispatch state machine states."""

    INITIATED = "initiated"
    SUCCESS = "success"
    FAILED = "failed"
    WEBHOOK_FAILED = "webhook_failed"
    CRITICAL_FAILURE = "critical_failure"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.INITIATED


# Legal transitions; success -> webhook_failed is the only double transition.
TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.INITIATED: frozenset({
        ExecutionStatus.SUCCESS,
        ExecutionStatus.FAILED,
        ExecutionStatus.WEBHOOK_FAILED,
        ExecutionStatus.CRITICAL_FAILURE,
    }),
    ExecutionStatus.SUCCESS: frozenset({ExecutionStatus.WEBHOOK_FAILED}),
    ExecutionStatus.FAILED: frozenset(),
    ExecutionStatus.WEBHOOK_FAILED: frozenset(),
    ExecutionStatus.CRITICAL_FAILURE: frozenset(),
}


def can_transition(current: ExecutionStatus, target: ExecutionStatus) -> bool:
    return target in TRANSITIONS[current]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExecutionRecord:
    """Durable audit/state row for one dispatch attempt."""

    agent_id: str
    caller_id: str
    execution_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.INITIATED
    id: str | None = None  # assigned by the store
    result_summary: str | None = None
    error_message: str | None = None
    workflow_execution_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_row(self) -> dict[str, Any]:
        """Convert to a datastore row with snake_case columns."""
        row: dict[str, Any] = {
            "agent_id": self.agent_id,
            "user_id": self.caller_id,
            "execution_id": self.execution_id,
            "payload": self.payload,
            "status": self.status.value,
            "result": self.result_summary,
            "error_message": self.error_message,
            "workflow_execution_id": self.workflow_execution_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.id is not None:
            row["id"] = self.id
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ExecutionRecord":
        """Build a record from a datastore row."""
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            agent_id=row["agent_id"],
            caller_id=row["user_id"],
            execution_id=row["execution_id"],
            payload=row.get("payload") or {},
            status=ExecutionStatus(row["status"]),
            result_summary=row.get("result"),
            error_message=row.get("error_message"),
            workflow_execution_id=row.get("workflow_execution_id"),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return utcnow()
    # fromisoformat does not accept a trailing Z before 3.11
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class DispatchResult:
    """Caller-visible outcome of a dispatch."""

    execution_id: str
    record_id: str
    agent_id: str
    status: ExecutionStatus
    result_summary: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    mode: str = "live"  # "live" or "mock"

    @property
    def simulated(self) -> bool:
        return self.mode == "mock"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.status is ExecutionStatus.SUCCESS,
            "executionId": self.execution_id,
            "agentId": self.agent_id,
            "status": self.status.value,
            "resultSummary": self.result_summary,
            "data": self.data,
            "mode": self.mode,
        }


@dataclass
class HandlerResult:
    """Outcome reported by an internal agent handler."""

    status: str  # "success" or "failed"
    result: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass
class WorkflowRun:
    """Response from triggering a workflow on the automation engine."""

    execution_id: str | None
    status: str
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None


@dataclass
class WorkflowStatus:
    """Polled state of an engine execution."""

    status: str
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None


@dataclass
class ExecutionStatusReport:
    """Caller-visible answer to an execution status query."""

    execution_id: str
    status: str
    data: dict[str, Any] | None = None
    error: str | None = None
    source: str = "record"  # "record" or "engine"
