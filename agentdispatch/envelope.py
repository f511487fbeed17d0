"""
Notification envelope builder.

Constructs the JSON body sent to the automation engine after an agent's
internal logic succeeds.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from agentdispatch.types.agents import AgentDescriptor, Caller
from agentdispatch.types.executions import HandlerResult


def new_execution_id() -> str:
    """Fresh UUID v4 execution id for a live dispatch."""
    return str(uuid.uuid4())


def mock_execution_id(agent_id: str, now: datetime | None = None) -> str:
    """Execution id for a simulated dispatch: ``mock_<epoch-ms>_<agent>_<nonce>``.

    The nonce keeps ids unique for dispatches within the same millisecond.
    """
    ts = now or datetime.now(timezone.utc)
    return f"mock_{int(ts.timestamp() * 1000)}_{agent_id}_{uuid.uuid4().hex[:8]}"


def format_timestamp(ts: datetime) -> str:
    """Format as ISO 8601 UTC with Z suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    elif ts.tzinfo != timezone.utc:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class NotificationEnvelope:
    """Everything the engine receives about one successful dispatch."""

    launch_id: str
    agent: AgentDescriptor
    caller: Caller
    trigger_payload: dict[str, Any]
    workflow_result: HandlerResult
    timestamp: datetime
    source: str

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the engine's JSON body.

        Returns:
            Dictionary with the keys workflows read (launchId, agentId, ...)
        """
        return {
            "launchId": self.launch_id,
            "agentId": self.agent.id,
            "agentName": self.agent.name,
            "userId": self.caller.caller_id,
            "userRole": self.caller.role,
            "capability": self.agent.capability,
            "expectedOutput": self.agent.output,
            "trigger_payload": self.trigger_payload,
            "workflow_result": {
                "status": self.workflow_result.status,
                "result": self.workflow_result.result,
                "data": self.workflow_result.data,
            },
            "timestamp": format_timestamp(self.timestamp),
            "source": self.source,
        }


@dataclass
class EnvelopeBuilder:
    """
    Builder for NotificationEnvelope instances.

    Stamps each envelope with the current UTC time and the configured source.
    """

    source: str = "agent-dispatch"

    def build(
        self,
        launch_id: str,
        agent: AgentDescriptor,
        caller: Caller,
        trigger_payload: dict[str, Any],
        workflow_result: HandlerResult,
    ) -> NotificationEnvelope:
        return NotificationEnvelope(
            launch_id=launch_id,
            agent=agent,
            caller=caller,
            trigger_payload=trigger_payload,
            workflow_result=workflow_result,
            timestamp=datetime.now(timezone.utc),
            source=self.source,
        )
