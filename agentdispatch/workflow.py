"""Workflow client for the external automation engine.

Triggers workflows through their webhook path and polls executions
through the engine's REST API.
"""

from typing import Any

from agentdispatch.transport import HTTPTransport, RetryConfig
from agentdispatch.types.executions import WorkflowRun, WorkflowStatus

# Engine execution states that mean the run did not succeed
FAILED_STATES = frozenset({"error", "failed", "crashed", "canceled", "cancelled"})


class WorkflowClient:
    """Client for workflow trigger and status operations."""

    API_KEY_HEADER = "X-N8N-API-KEY"

    def __init__(self, transport: HTTPTransport) -> None:
        """
        Initialize the workflow client.

        Args:
            transport: HTTP transport pointed at the engine's base URL
        """
        self.transport = transport

    @classmethod
    def connect(
        cls,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        retry_config: RetryConfig | None = None,
    ) -> "WorkflowClient":
        """
        Build a client with its own transport.

        The timeout applies to every call, so keep it short when the client
        is used for notifications.
        """
        headers = {cls.API_KEY_HEADER: api_key} if api_key else None
        transport = HTTPTransport(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            retry_config=retry_config,
        )
        return cls(transport)

    def close(self) -> None:
        self.transport.close()

    def trigger(self, workflow_ref: str, payload: dict[str, Any]) -> WorkflowRun:
        """
        Trigger a workflow.

        Args:
            workflow_ref: Workflow webhook path registered on the engine
            payload: JSON body delivered to the workflow

        Returns:
            WorkflowRun with the engine's execution id (when it reports one)

        Raises:
            AgentDispatchError: On transport or HTTP errors
        """
        response = self.transport.request(
            method="POST",
            path=f"/webhook/{workflow_ref}",
            body=payload,
        )

        data = response if isinstance(response, dict) else {}
        status = str(data.get("status") or "running")
        success = data.get("success")
        if success is None:
            success = status.lower() not in FAILED_STATES
        execution_id = data.get("executionId") or data.get("id")

        return WorkflowRun(
            execution_id=str(execution_id) if execution_id is not None else None,
            status=status,
            success=bool(success),
            data=data.get("data") if isinstance(data.get("data"), dict) else None,
            error=_error_message(data),
        )

    def poll_status(self, execution_id: str) -> WorkflowStatus:
        """
        Get the current state of an engine execution.

        Args:
            execution_id: Execution id reported by ``trigger``

        Returns:
            WorkflowStatus

        Raises:
            NotFoundError: If the engine does not know the execution
        """
        response = self.transport.request(
            method="GET",
            path=f"/api/v1/executions/{execution_id}",
            params={"includeData": "true"},
        )

        data = response if isinstance(response, dict) else {}
        status = data.get("status")
        if not status:
            status = "success" if data.get("finished") else "running"
        status = str(status)

        return WorkflowStatus(
            status=status,
            success=status.lower() not in FAILED_STATES,
            data=data.get("data") if isinstance(data.get("data"), dict) else None,
            error=_error_message(data),
        )


def _error_message(data: dict[str, Any]) -> str | None:
    """Pull an error message out of the engine's response shapes."""
    error = data.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        return error.get("message")

    result_data = (data.get("data") or {}).get("resultData") if isinstance(data.get("data"), dict) else None
    if isinstance(result_data, dict) and isinstance(result_data.get("error"), dict):
        return result_data["error"].get("message")
    return None
