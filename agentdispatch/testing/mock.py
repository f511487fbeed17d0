"""
Mock workflow client for testing.

Provides a MockWorkflowClient that mimics the WorkflowClient interface
without talking to a real automation engine.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

from agentdispatch.types.executions import WorkflowRun, WorkflowStatus

T = TypeVar("T")


@dataclass
class MockResponse:
    """Configuration for a mock response."""

    data: Any
    error: Exception | None = None
    call_count: int = 0


@dataclass
class MockCall:
    """Record of a method call."""

    method: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MockWorkflowClient:
    """
    Mock automation engine client for testing.

    Safe to call from notification worker threads.

    Example:
        ```python
        from agentdispatch.exceptions import ServerError
        from agentdispatch.testing import MockWorkflowClient

        mock = MockWorkflowClient()
        mock.configure_trigger(error=ServerError("TIMEOUT", "Request timed out after 10.0s"))

        service = AgentDispatchService(workflow_client=mock)
        service.dispatch("branding", payload, caller)
        service.notifier.join()

        assert mock.was_called("trigger")
        ```
    """

    def __init__(self) -> None:
        self._calls: list[MockCall] = []
        self._responses: dict[str, MockResponse] = {}
        self._lock = threading.Lock()
        self.closed = False

    def configure_trigger(
        self,
        response: WorkflowRun | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the response for trigger() calls."""
        self._responses["trigger"] = MockResponse(data=response, error=error)

    def configure_poll_status(
        self,
        response: WorkflowStatus | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the response for poll_status() calls."""
        self._responses["poll_status"] = MockResponse(data=response, error=error)

    def trigger(self, workflow_ref: str, payload: dict[str, Any]) -> WorkflowRun:
        """Mock trigger method."""
        self._record_call("trigger", (workflow_ref, payload), {})
        return self._get_response("trigger", WorkflowRun(
            execution_id=f"mock-execution-{self.call_count('trigger')}",
            status="running",
            success=True,
        ))

    def poll_status(self, execution_id: str) -> WorkflowStatus:
        """Mock poll_status method."""
        self._record_call("poll_status", (execution_id,), {})
        return self._get_response("poll_status", WorkflowStatus(
            status="success",
            success=True,
        ))

    def _get_response(self, method: str, default: T) -> T:
        """Get configured response or default."""
        with self._lock:
            resp = self._responses.get(method)
            if resp is None:
                return default
            resp.call_count += 1
        if resp.error:
            raise resp.error
        if resp.data is not None:
            return resp.data
        return default

    def _record_call(
        self,
        method: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Record a method call for verification."""
        with self._lock:
            self._calls.append(MockCall(method=method, args=args, kwargs=kwargs))

    def was_called(self, method: str) -> bool:
        """
        Check if a method was called.

        Args:
            method: Method name ("trigger" or "poll_status")

        Returns:
            True if the method was called at least once
        """
        return self.call_count(method) > 0

    def call_count(self, method: str) -> int:
        """Get the number of times a method was called."""
        with self._lock:
            return sum(1 for call in self._calls if call.method == method)

    def get_calls(self, method: str | None = None) -> list[MockCall]:
        """
        Get recorded calls, optionally filtered by method.

        Args:
            method: Optional method name to filter by

        Returns:
            List of MockCall objects
        """
        with self._lock:
            if method is None:
                return list(self._calls)
            return [call for call in self._calls if call.method == method]

    def reset(self) -> None:
        """Reset all recorded calls and configured responses."""
        with self._lock:
            self._calls.clear()
            self._responses.clear()

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "MockWorkflowClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = [
    "MockWorkflowClient",
    "MockCall",
    "MockResponse",
]
