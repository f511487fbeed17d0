"""Internal agent handlers and the simulated fallback."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from agentdispatch.envelope import format_timestamp
from agentdispatch.types.agents import AgentDescriptor, Caller
from agentdispatch.types.executions import HandlerResult

Handler = Callable[[AgentDescriptor, dict[str, Any], Caller], HandlerResult]


def default_handler(agent: AgentDescriptor, payload: dict[str, Any], caller: Caller) -> HandlerResult:
    """Accept the request and hand the heavy lifting to the agent's workflow."""
    return HandlerResult(
        status="success",
        result=f"{agent.name} workflow accepted",
        data={"capability": agent.capability, "expectedOutput": agent.output},
    )


def require_fields(*fields: str) -> Handler:
    """
    Build a handler that fails when any of ``fields`` is missing or blank.

    Example:
        ```python
        handlers.register("branding", require_fields("businessName", "industry"))
        ```
    """
    def handler(agent: AgentDescriptor, payload: dict[str, Any], caller: Caller) -> HandlerResult:
        missing = [
            name for name in fields
            if payload.get(name) is None or (isinstance(payload.get(name), str) and not payload[name].strip())
        ]
        if missing:
            return HandlerResult(
                status="failed",
                result=f"Missing required fields: {', '.join(missing)}",
            )
        return default_handler(agent, payload, caller)

    return handler


class HandlerRegistry:
    """Maps agent ids to internal handlers; unmapped agents get the default."""

    def __init__(self, default: Handler = default_handler) -> None:
        self._handlers: dict[str, Handler] = {}
        self.default = default

    def register(self, agent_id: str, handler: Handler | None = None) -> Any:
        """Register a handler directly or as a decorator."""
        if handler is not None:
            self._handlers[agent_id] = handler
            return handler

        def decorator(fn: Handler) -> Handler:
            self._handlers[agent_id] = fn
            return fn

        return decorator

    def get(self, agent_id: str) -> Handler:
        return self._handlers.get(agent_id, self.default)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._handlers

    @classmethod
    def builtin(cls) -> "HandlerRegistry":
        """Handlers for the built-in catalog."""
        registry = cls()
        registry.register("branding", require_fields("businessName", "industry", "targetAudience"))
        registry.register("proposal", require_fields("clientName"))
        return registry


def simulated_result(agent: AgentDescriptor, now: datetime | None = None) -> dict[str, Any]:
    """Stand-in output for agents with no bound workflow, tagged ``mode: mock``."""
    ts = now or datetime.now(timezone.utc)
    return {
        "agent": agent.name,
        "capability": agent.capability,
        "output": agent.output,
        "timestamp": format_timestamp(ts),
        "mode": "mock",
    }
