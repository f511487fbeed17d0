"""
Agent dispatch service.

The caller-facing surface. Wires the registry, rate limiters, dispatcher,
notification queue and recommendation engine together.
"""

import os
from typing import Any

from agentdispatch.dispatcher import Dispatcher
from agentdispatch.exceptions import ConfigurationError
from agentdispatch.handlers import HandlerRegistry
from agentdispatch.logging import get_logger
from agentdispatch.notifications import NotificationQueue
from agentdispatch.ratelimit import RateLimitConfig, RateLimiter, RateLimitSweeper
from agentdispatch.recommendation import DEFAULT_COUNT, RecommendationEngine
from agentdispatch.registry import AgentRegistry
from agentdispatch.store import ExecutionStore, InMemoryExecutionStore, RestExecutionStore
from agentdispatch.transport import RetryConfig
from agentdispatch.types.agents import Caller
from agentdispatch.types.executions import DispatchResult, ExecutionStatusReport
from agentdispatch.types.recommendations import RecommendationContext, RecommendationResult
from agentdispatch.workflow import WorkflowClient

logger = get_logger("service")

DEFAULT_DISPATCH_LIMIT = RateLimitConfig(limit=20, window_seconds=300.0)
DEFAULT_RECOMMEND_LIMIT = RateLimitConfig(limit=10, window_seconds=600.0)
DEFAULT_NOTIFY_TIMEOUT = 10.0


class AgentDispatchService:
    """
    Run agents, report on executions and recommend agents.

    Example:
        ```python
        from agentdispatch import AgentDispatchService, Caller

        with AgentDispatchService.from_env() as service:
            caller = Caller.for_role("user-123", "pro")
            result = service.dispatch("branding", {"businessName": "Acme"}, caller)
            report = service.execution_status(result.execution_id)
        ```
    """

    def __init__(
        self,
        registry: AgentRegistry | None = None,
        store: ExecutionStore | None = None,
        workflow_client: WorkflowClient | None = None,
        notifier: NotificationQueue | None = None,
        handlers: HandlerRegistry | None = None,
        dispatch_limiter: RateLimiter | None = None,
        recommend_limiter: RateLimiter | None = None,
        sweep_interval: float | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            registry: Agent catalog (default: built-in catalog)
            store: Execution record store (default: in-memory)
            workflow_client: Automation engine client; None disables
                notifications and engine status polling
            notifier: Notification queue (default: built from workflow_client)
            handlers: Internal handlers (default: built-in handlers)
            dispatch_limiter: Limiter for dispatch (default: 20 per 5 minutes)
            recommend_limiter: Limiter for recommend (default: 10 per 10 minutes)
            sweep_interval: Seconds between expired-window sweeps; None disables
        """
        self.registry = registry or AgentRegistry.default()
        self.store = store or InMemoryExecutionStore()
        self.workflow_client = workflow_client

        if notifier is None and workflow_client is not None:
            notifier = NotificationQueue(workflow_client, self.store)
        self.notifier = notifier

        self.dispatch_limiter = dispatch_limiter or RateLimiter(DEFAULT_DISPATCH_LIMIT, name="dispatch")
        self.recommend_limiter = recommend_limiter or RateLimiter(DEFAULT_RECOMMEND_LIMIT, name="recommend")

        self.dispatcher = Dispatcher(
            registry=self.registry,
            store=self.store,
            notifier=self.notifier,
            handlers=handlers,
            workflow_client=workflow_client,
        )
        self.recommender = RecommendationEngine(self.registry)

        self._sweeper: RateLimitSweeper | None = None
        if sweep_interval is not None:
            self._sweeper = RateLimitSweeper(
                [self.dispatch_limiter, self.recommend_limiter],
                interval=sweep_interval,
            )
            self._sweeper.start()

    @classmethod
    def from_env(cls, retry_config: RetryConfig | None = None) -> "AgentDispatchService":
        """
        Create a service from environment variables.

        Environment variables:
            AGENTDISPATCH_WORKFLOW_URL: Automation engine base URL (required)
            AGENTDISPATCH_WORKFLOW_API_KEY: Engine API key (optional)
            AGENTDISPATCH_STORE_URL: Datastore REST base URL (optional, in-memory when unset)
            AGENTDISPATCH_STORE_KEY: Datastore service key (required with STORE_URL)
            AGENTDISPATCH_REGISTRY_PATH: JSON agent registry (optional, built-in catalog when unset)
            AGENTDISPATCH_NOTIFY_TIMEOUT: Engine call timeout in seconds (default: 10)
            AGENTDISPATCH_DISPATCH_LIMIT / AGENTDISPATCH_DISPATCH_WINDOW: Dispatch ceiling and window
            AGENTDISPATCH_RECOMMEND_LIMIT / AGENTDISPATCH_RECOMMEND_WINDOW: Recommend ceiling and window

        Args:
            retry_config: Retry behavior for engine calls (optional)

        Returns:
            Configured AgentDispatchService instance

        Raises:
            ConfigurationError: If required variables are missing or values are invalid
        """
        workflow_url = os.environ.get("AGENTDISPATCH_WORKFLOW_URL")
        if not workflow_url:
            raise ConfigurationError("AGENTDISPATCH_WORKFLOW_URL environment variable not set")

        store_url = os.environ.get("AGENTDISPATCH_STORE_URL")
        store_key = os.environ.get("AGENTDISPATCH_STORE_KEY")
        if store_url and not store_key:
            raise ConfigurationError(
                "AGENTDISPATCH_STORE_KEY must be set when AGENTDISPATCH_STORE_URL is set"
            )

        registry_path = os.environ.get("AGENTDISPATCH_REGISTRY_PATH")
        registry = AgentRegistry.from_json(registry_path) if registry_path else AgentRegistry.default()

        dispatch_config = RateLimitConfig(
            limit=_env_int("AGENTDISPATCH_DISPATCH_LIMIT", DEFAULT_DISPATCH_LIMIT.limit),
            window_seconds=_env_float("AGENTDISPATCH_DISPATCH_WINDOW", DEFAULT_DISPATCH_LIMIT.window_seconds),
        )
        recommend_config = RateLimitConfig(
            limit=_env_int("AGENTDISPATCH_RECOMMEND_LIMIT", DEFAULT_RECOMMEND_LIMIT.limit),
            window_seconds=_env_float("AGENTDISPATCH_RECOMMEND_WINDOW", DEFAULT_RECOMMEND_LIMIT.window_seconds),
        )
        timeout = _env_float("AGENTDISPATCH_NOTIFY_TIMEOUT", DEFAULT_NOTIFY_TIMEOUT)

        store: ExecutionStore
        if store_url:
            store = RestExecutionStore.connect(store_url, store_key or "")
        else:
            logger.warning("AGENTDISPATCH_STORE_URL not set, execution records are kept in memory")
            store = InMemoryExecutionStore()

        workflow_client = WorkflowClient.connect(
            workflow_url,
            api_key=os.environ.get("AGENTDISPATCH_WORKFLOW_API_KEY"),
            timeout=timeout,
            retry_config=retry_config or RetryConfig(max_retries=1),
        )

        return cls(
            registry=registry,
            store=store,
            workflow_client=workflow_client,
            dispatch_limiter=RateLimiter(dispatch_config, name="dispatch"),
            recommend_limiter=RateLimiter(recommend_config, name="recommend"),
            sweep_interval=300.0,
        )

    def dispatch(
        self,
        agent_ref: str,
        payload: dict[str, Any] | None,
        caller: Caller,
    ) -> DispatchResult:
        """
        Run an agent for a caller.

        Raises:
            RateLimitedError: If the caller exhausted its dispatch window
            NotFoundError: If the agent is unknown
            AccessDeniedError: If the caller is not entitled to the agent
            ValidationError: If the payload is not a JSON object
            InternalDefectError: If processing broke
        """
        self.dispatch_limiter.enforce(caller.caller_id)
        return self.dispatcher.dispatch(agent_ref, payload, caller)

    def execution_status(self, execution_id: str) -> ExecutionStatusReport:
        """Report the state of a dispatch by its execution id."""
        return self.dispatcher.execution_status(execution_id)

    def recommend(
        self,
        context: RecommendationContext,
        count: int = DEFAULT_COUNT,
        client_key: str = "unknown",
    ) -> RecommendationResult:
        """
        Rank agents for a business context.

        Args:
            context: Business type, urgency level, goal, history and engagements
            count: Number of agents wanted (capped at 5)
            client_key: Rate-limit key, e.g. from client_key_from_headers()

        Raises:
            RateLimitedError: If the key exhausted its recommend window
            ValidationError: If count or urgency level is invalid
        """
        self.recommend_limiter.enforce(client_key)
        return self.recommender.recommend(context, count)

    def close(self) -> None:
        """Drain notifications and release HTTP resources."""
        if self._sweeper is not None:
            self._sweeper.stop()
        if self.notifier is not None:
            self.notifier.close()
        if self.workflow_client is not None:
            self.workflow_client.close()
        if isinstance(self.store, RestExecutionStore):
            self.store.close()

    def __enter__(self) -> "AgentDispatchService":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name}: {raw!r} is not an integer") from e


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {name}: {raw!r} is not a number") from e
    if value <= 0:
        raise ConfigurationError(f"Invalid {name}: must be positive")
    return value
