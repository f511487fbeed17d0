"""Agent dispatch - run named agents, track their executions and recommend them."""

from agentdispatch.access import check_access, is_authorized, partition_by_access
from agentdispatch.dispatcher import Dispatcher
from agentdispatch.exceptions import (
    AccessDeniedError,
    AgentDispatchError,
    CallerError,
    ConfigurationError,
    DownstreamNotificationError,
    InternalDefectError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
    WorkflowError,
)
from agentdispatch.logging import configure_logging, get_logger
from agentdispatch.notifications import NotificationQueue
from agentdispatch.ratelimit import RateLimitConfig, RateLimiter
from agentdispatch.recommendation import RecommendationEngine
from agentdispatch.registry import AgentRegistry
from agentdispatch.service import AgentDispatchService
from agentdispatch.store import ExecutionStore, InMemoryExecutionStore, RestExecutionStore
from agentdispatch.transport import HTTPTransport, RetryConfig
from agentdispatch.types import (
    AgentDescriptor,
    Caller,
    DispatchResult,
    ExecutionStatus,
    RecommendationContext,
    RecommendationResult,
)
from agentdispatch.workflow import WorkflowClient

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Service
    "AgentDispatchService",
    "Dispatcher",
    "RecommendationEngine",
    # Registry and access
    "AgentRegistry",
    "check_access",
    "is_authorized",
    "partition_by_access",
    # Collaborators
    "ExecutionStore",
    "InMemoryExecutionStore",
    "RestExecutionStore",
    "WorkflowClient",
    "NotificationQueue",
    "RateLimiter",
    "RateLimitConfig",
    # Types
    "AgentDescriptor",
    "Caller",
    "DispatchResult",
    "ExecutionStatus",
    "RecommendationContext",
    "RecommendationResult",
    # Exceptions
    "AgentDispatchError",
    "CallerError",
    "NotFoundError",
    "ValidationError",
    "RateLimitedError",
    "AccessDeniedError",
    "InternalDefectError",
    "DownstreamNotificationError",
    "WorkflowError",
    "ServerError",
    "ConfigurationError",
    # Transport
    "HTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
