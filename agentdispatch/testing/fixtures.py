"""
Pytest fixtures for agent dispatch testing.

Provides common fixtures and factories for testing code that dispatches
agents or consumes recommendations.
"""

from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import pytest

from agentdispatch.notifications import NotificationQueue
from agentdispatch.ratelimit import RateLimitConfig, RateLimiter
from agentdispatch.registry import AgentRegistry
from agentdispatch.service import AgentDispatchService
from agentdispatch.store import InMemoryExecutionStore
from agentdispatch.testing.mock import MockWorkflowClient
from agentdispatch.types.agents import AccessRequirement, AgentDescriptor, Caller
from agentdispatch.types.executions import ExecutionRecord, ExecutionStatus
from agentdispatch.types.recommendations import RecommendationContext


# ============================================================================
# Factories
# ============================================================================


def create_mock_agent(
    agent_id: str = "test-agent",
    name: str = "Test Agent",
    capabilities: tuple[str, ...] = ("testing",),
    role_required: str | None = None,
    premium_feature: str | None = None,
    external_workflow_ref: str | None = "test-workflow",
    **kwargs: Any,
) -> AgentDescriptor:
    """
    Create an AgentDescriptor with sensible defaults.

    Example:
        ```python
        agent = create_mock_agent("reports", role_required="admin")
        ```
    """
    return AgentDescriptor(
        id=agent_id,
        name=name,
        category=kwargs.pop("category", "Testing"),
        capabilities=capabilities,
        access=AccessRequirement(role_required=role_required, premium_feature=premium_feature),
        external_workflow_ref=external_workflow_ref,
        **kwargs,
    )


def create_mock_caller(
    caller_id: str = "test-user",
    role: str = "client",
    features: frozenset[str] | None = None,
) -> Caller:
    """Create a Caller; features default to the role's entitlement set."""
    if features is None:
        return Caller.for_role(caller_id, role)
    return Caller(caller_id=caller_id, role=role, features=features)


def create_mock_record(
    agent_id: str = "test-agent",
    status: ExecutionStatus = ExecutionStatus.INITIATED,
    **kwargs: Any,
) -> ExecutionRecord:
    """Create an ExecutionRecord with fixed timestamps."""
    created = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
    return ExecutionRecord(
        agent_id=agent_id,
        caller_id=kwargs.pop("caller_id", "test-user"),
        execution_id=kwargs.pop("execution_id", "test-execution-id"),
        payload=kwargs.pop("payload", {}),
        status=status,
        created_at=created,
        updated_at=created,
        **kwargs,
    )


# ============================================================================
# Collaborator Fixtures
# ============================================================================


@pytest.fixture
def mock_workflow_client() -> Generator[MockWorkflowClient, None, None]:
    """
    Provide a MockWorkflowClient for testing.

    Example:
        ```python
        def test_notifies_engine(mock_workflow_client, dispatch_service, pro_caller):
            dispatch_service.dispatch("branding", payload, pro_caller)
            dispatch_service.notifier.join()
            assert mock_workflow_client.was_called("trigger")
        ```
    """
    client = MockWorkflowClient()
    yield client
    client.reset()


@pytest.fixture
def agent_registry() -> AgentRegistry:
    """Provide the built-in agent catalog."""
    return AgentRegistry.default()


@pytest.fixture
def memory_store() -> InMemoryExecutionStore:
    """Provide an empty in-memory execution store."""
    return InMemoryExecutionStore()


@pytest.fixture
def notification_queue(
    mock_workflow_client: MockWorkflowClient,
    memory_store: InMemoryExecutionStore,
) -> Generator[NotificationQueue, None, None]:
    """Provide a started notification queue backed by the mock engine."""
    notifier = NotificationQueue(mock_workflow_client, memory_store, maxsize=10, workers=1)  # type: ignore[arg-type]
    notifier.start()
    yield notifier
    notifier.close()


@pytest.fixture
def dispatch_service(
    agent_registry: AgentRegistry,
    memory_store: InMemoryExecutionStore,
    mock_workflow_client: MockWorkflowClient,
    notification_queue: NotificationQueue,
) -> Generator[AgentDispatchService, None, None]:
    """
    Provide an AgentDispatchService wired to in-memory collaborators.

    Rate limits are generous so tests only hit them on purpose.
    """
    service = AgentDispatchService(
        registry=agent_registry,
        store=memory_store,
        workflow_client=mock_workflow_client,  # type: ignore[arg-type]
        notifier=notification_queue,
        dispatch_limiter=RateLimiter(RateLimitConfig(limit=1000, window_seconds=60.0), name="dispatch"),
        recommend_limiter=RateLimiter(RateLimitConfig(limit=1000, window_seconds=60.0), name="recommend"),
    )
    yield service
    service.close()


# ============================================================================
# Caller Fixtures
# ============================================================================


@pytest.fixture
def client_caller() -> Caller:
    """Provide a caller on the free tier."""
    return create_mock_caller("client-user", "client")


@pytest.fixture
def pro_caller() -> Caller:
    """Provide a caller on the pro tier."""
    return create_mock_caller("pro-user", "pro")


@pytest.fixture
def admin_caller() -> Caller:
    """Provide an admin caller."""
    return create_mock_caller("admin-user", "admin")


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_agent() -> AgentDescriptor:
    """Provide a sample open agent bound to a workflow."""
    return create_mock_agent()


@pytest.fixture
def sample_record() -> ExecutionRecord:
    """Provide a sample initiated ExecutionRecord."""
    return create_mock_record(payload={"businessName": "Acme"})


@pytest.fixture
def branding_payload() -> dict[str, Any]:
    """Provide a payload the branding handler accepts."""
    return {
        "businessName": "Acme Bakery",
        "industry": "food",
        "targetAudience": "local families",
    }


@pytest.fixture
def sample_context() -> RecommendationContext:
    """Provide a sample recommendation context."""
    return RecommendationContext(
        business_type="bakery",
        urgency_level="high",
        goal="new logo and brand voice",
    )
