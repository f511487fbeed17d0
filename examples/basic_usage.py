#!/usr/bin/env python3
"""
Basic agent dispatch usage example.

Runs against the mock engine, so no automation engine or datastore is needed.
Run with: python examples/basic_usage.py
"""

from agentdispatch import (
    AccessDeniedError,
    AgentDispatchService,
    AgentDispatchError,
    Caller,
    ConfigurationError,
    NotFoundError,
    RecommendationContext,
)
from agentdispatch.exceptions import ServerError
from agentdispatch.testing.mock import MockWorkflowClient

print("=== Agent Dispatch Basic Usage Example ===\n")

# 1. Exception hierarchy
print("1. Testing exception classes...")
try:
    raise ConfigurationError("AGENTDISPATCH_WORKFLOW_URL environment variable not set")
except AgentDispatchError as e:
    print(f"   Caught AgentDispatchError: {e}")
    print(f"   Code: {e.code}, Message: {e.message}")

print("\n   OK: Exception classes working\n")

engine = MockWorkflowClient()

with AgentDispatchService(workflow_client=engine) as service:  # type: ignore[arg-type]
    pro = Caller.for_role("user-123", "pro")
    client = Caller.for_role("user-456", "client")

    # 2. Live dispatch; the engine is notified in the background
    print("2. Dispatching the branding agent...")
    result = service.dispatch(
        "Branding",
        {"businessName": "Acme Bakery", "industry": "food", "targetAudience": "local families"},
        pro,
    )
    service.notifier.join()
    print(f"   Execution: {result.execution_id} -> {result.status.value}")
    report = service.execution_status(result.execution_id)
    print(f"   Status ({report.source}): {report.status}")
    print()

    # 3. Simulated dispatch for an agent without a workflow
    print("3. Dispatching SkillSmith (no workflow bound)...")
    result = service.dispatch("skillsmith-agent", {"sport": "tennis"}, client)
    print(f"   Execution: {result.execution_id} ({result.mode})")
    print(f"   Summary: {result.result_summary}")
    print()

    # 4. Engine timeout: the caller still sees success, the record does not
    print("4. Engine timeout after success...")
    engine.configure_trigger(error=ServerError("TIMEOUT", "Request timed out after 10.0s"))
    result = service.dispatch("social", {}, pro)
    service.notifier.join()
    report = service.execution_status(result.execution_id)
    print(f"   Caller saw: {result.status.value}, record now: {report.status}")
    print(f"   Error: {report.error}")
    print()

    # 5. Access gate and unknown agents
    print("5. Error handling...")
    try:
        service.dispatch("proposal", {"clientName": "Acme"}, client)
    except AccessDeniedError as e:
        print(f"   Denied ({e.reason}), upgrade to: {e.upgrade_required}")
    try:
        service.dispatch("ghost", {}, client)
    except NotFoundError as e:
        print(f"   {e.message}")
    print()

    # 6. Recommendations
    print("6. Recommending agents...")
    recommendation = service.recommend(
        RecommendationContext(business_type="bakery", urgency_level="high", goal="new logo and brand voice"),
        client_key="203.0.113.7",
    )
    print(f"   {recommendation.percy_message.greeting}")
    for ranked in recommendation.ranked:
        print(f"   {ranked.agent_id}: {ranked.confidence:.2f} - {ranked.reasoning}")

print("\n=== All examples completed ===")
