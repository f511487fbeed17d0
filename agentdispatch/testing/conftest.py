"""
Pytest plugin for agent dispatch testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
automatically discovered by pytest when this package is installed.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["agentdispatch.testing.conftest"]

Or import the fixtures directly:

    from agentdispatch.testing.fixtures import dispatch_service, pro_caller
"""

# Re-export all fixtures for pytest auto-discovery
from agentdispatch.testing.fixtures import (
    admin_caller,
    agent_registry,
    branding_payload,
    client_caller,
    dispatch_service,
    memory_store,
    mock_workflow_client,
    notification_queue,
    pro_caller,
    sample_agent,
    sample_context,
    sample_record,
)

__all__ = [
    "mock_workflow_client",
    "agent_registry",
    "memory_store",
    "notification_queue",
    "dispatch_service",
    "client_caller",
    "pro_caller",
    "admin_caller",
    "sample_agent",
    "sample_record",
    "branding_payload",
    "sample_context",
]
