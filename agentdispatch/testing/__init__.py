"""Agent dispatch testing utilities.

Provides a mock workflow client and fixtures for testing applications that
dispatch agents.
"""

from agentdispatch.testing.fixtures import (
    create_mock_agent,
    create_mock_caller,
    create_mock_record,
)
from agentdispatch.testing.mock import MockCall, MockResponse, MockWorkflowClient

__all__ = [
    # Mock client
    "MockWorkflowClient",
    "MockCall",
    "MockResponse",
    # Helper functions
    "create_mock_agent",
    "create_mock_caller",
    "create_mock_record",
]
