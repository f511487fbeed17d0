"""Shared pytest configuration for agent dispatch tests."""

pytest_plugins = ["agentdispatch.testing.conftest"]
