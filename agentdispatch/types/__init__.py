"""Agent dispatch type definitions.

This module exports all data model types used by the package.
"""

from agentdispatch.types.agents import AccessRequirement, AgentDescriptor, Caller
from agentdispatch.types.executions import (
    DispatchResult,
    ExecutionRecord,
    ExecutionStatus,
    ExecutionStatusReport,
    HandlerResult,
    WorkflowRun,
    WorkflowStatus,
)
from agentdispatch.types.recommendations import (
    Engagement,
    PercyMessage,
    RankedAgent,
    RecommendationContext,
    RecommendationResult,
)

__all__ = [
    # Agent types
    "AccessRequirement",
    "AgentDescriptor",
    "Caller",
    # Execution types
    "ExecutionStatus",
    "ExecutionRecord",
    "DispatchResult",
    "HandlerResult",
    "WorkflowRun",
    "WorkflowStatus",
    "ExecutionStatusReport",
    # Recommendation types
    "Engagement",
    "RecommendationContext",
    "RankedAgent",
    "PercyMessage",
    "RecommendationResult",
]
