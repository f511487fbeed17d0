"""Recommendation data models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Engagement:
    """A past interaction between the caller and an agent."""

    agent_id: str
    action: str  # clicked | viewed | dismissed ...
    timestamp: datetime


@dataclass(frozen=True)
class RecommendationContext:
    """Caller-supplied business context."""

    business_type: str | None = None
    urgency_level: str = "medium"  # low | medium | high | critical
    goal: str | None = None
    history: tuple[str, ...] = ()  # free-text topics the caller engaged with before
    engagements: tuple[Engagement, ...] = ()


@dataclass
class RankedAgent:
    """One ranked candidate."""

    agent_id: str
    confidence: float  # 0.0 to 1.0
    reasoning: str
    handoff_agent_id: str | None = None


@dataclass
class PercyMessage:
    """Concierge framing attached to a recommendation set."""

    greeting: str
    confidence_summary: str
    urgency: str


@dataclass
class RecommendationResult:
    """Ranked agents for one request. Never empty."""

    ranked: list[RankedAgent] = field(default_factory=list)
    percy_message: PercyMessage | None = None
    fallback: bool = False

    @property
    def top(self) -> RankedAgent:
        return self.ranked[0]
