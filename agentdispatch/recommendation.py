"""
Recommendation engine.

Scores visible agents against a caller's business context and returns a
ranked, explained shortlist. Scoring is deterministic: ties fall back to
registry order and no randomness is involved, so identical input always
yields identical output.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Callable

from agentdispatch.exceptions import ConfigurationError, ValidationError
from agentdispatch.logging import get_logger
from agentdispatch.registry import AgentRegistry
from agentdispatch.types.agents import AgentDescriptor
from agentdispatch.types.recommendations import (
    Engagement,
    PercyMessage,
    RankedAgent,
    RecommendationContext,
    RecommendationResult,
)

logger = get_logger("recommendation")

BASE = 0.1
KEYWORD_WEIGHT = 0.25
CATEGORY_WEIGHT = 0.15
HISTORY_WEIGHT = 0.15
ENGAGEMENT_WEIGHT = 0.1
CLICK_ENGAGEMENT_WEIGHT = 0.2
ENGAGEMENT_WINDOW = timedelta(hours=24)
TIE_BREAK_STEP = 0.001
CONFIDENCE_FLOOR = 0.3
FALLBACK_CONFIDENCE = 0.25
DEFAULT_COUNT = 3
MAX_COUNT = 5

# Applied only to agents tagged for fast turnaround
URGENCY_MULTIPLIERS: dict[str, float] = {
    "low": 1.05,
    "medium": 1.1,
    "high": 1.2,
    "critical": 1.3,
}

GREETINGS: dict[str, str] = {
    "high": "🎯 **Bingo!** I can see exactly what's holding your business back...",
    "medium": "🚀 **Perfect timing!** I've analyzed your situation and found exactly what you need...",
    "low": "⚡ **This is exciting!** Based on what you've shared, I have a solid place to start...",
}

CONFIDENCE_MESSAGES: dict[str, str] = {
    "high": "I'm **absolutely certain** this is your best path forward.",
    "medium": "This has a **strong probability** of being your game-changer.",
    "low": "This could be a **solid starting point** for your growth.",
}

URGENCY_MESSAGES: dict[str, str] = {
    "critical": "⚠️ **This can't wait.** Every day costs you potential revenue.",
    "high": "🔥 **Strike while the iron is hot.** This opportunity won't last.",
    "medium": "📈 **Good timing to act.** Momentum is building in this area.",
    "low": "💡 **Worth considering** when you're ready to make this move.",
}

_WORD = re.compile(r"[a-z0-9]+")


def confidence_band(confidence: float) -> str:
    """Map a confidence to ``high`` (> 0.8), ``medium`` (> 0.5) or ``low``."""
    if confidence > 0.8:
        return "high"
    if confidence > 0.5:
        return "medium"
    return "low"


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def _engagement_bonus(agent_id: str, engagements: tuple[Engagement, ...], now: datetime) -> float:
    """Bonus for the caller's engagements with this agent in the last 24 hours."""
    recent = []
    for engagement in engagements:
        ts = engagement.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        if engagement.agent_id == agent_id and timedelta(0) <= now - ts < ENGAGEMENT_WINDOW:
            recent.append(engagement.action)
    if not recent:
        return 0.0
    return CLICK_ENGAGEMENT_WEIGHT if "clicked" in recent else ENGAGEMENT_WEIGHT


class RecommendationEngine:
    """
    Ranks registry agents for a business context.

    Example:
        ```python
        engine = RecommendationEngine(AgentRegistry.default())
        result = engine.recommend(
            RecommendationContext(business_type="bakery", goal="new logo and brand voice"),
        )
        print(result.top.agent_id, result.top.reasoning)
        ```
    """

    def __init__(
        self,
        registry: AgentRegistry,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.registry = registry
        self._clock = clock

    def candidates(self) -> list[AgentDescriptor]:
        """Visible agents, excluding the orchestrator."""
        return [agent for agent in self.registry.list_visible() if not agent.orchestrator]

    def score(
        self,
        agent: AgentDescriptor,
        context: RecommendationContext,
        now: datetime | None = None,
    ) -> tuple[float, str | None]:
        """
        Score one agent.

        Adds to the base score for capabilities named in the goal or business
        type, a category match, capabilities seen in the caller's history and
        an engagement with the agent inside the last 24 hours. Fast-turnaround
        agents then get the urgency multiplier.

        Args:
            agent: Candidate agent
            context: Caller's business context
            now: Reference time for the engagement window (default: the clock)

        Returns:
            Tuple of (confidence in [0, 1], first matched capability or None)
        """
        text = " ".join(part for part in (context.business_type, context.goal) if part).lower()
        tokens = {word for word in _words(text) if len(word) >= 3}

        matched = [
            capability for capability in agent.capabilities
            if capability.lower() in text or any(word in tokens for word in _words(capability) if len(word) >= 3)
        ]

        raw = BASE + KEYWORD_WEIGHT * len(matched)
        if tokens & set(_words(agent.category)):
            raw += CATEGORY_WEIGHT

        history = [entry.lower() for entry in context.history]
        raw += HISTORY_WEIGHT * sum(
            1 for capability in agent.capabilities
            if any(capability.lower() in entry for entry in history)
        )
        raw += _engagement_bonus(agent.id, context.engagements, now or self._clock())

        if agent.fast_turnaround:
            raw *= URGENCY_MULTIPLIERS[context.urgency_level]
        raw -= self.registry.index_of(agent.id) * TIE_BREAK_STEP

        confidence = round(min(1.0, max(0.0, raw)), 4)
        return confidence, matched[0] if matched else None

    def recommend(
        self,
        context: RecommendationContext,
        count: int = DEFAULT_COUNT,
    ) -> RecommendationResult:
        """
        Rank agents for a context.

        Args:
            context: Business type, urgency level and optional goal
            count: Number of agents wanted, capped at 5

        Returns:
            RecommendationResult with at least one ranked agent

        Raises:
            ValidationError: If count < 1 or the urgency level is unknown
        """
        if count < 1:
            raise ValidationError("INVALID_COUNT", "count must be at least 1")
        if context.urgency_level not in URGENCY_MULTIPLIERS:
            raise ValidationError(
                "INVALID_URGENCY",
                f"urgency_level must be one of {', '.join(URGENCY_MULTIPLIERS)}",
            )
        count = min(count, MAX_COUNT)

        now = self._clock()
        scored = []
        for agent in self.candidates():
            confidence, matched = self.score(agent, context, now)
            if confidence >= CONFIDENCE_FLOOR:
                scored.append((confidence, self.registry.index_of(agent.id), agent, matched))
        scored.sort(key=lambda item: (-item[0], item[1]))

        ranked = [
            RankedAgent(
                agent_id=agent.id,
                confidence=confidence,
                reasoning=self._reasoning(agent, confidence, matched),
                handoff_agent_id=self._handoff(agent),
            )
            for confidence, _, agent, matched in scored[:count]
        ]

        fallback = not ranked
        if fallback:
            agent = self._fallback_agent()
            logger.debug("No agent cleared the confidence floor, falling back to %s", agent.id)
            ranked = [
                RankedAgent(
                    agent_id=agent.id,
                    confidence=FALLBACK_CONFIDENCE,
                    reasoning=(
                        f"I need more context to be certain; {agent.name} is a good "
                        f"general-purpose starting point."
                    ),
                    handoff_agent_id=self._handoff(agent),
                )
            ]

        band = confidence_band(ranked[0].confidence)
        return RecommendationResult(
            ranked=ranked,
            percy_message=PercyMessage(
                greeting=GREETINGS[band],
                confidence_summary=CONFIDENCE_MESSAGES[band],
                urgency=URGENCY_MESSAGES[context.urgency_level],
            ),
            fallback=fallback,
        )

    def _reasoning(self, agent: AgentDescriptor, confidence: float, matched: str | None) -> str:
        focus = matched or agent.capability.lower()
        band = confidence_band(confidence)
        if band == "high":
            return f"Based on what you've shared, {agent.name} is a clear fit for {focus}."
        if band == "medium":
            return f"I'm {round(confidence * 100)}% confident {agent.name} fits: it covers {focus}."
        return f"{agent.name} could be a strong starting point for {focus}."

    def _handoff(self, agent: AgentDescriptor) -> str | None:
        target = agent.handoff_to
        if target and target != agent.id and target in self.registry:
            return target
        return None

    def _fallback_agent(self) -> AgentDescriptor:
        agent = self.registry.default_agent
        if agent is not None:
            return agent
        candidates = self.candidates()
        if not candidates:
            raise ConfigurationError("Agent registry has no agents to recommend")
        return candidates[0]
