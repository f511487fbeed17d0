"""
Agent registry.

Static, process-wide catalog of agent descriptors. Loaded once at process
start and read-only afterwards.
"""

import json
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from agentdispatch.exceptions import ConfigurationError, NotFoundError
from agentdispatch.logging import get_logger
from agentdispatch.types.agents import AccessRequirement, AgentDescriptor

logger = get_logger("registry")

AGENT_SUFFIX = "-agent"
DEFAULT_AGENT_ID = "biz"

_WHITESPACE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Normalize a display name: lowercase, whitespace runs become '-'."""
    return _WHITESPACE.sub("-", name.strip().lower())


def strip_suffix(agent_id: str) -> str:
    """Drop the conventional '-agent' suffix, if present."""
    if agent_id.endswith(AGENT_SUFFIX) and len(agent_id) > len(AGENT_SUFFIX):
        return agent_id[: -len(AGENT_SUFFIX)]
    return agent_id


class AgentRegistry:
    """
    Read-only catalog of agents.

    Example:
        ```python
        registry = AgentRegistry.default()
        agent = registry.lookup("branding-agent")
        assert agent is registry.lookup("Branding")
        ```
    """

    def __init__(
        self,
        agents: Iterable[AgentDescriptor],
        default_agent_id: str | None = DEFAULT_AGENT_ID,
    ) -> None:
        """
        Build a registry.

        Args:
            agents: Agent descriptors in display order
            default_agent_id: General-purpose agent used as the recommendation fallback

        Raises:
            ConfigurationError: On duplicate ids or an unknown default agent
        """
        self._agents: tuple[AgentDescriptor, ...] = tuple(agents)
        self._by_id: dict[str, AgentDescriptor] = {}
        self._order: dict[str, int] = {}

        for index, agent in enumerate(self._agents):
            if not agent.id:
                raise ConfigurationError(f"Agent at position {index} has no id")
            if agent.id in self._by_id:
                raise ConfigurationError(f"Duplicate agent id: {agent.id}")
            self._by_id[agent.id] = agent
            self._order[agent.id] = index

        if default_agent_id is not None and default_agent_id not in self._by_id:
            raise ConfigurationError(f"Default agent not registered: {default_agent_id}")
        self.default_agent_id = default_agent_id

        logger.debug("Loaded %d agents (%d visible)", len(self._agents), len(self.list_visible()))

    def __iter__(self) -> Iterator[AgentDescriptor]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._by_id

    def get(self, agent_id: str) -> AgentDescriptor | None:
        """Exact-id access without alias resolution."""
        return self._by_id.get(agent_id)

    def index_of(self, agent_id: str) -> int:
        """Registry (display) order of an agent."""
        return self._order[agent_id]

    def list_visible(self) -> list[AgentDescriptor]:
        return [agent for agent in self._agents if agent.visible]

    @property
    def default_agent(self) -> AgentDescriptor | None:
        if self.default_agent_id is None:
            return None
        return self._by_id[self.default_agent_id]

    def lookup(self, id_or_slug: str) -> AgentDescriptor:
        """
        Resolve an agent by any of its public aliases.

        Tries, in order: exact id, display-name slug, then the reference
        with its '-agent' suffix stripped, matched against each id both as
        written and with its own suffix stripped. First match wins.

        Args:
            id_or_slug: Agent id, display-name slug or suffixed id

        Returns:
            The matching AgentDescriptor

        Raises:
            NotFoundError: If no agent matches
        """
        ref = (id_or_slug or "").strip()
        if not ref:
            raise NotFoundError("AGENT_NOT_FOUND", "Agent not found: <empty>")

        agent = self._by_id.get(ref)
        if agent is not None:
            return agent

        slug = slugify(ref)
        for agent in self._agents:
            if slugify(agent.name) == slug:
                return agent

        base = strip_suffix(slug)
        for agent in self._agents:
            if base in (agent.id, strip_suffix(agent.id)):
                return agent

        raise NotFoundError("AGENT_NOT_FOUND", f"Agent not found: {id_or_slug}")

    @classmethod
    def default(cls) -> "AgentRegistry":
        """Registry with the built-in agent catalog."""
        return cls(DEFAULT_AGENTS, default_agent_id=DEFAULT_AGENT_ID)

    @classmethod
    def from_json(cls, path: str | Path) -> "AgentRegistry":
        """
        Load a registry from a JSON file.

        The file holds ``{"defaultAgentId": ..., "agents": [...]}`` with
        camelCase agent fields (``roleRequired``, ``premiumFeature``,
        ``externalWorkflowRef``, ...).

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read agent registry {path}: {e}") from e

        if isinstance(raw, list):
            raw = {"agents": raw}
        if not isinstance(raw, dict) or not isinstance(raw.get("agents"), list):
            raise ConfigurationError(f"Agent registry {path} must contain an 'agents' list")

        agents = [descriptor_from_dict(item) for item in raw["agents"]]
        return cls(agents, default_agent_id=raw.get("defaultAgentId", DEFAULT_AGENT_ID))


def descriptor_from_dict(data: dict[str, Any]) -> AgentDescriptor:
    """Build an AgentDescriptor from a camelCase mapping."""
    try:
        agent_id = data["id"]
        name = data["name"]
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Agent entry missing id or name: {data!r}") from e

    return AgentDescriptor(
        id=agent_id,
        name=name,
        category=data.get("category") or "General",
        capabilities=tuple(data.get("capabilities", [])),
        access=AccessRequirement(
            role_required=data.get("roleRequired"),
            premium_feature=data.get("premiumFeature"),
        ),
        external_workflow_ref=data.get("externalWorkflowRef"),
        visible=data.get("visible", True) is not False,
        description=data.get("description", ""),
        primary_capability=data.get("primaryCapability"),
        primary_output=data.get("primaryOutput"),
        fast_turnaround=bool(data.get("fastTurnaround", False)),
        handoff_to=data.get("handoffTo"),
        orchestrator=bool(data.get("orchestrator", False)),
    )


_PREMIUM = AccessRequirement(premium_feature="premium-agents")

DEFAULT_AGENTS: tuple[AgentDescriptor, ...] = (
    AgentDescriptor(
        id="adcreative",
        name="Ad Creative",
        category="Marketing",
        capabilities=("ad creative", "ad copy", "campaign", "advertising", "conversion"),
        external_workflow_ref="ad-creative-workflow",
        description="High-converting ad creatives and copy",
        primary_capability="Ad Creative Generation",
        primary_output="High-converting ad creatives and copy",
        fast_turnaround=True,
        handoff_to="social",
    ),
    AgentDescriptor(
        id="analytics",
        name="Analytics",
        category="Analytics",
        capabilities=("performance tracking", "audience analysis", "roi optimization", "analytics", "metrics"),
        external_workflow_ref="analytics-workflow",
        description="AI-powered marketing analytics and optimization",
        primary_capability="Data Analysis & Insights",
        primary_output="Analytics reports and performance insights",
        fast_turnaround=True,
        handoff_to="biz",
    ),
    AgentDescriptor(
        id="biz",
        name="Biz",
        category="Business",
        capabilities=("business strategy", "growth plan", "market research", "business", "startup"),
        external_workflow_ref="business-strategy-workflow",
        description="Strategic business plans and recommendations",
        primary_capability="Business Strategy Development",
        primary_output="Strategic business plans and recommendations",
        handoff_to="proposal",
    ),
    AgentDescriptor(
        id="branding",
        name="Branding",
        category="Branding",
        capabilities=(
            "brand identity",
            "logo design",
            "color palette",
            "typography",
            "brand guidelines",
            "brand voice",
        ),
        external_workflow_ref="branding-workflow",
        description="AI-powered brand identity and guidelines generation",
        primary_capability="Brand Identity Creation",
        primary_output="Complete brand identity packages",
        handoff_to="site",
    ),
    AgentDescriptor(
        id="clientsuccess",
        name="Client Success",
        category="Customer Success",
        capabilities=("client support", "customer retention", "onboarding", "customer", "client"),
        access=_PREMIUM,
        external_workflow_ref="client-success-workflow",
        primary_capability="Client Relationship Management",
        primary_output="Client success strategies and communications",
        fast_turnaround=True,
    ),
    AgentDescriptor(
        id="contentcreation",
        name="Content Creator",
        category="Content",
        capabilities=("content creation", "seo", "blog", "articles", "copywriting", "content"),
        external_workflow_ref="content-creation-workflow",
        primary_capability="Content Creation & SEO",
        primary_output="SEO-optimized content and articles",
        handoff_to="publishing",
    ),
    AgentDescriptor(
        id="payment",
        name="Payment Manager",
        category="Finance",
        capabilities=("payment processing", "invoicing", "revenue", "billing", "ecommerce"),
        access=_PREMIUM,
        external_workflow_ref="payments-workflow",
        primary_capability="Payment Processing & Analytics",
        primary_output="Payment processing and revenue insights",
    ),
    AgentDescriptor(
        id="percy",
        name="Percy",
        category="Concierge",
        capabilities=("orchestration", "intent analysis", "agent routing"),
        external_workflow_ref="percy-orchestration-workflow",
        primary_capability="AI Concierge & Orchestration",
        primary_output="Coordinated agent responses and workflows",
        orchestrator=True,
    ),
    AgentDescriptor(
        id="proposal",
        name="Proposal Generator",
        category="Sales",
        capabilities=("business proposal", "sales", "pitch", "proposal", "consulting"),
        access=_PREMIUM,
        external_workflow_ref="proposal-workflow",
        primary_capability="Business Proposal Generation",
        primary_output="Professional business proposals",
    ),
    AgentDescriptor(
        id="publishing",
        name="Publishing",
        category="Content",
        capabilities=("book publishing", "distribution", "publishing", "ebook", "author"),
        access=_PREMIUM,
        external_workflow_ref="publishing-workflow",
        primary_capability="Content Publishing & Distribution",
        primary_output="Published content across platforms",
    ),
    AgentDescriptor(
        id="site",
        name="Site Gen",
        category="Web",
        capabilities=("website generation", "landing page", "web design", "website", "local business"),
        access=_PREMIUM,
        external_workflow_ref="sitegen-workflow",
        primary_capability="Website Generation & Optimization",
        primary_output="Complete website builds and optimizations",
        handoff_to="contentcreation",
    ),
    AgentDescriptor(
        id="social",
        name="Social Bot",
        category="Social",
        capabilities=("social media", "post scheduling", "hashtag generation", "engagement", "influencer"),
        external_workflow_ref="social-media-workflow",
        primary_capability="Social Media Management",
        primary_output="Social media content and engagement",
        fast_turnaround=True,
        handoff_to="analytics",
    ),
    AgentDescriptor(
        id="sync",
        name="Percy Sync",
        category="Integration",
        capabilities=("data synchronization", "integration", "crm sync"),
        access=AccessRequirement(premium_feature="custom-webhooks"),
        external_workflow_ref="sync-workflow",
        visible=False,
        primary_capability="Data Synchronization",
        primary_output="Synchronized data across platforms",
    ),
    AgentDescriptor(
        id="videocontent",
        name="Video Content",
        category="Content",
        capabilities=("script writing", "storyboard creation", "video planning", "video", "youtube"),
        access=_PREMIUM,
        external_workflow_ref="video-content-workflow",
        primary_capability="Video Content Creation",
        primary_output="Video content and multimedia assets",
        handoff_to="social",
    ),
    AgentDescriptor(
        id="skillsmith",
        name="SkillSmith",
        category="Training",
        capabilities=("skill analysis", "training plan", "coaching", "sports", "fitness"),
        primary_capability="Skill Development & Training",
        primary_output="Personalized training plans and skill analysis",
        handoff_to="videocontent",
    ),
)
