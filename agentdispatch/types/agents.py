"""Agent and caller data models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AccessRequirement:
    """What a caller needs in order to run an agent."""

    role_required: str | None = None
    premium_feature: str | None = None

    @property
    def is_open(self) -> bool:
        return self.role_required is None and self.premium_feature is None


@dataclass(frozen=True)
class AgentDescriptor:
    """Immutable catalog entry for one agent.

    An agent without ``external_workflow_ref`` always runs through the
    simulated fallback.
    """

    id: str
    name: str
    category: str
    capabilities: tuple[str, ...] = ()
    access: AccessRequirement = field(default_factory=AccessRequirement)
    external_workflow_ref: str | None = None
    visible: bool = True
    description: str = ""
    primary_capability: str | None = None
    primary_output: str | None = None
    fast_turnaround: bool = False
    handoff_to: str | None = None
    orchestrator: bool = False

    @property
    def capability(self) -> str:
        """Headline capability, falling back to the first declared one."""
        if self.primary_capability:
            return self.primary_capability
        if self.capabilities:
            return self.capabilities[0]
        return "General AI Assistance"

    @property
    def output(self) -> str:
        return self.primary_output or "AI-generated content and insights"


@dataclass(frozen=True)
class Caller:
    """Already-validated caller identity and entitlement."""

    caller_id: str
    role: str = "client"
    features: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def for_role(cls, caller_id: str, role: str) -> "Caller":
        """Build a caller whose features come from the role entitlement table."""
        from agentdispatch.access import features_for_role

        return cls(caller_id=caller_id, role=role, features=features_for_role(role))
