"""Access gate: caller role and entitlements against agent requirements.

Everything here is pure so it can be tested without a live caller.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from agentdispatch.types.agents import AgentDescriptor, Caller


@dataclass(frozen=True)
class PremiumFeature:
    """A gated feature and the lowest subscription that unlocks it."""

    id: str
    name: str
    required_role: str  # "pro" | "enterprise"


PREMIUM_FEATURES: dict[str, PremiumFeature] = {
    "advanced-automation": PremiumFeature("advanced-automation", "Advanced Automation", "pro"),
    "bulk-automation": PremiumFeature("bulk-automation", "Bulk Processing", "pro"),
    "custom-webhooks": PremiumFeature("custom-webhooks", "Custom Webhooks", "enterprise"),
    "premium-agents": PremiumFeature("premium-agents", "Premium Agents", "pro"),
    "custom-agents": PremiumFeature("custom-agents", "Custom Agent Creation", "enterprise"),
    "unlimited-usage": PremiumFeature("unlimited-usage", "Unlimited Usage", "pro"),
    "priority-processing": PremiumFeature("priority-processing", "Priority Processing", "enterprise"),
}

_PRO_FEATURES = frozenset({
    "advanced-automation",
    "bulk-automation",
    "premium-agents",
    "unlimited-usage",
})

ROLE_FEATURES: dict[str, frozenset[str]] = {
    "client": frozenset(),
    "pro": _PRO_FEATURES,
    "enterprise": _PRO_FEATURES | {"custom-webhooks", "custom-agents", "priority-processing"},
    "admin": frozenset(PREMIUM_FEATURES),
}

ACCESS_GRANTED = "access_granted"
ROLE_REQUIRED = "role_required"
SUBSCRIPTION_REQUIRED = "subscription_required"


def features_for_role(role: str) -> frozenset[str]:
    """Entitlement set for a role; unknown roles get none."""
    return ROLE_FEATURES.get(role, frozenset())


@dataclass(frozen=True)
class AccessDecision:
    """Result of evaluating a caller against an agent."""

    allowed: bool
    reason: str
    message: str = ""
    upgrade_required: str | None = None


def check_access(caller: Caller, agent: AgentDescriptor) -> AccessDecision:
    """
    Evaluate a caller against an agent's access requirement.

    Both requirements are checked independently; either failing is a
    denial. The role check is reported first when both fail.

    Args:
        caller: Validated caller identity and entitlement
        agent: Agent being requested

    Returns:
        AccessDecision with a machine-readable reason
    """
    requirement = agent.access

    if requirement.role_required is not None and caller.role != requirement.role_required:
        return AccessDecision(
            allowed=False,
            reason=ROLE_REQUIRED,
            message=(
                f"Access denied: {agent.name} requires the "
                f"{requirement.role_required} role"
            ),
            upgrade_required=requirement.role_required,
        )

    feature_id = requirement.premium_feature
    if feature_id is not None and feature_id not in caller.features:
        feature = PREMIUM_FEATURES.get(feature_id)
        if feature is None:
            return AccessDecision(
                allowed=False,
                reason=SUBSCRIPTION_REQUIRED,
                message=f"Access denied: {agent.name} requires {feature_id}",
            )
        return AccessDecision(
            allowed=False,
            reason=SUBSCRIPTION_REQUIRED,
            message=(
                f"Access denied: {feature.name} requires "
                f"{feature.required_role} subscription"
            ),
            upgrade_required=feature.required_role,
        )

    return AccessDecision(allowed=True, reason=ACCESS_GRANTED)


def is_authorized(caller: Caller, agent: AgentDescriptor) -> bool:
    """Return True when the caller may run the agent."""
    return check_access(caller, agent).allowed


def partition_by_access(
    caller: Caller, agents: Iterable[AgentDescriptor]
) -> tuple[list[AgentDescriptor], list[AgentDescriptor]]:
    """Split agents into (available, locked) for the caller, keeping order."""
    available: list[AgentDescriptor] = []
    locked: list[AgentDescriptor] = []
    for agent in agents:
        if is_authorized(caller, agent):
            available.append(agent)
        else:
            locked.append(agent)
    return available, locked
