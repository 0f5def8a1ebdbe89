"""Built-in provisioning plans."""

from chainplan.orchestration.registry import PlanRegistry
from chainplan.plans.stable_jack import stable_jack_plan, stable_jack_scroll_plan


def register_default_plans(registry: PlanRegistry) -> None:
    """Register all built-in plans."""
    registry.register(
        "stable-jack",
        stable_jack_plan,
        "Treasury, fToken, xToken, Market and RebalancePool with full initialization",
    )
    registry.register(
        "stable-jack-scroll",
        stable_jack_scroll_plan,
        "Treasury, Market and RebalancePool as rolled out on Scroll Sepolia",
    )


def default_registry() -> PlanRegistry:
    registry = PlanRegistry()
    register_default_plans(registry)
    return registry


__all__ = [
    "default_registry",
    "register_default_plans",
    "stable_jack_plan",
    "stable_jack_scroll_plan",
]
