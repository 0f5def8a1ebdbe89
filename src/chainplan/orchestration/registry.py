"""Named plan registry for orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List

from chainplan.core.errors import PlanError
from chainplan.orchestration.models import ResourceSpec

if TYPE_CHECKING:
    from chainplan.config.deployment import ProvisioningConfig

PlanFactory = Callable[["ProvisioningConfig"], List[ResourceSpec]]


@dataclass(frozen=True)
class PlanDefinition:
    """A named recipe producing the resource specs of one run."""

    name: str
    factory: PlanFactory
    description: str = ""

    def specs(self, config: "ProvisioningConfig") -> List[ResourceSpec]:
        return self.factory(config)


class PlanRegistry:
    """In-memory registry for plan definitions."""

    def __init__(self) -> None:
        self._plans: Dict[str, PlanDefinition] = {}

    def register(self, name: str, factory: PlanFactory, description: str = "") -> None:
        """Register a plan factory by name."""
        self._plans[name] = PlanDefinition(name=name, factory=factory, description=description)

    def get(self, name: str) -> PlanDefinition:
        """Get a plan by name."""
        try:
            return self._plans[name]
        except KeyError:
            raise PlanError(
                f"Unknown plan '{name}'", {"known": ", ".join(self.list())}
            ) from None

    def list(self) -> List[str]:
        """List all registered plan names."""
        return list(self._plans.keys())

    def definitions(self) -> List[PlanDefinition]:
        return list(self._plans.values())
