"""Dependency planner: orders provisioning steps so every step follows its dependencies."""

from __future__ import annotations

from typing import Dict, Iterable, List

from chainplan.core.errors import CycleDetected, DuplicateStep, UnknownDependency
from chainplan.orchestration.models import ResourceSpec


def plan(specs: Iterable[ResourceSpec]) -> List[ResourceSpec]:
    """
    Return the specs in a total order consistent with ``depends_on``.

    Kahn's algorithm. When several steps are ready at once the one declared
    first wins, so the same input always produces the same order.

    Raises:
        DuplicateStep: two specs share a name
        UnknownDependency: a spec depends on a name absent from the input
        CycleDetected: the dependency relation is not acyclic
    """
    declared: List[ResourceSpec] = []
    by_name: Dict[str, ResourceSpec] = {}
    for spec in specs:
        if spec.name in by_name:
            raise DuplicateStep(spec.name)
        by_name[spec.name] = spec
        declared.append(spec)

    position = {spec.name: index for index, spec in enumerate(declared)}
    remaining: Dict[str, int] = {}
    dependents: Dict[str, List[str]] = {spec.name: [] for spec in declared}

    for spec in declared:
        deps = set(spec.depends_on)
        for dep in deps:
            if dep not in by_name:
                raise UnknownDependency(spec.name, dep)
            dependents[dep].append(spec.name)
        remaining[spec.name] = len(deps)

    ready = [spec.name for spec in declared if remaining[spec.name] == 0]
    ordered: List[ResourceSpec] = []

    while ready:
        ready.sort(key=position.__getitem__)
        name = ready.pop(0)
        ordered.append(by_name[name])
        for dependent in dependents[name]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                ready.append(dependent)

    if len(ordered) != len(declared):
        stuck = [spec.name for spec in declared if remaining[spec.name] > 0]
        raise CycleDetected(stuck)

    return ordered


class DependencyPlanner:
    """Wraps ``plan`` for callers that want to inspect the graph as well."""

    def __init__(self, specs: Iterable[ResourceSpec]) -> None:
        self._specs = list(specs)

    def order(self) -> List[ResourceSpec]:
        return plan(self._specs)

    def dependencies(self) -> Dict[str, List[str]]:
        """Step name to the steps it waits on, in declaration order."""
        return {spec.name: list(spec.depends_on) for spec in self._specs}
