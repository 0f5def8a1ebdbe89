"""
CLI commands for listing plans and previewing their execution order.
"""

import json
from typing import List, Optional

from chainplan.cli.ux import console, header
from chainplan.config import load_config
from chainplan.core.errors import main_with_error_handling
from chainplan.orchestration import DependencyPlanner, ResourceSpec
from chainplan.plans import default_registry


def print_plan_summary(plan_name: str, network: str, steps: List[ResourceSpec]) -> None:
    """Print the ordered steps of a plan."""
    console.print()
    header(f"Plan: {plan_name} ({network})")
    console.print()

    console.print("[bold]Steps will be executed in this order:[/bold]")
    console.print()
    for position, step in enumerate(steps, start=1):
        target = step.function or step.contract
        console.print(
            f"  [success]{position:>2}. {step.name:<24}[/success] "
            f"[muted]{step.kind}[/muted] {target}"
        )
        if step.depends_on:
            console.print(f"      [muted]└ after {', '.join(step.depends_on)}[/muted]")

    resources = sorted({step.resource for step in steps})
    console.print()
    console.print(f"[bold]Total:[/bold] {len(steps)} steps, {len(resources)} resources")
    console.print()
    console.print("[muted]To provision, run:[/muted]")
    console.print(f"  [info]chainplan run {plan_name} --network {network}[/info]")
    console.print()


def print_plan_json(plan_name: str, network: str, steps: List[ResourceSpec]) -> None:
    """Print plan in JSON format."""
    output = {
        "plan": plan_name,
        "network": network,
        "steps": [
            {
                "name": step.name,
                "kind": str(step.kind),
                "resource": step.resource,
                "contract": step.contract,
                "function": step.function,
                "depends_on": list(step.depends_on),
            }
            for step in steps
        ],
    }
    print(json.dumps(output, indent=2))


@main_with_error_handling()
def plan_command(
    plan_name: str,
    config_path: Optional[str] = None,
    network: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Show the order in which a plan's steps would run.

    Nothing is submitted. Plan errors (cycles, unknown or duplicate steps)
    surface here exactly as they would at the start of a run.

    Returns:
        Exit code (0 for success)
    """
    config = load_config(config_path, network)
    definition = default_registry().get(plan_name)
    steps = DependencyPlanner(definition.specs(config)).order()

    if output_format == "json":
        print_plan_json(plan_name, config.network, steps)
    else:
        print_plan_summary(plan_name, config.network, steps)
    return 0


def list_plans_command(output_format: str = "text") -> int:
    """List the built-in plans."""
    definitions = default_registry().definitions()

    if output_format == "json":
        output = [{"name": d.name, "description": d.description} for d in definitions]
        print(json.dumps(output, indent=2))
        return 0

    console.print()
    console.print("[bold]Available plans:[/bold]")
    console.print()
    for definition in definitions:
        console.print(f"  [info]{definition.name:<22}[/info] {definition.description}")
    console.print()
    return 0
