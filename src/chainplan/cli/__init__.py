"""
CLI commands for chainplan.
"""

from chainplan.cli.plan import list_plans_command, plan_command
from chainplan.cli.run import run_command
from chainplan.cli.verify import verify_command

__all__ = [
    "list_plans_command",
    "plan_command",
    "run_command",
    "verify_command",
]
