"""
chainplan CLI

Usage:
    chainplan <command> [args]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from chainplan import __version__
from chainplan.config import get_settings, list_networks
from chainplan.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chainplan", description="Dependency-ordered provisioning of on-chain systems"
    )
    parser.add_argument("--version", action="version", version=f"chainplan {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show structured logs")
    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list-plans", help="List built-in plans")
    list_parser.add_argument("--format", dest="output_format", choices=["text", "json"], default="text")

    plan_parser = subparsers.add_parser("plan", help="Show the execution order of a plan")
    plan_parser.add_argument("plan_name", help="Plan name (see list-plans)")
    plan_parser.add_argument("--config", dest="config_path", help="Deployment YAML file")
    plan_parser.add_argument("--network", choices=list_networks(), help="Network profile")
    plan_parser.add_argument("--format", dest="output_format", choices=["text", "json"], default="text")

    run_parser = subparsers.add_parser("run", help="Provision a plan on a ledger")
    run_parser.add_argument("plan_name", help="Plan name (see list-plans)")
    run_parser.add_argument("--config", dest="config_path", help="Deployment YAML file")
    run_parser.add_argument("--network", choices=list_networks(), help="Network profile")
    run_parser.add_argument("--simulate", action="store_true",
                            help="Run against an in-memory ledger")
    run_parser.add_argument("--output", help="Manifest path (default: deployments/<network>/<plan>.json)")
    run_parser.add_argument("--state-file", help="Working state file used for --resume")
    run_parser.add_argument("--resume", action="store_true",
                            help="Skip steps already recorded in the state file")
    run_parser.add_argument("--verify", action="store_true",
                            help="Verify deployed contracts on the explorer afterwards")
    run_parser.add_argument("--max-attempts", type=int,
                            help="Submission attempts per step (overrides the deployment file)")
    run_parser.add_argument("--confirmation-timeout", type=float,
                            help="Seconds to wait for each confirmation")
    run_parser.add_argument("--format", dest="output_format", choices=["text", "json"], default="text")

    verify_parser = subparsers.add_parser("verify", help="Verify a manifest's contracts on the explorer")
    verify_parser.add_argument("manifest", help="Manifest JSON written by run")
    verify_parser.add_argument("--config", dest="config_path", help="Deployment YAML file")
    verify_parser.add_argument("--network", choices=list_networks(), help="Network profile")
    verify_parser.add_argument("--format", dest="output_format", choices=["text", "json"], default="text")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if get_settings().debug:
        configure_logging(logging.DEBUG)
    else:
        configure_logging(logging.INFO if args.verbose else logging.WARNING)

    if args.command == "list-plans":
        from chainplan.cli.plan import list_plans_command
        sys.exit(list_plans_command(output_format=args.output_format))

    if args.command == "plan":
        from chainplan.cli.plan import plan_command
        sys.exit(plan_command(
            args.plan_name,
            config_path=args.config_path,
            network=args.network,
            output_format=args.output_format,
        ))

    if args.command == "run":
        from chainplan.cli.run import run_command
        sys.exit(run_command(
            args.plan_name,
            config_path=args.config_path,
            network=args.network,
            simulate=args.simulate,
            output=args.output,
            state_file=args.state_file,
            resume=args.resume,
            verify=args.verify,
            output_format=args.output_format,
            max_attempts=args.max_attempts,
            confirmation_timeout=args.confirmation_timeout,
        ))

    if args.command == "verify":
        from chainplan.cli.verify import verify_command
        sys.exit(verify_command(
            args.manifest,
            config_path=args.config_path,
            network=args.network,
            output_format=args.output_format,
        ))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
