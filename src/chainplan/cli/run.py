"""
CLI command for running a provisioning plan against a ledger.
"""

from __future__ import annotations

import asyncio
import json
import signal
from pathlib import Path
from typing import Any, Optional

import structlog

from chainplan.cli.ux import console, error, header, info, success, warning
from chainplan.cli.verify import print_verification_report, run_verification
from chainplan.config import ProvisioningConfig, get_settings, load_config
from chainplan.config.loader import override_retry
from chainplan.core.errors import (
    ChainPlanError,
    ConfigurationError,
    format_error_message,
    main_with_error_handling,
)
from chainplan.ledger import ArtifactStore, JsonRpcLedgerClient, LedgerClient, SimulatedLedger
from chainplan.orchestration import (
    CancellationToken,
    Orchestrator,
    ProvisioningRun,
    ResourceSpec,
    StateFile,
    StepExecutor,
    StepObserver,
    StepResult,
    write_manifest,
)
from chainplan.plans import default_registry

logger = structlog.get_logger()

# Hardhat's first default signer; used as the simulated submitting identity.
SIMULATED_IDENTITY = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class ConsoleReporter(StepObserver):
    """Renders step events on the console."""

    def on_step_started(self, step: ResourceSpec, position: int, total: int) -> None:
        console.print(f"  [muted][{position}/{total}][/muted] {step.name} ...")

    def on_retry(self, step: ResourceSpec, attempt: int, error: Exception, delay: float) -> None:
        console.print(
            f"    [warning]⚠ attempt {attempt} failed ({error}); retrying in {delay:.1f}s[/warning]"
        )

    def on_step_result(self, result: StepResult) -> None:
        if result.success:
            console.print(f"    [success]✓ {result.step}[/success] {_describe_output(result.output)}")
        else:
            console.print(f"    [error]✗ {result.step}[/error] {result.error}")


def _describe_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    if output is None:
        return ""
    return str(output.get("address") or output.get("transaction") or "")


def default_output_path(plan_name: str, network: str) -> Path:
    return Path("deployments") / network / f"{plan_name}.json"


def default_state_path(plan_name: str, network: str) -> Path:
    return Path(".chainplan") / "state" / f"{network}-{plan_name}.json"


def print_run_summary(run: ProvisioningRun, manifest_path: Optional[Path]) -> None:
    """Print run outcome with rich formatting."""
    console.print()
    duration = f" in {run.duration_seconds:.1f}s" if run.duration_seconds > 0 else ""

    if run.completed and run.manifest is not None:
        resumed = sum(1 for r in run.results if r.resumed)
        for resource, address in run.manifest.identifiers.items():
            console.print(f"  [green]✓ {resource:<22}[/green] {address}")
        console.print()
        success(f"Provisioned {len(run.manifest.identifiers)} resources{duration}")
        if resumed:
            info(f"{resumed} steps were already complete and not resubmitted")
        if manifest_path is not None:
            console.print(f"  Manifest → [cyan]{manifest_path}[/cyan]")
        console.print()
        return

    failure = run.failure
    if failure is None:
        return
    error(f"Step {failure.step} failed{duration}: {format_error_message(failure.cause)}")
    console.print(f"  [muted]cause:[/muted] {type(failure.cause).__name__}")
    if failure.completed:
        console.print()
        console.print("[bold]Completed before the failure:[/bold]")
        for step in failure.completed:
            console.print(f"  [dim]•[/dim] {step}: {_describe_output(failure.state[step])}")
    console.print()
    warning("No rollback is attempted; completed steps remain on the ledger")
    console.print()


def run_to_dict(run: ProvisioningRun) -> dict[str, Any]:
    output: dict[str, Any] = {
        "plan": run.plan,
        "network": run.network,
        "run_id": run.run_id,
        "status": str(run.status),
        "duration_seconds": round(run.duration_seconds, 3),
        "steps": [result.to_dict() for result in run.results],
    }
    if run.manifest is not None:
        output["manifest"] = run.manifest.to_dict()
    if run.failure is not None:
        output["failure"] = {
            "step": run.failure.step,
            "cause": type(run.failure.cause).__name__,
            "message": run.failure.cause.message,
            "details": {k: str(v) for k, v in run.failure.cause.details.items()},
            "completed": run.failure.completed,
        }
    return output


def print_run_json(run: ProvisioningRun, verification: Optional[dict[str, Any]] = None) -> None:
    """Print run result in JSON format."""
    output = run_to_dict(run)
    if verification is not None:
        output["verification"] = verification
    print(json.dumps(output, indent=2, default=str))


async def _build_ledger(
    config: ProvisioningConfig, simulate: bool
) -> tuple[LedgerClient, str]:
    if simulate:
        return SimulatedLedger(), config.submitting_identity or SIMULATED_IDENTITY

    if not config.network_endpoint:
        raise ConfigurationError("No network endpoint configured", {"network": config.network})
    ledger = JsonRpcLedgerClient(
        config.network_endpoint,
        ArtifactStore(Path(config.artifacts_dir)),
        timeout=get_settings().http_timeout,
        poll_interval=config.poll_interval,
        chain_id=config.chain_id,
    )
    await ledger.check_chain()
    sender = config.submitting_identity or await ledger.default_account()
    return ledger, sender


async def execute_plan(
    plan_name: str,
    config: ProvisioningConfig,
    *,
    simulate: bool = False,
    state_file: Optional[StateFile] = None,
    resume: bool = False,
    observers: tuple[StepObserver, ...] = (),
    cancel: Optional[CancellationToken] = None,
) -> ProvisioningRun:
    """Build the ledger and orchestrator for ``config`` and run the named plan."""
    definition = default_registry().get(plan_name)
    ledger, sender = await _build_ledger(config, simulate)
    config.submitting_identity = sender

    executor = StepExecutor(ledger, sender, config.retry, observers=observers)
    orchestrator = Orchestrator(
        executor,
        network=config.network,
        state_file=state_file,
        min_balance=config.min_balance,
    )
    state = state_file.load(plan_name) if (resume and state_file is not None) else None
    return await orchestrator.run(plan_name, definition.specs(config), state=state, cancel=cancel)


async def _run_with_signals(plan_name: str, config: ProvisioningConfig, **kwargs: Any) -> ProvisioningRun:
    """Run the plan; SIGINT cancels it between steps."""
    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        logger.debug("signal_handler_unavailable")
    try:
        return await execute_plan(plan_name, config, cancel=cancel, **kwargs)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@main_with_error_handling()
def run_command(
    plan_name: str,
    config_path: Optional[str] = None,
    network: Optional[str] = None,
    simulate: bool = False,
    output: Optional[str] = None,
    state_file: Optional[str] = None,
    resume: bool = False,
    verify: bool = False,
    output_format: str = "text",
    max_attempts: Optional[int] = None,
    confirmation_timeout: Optional[float] = None,
) -> int:
    """
    Run a provisioning plan.

    Args:
        plan_name: Registered plan name
        config_path: Deployment file (defaults to .chainplan/deploy.yaml)
        network: Network profile overriding the deployment file
        simulate: Run against the in-memory ledger
        output: Manifest path (default: deployments/<network>/<plan>.json)
        state_file: Working state file used for resuming
        resume: Skip steps already recorded in the state file
        verify: Verify deployed contracts on the explorer after completion
        output_format: Output format (text, json)
        max_attempts: Overrides the retry policy's attempt budget
        confirmation_timeout: Overrides the per-attempt confirmation timeout

    Returns:
        0 when the run completes, otherwise the exit code of the failing
        step's cause. Verification never changes the exit code.
    """
    config = override_retry(
        load_config(config_path, network),
        max_attempts=max_attempts,
        confirmation_timeout=confirmation_timeout,
    )
    state_path = Path(state_file) if state_file else default_state_path(plan_name, config.network)
    observers: tuple[StepObserver, ...] = ()

    if output_format != "json":
        header(f"Run: {plan_name} ({config.network}{', simulated' if simulate else ''})")
        console.print()
        observers = (ConsoleReporter(),)

    run = asyncio.run(
        _run_with_signals(
            plan_name,
            config,
            simulate=simulate,
            state_file=StateFile(state_path),
            resume=resume,
            observers=observers,
        )
    )

    manifest_path: Optional[Path] = None
    if run.manifest is not None:
        manifest_path = write_manifest(
            run.manifest,
            Path(output) if output else default_output_path(plan_name, config.network),
        )

    report = None
    skipped: Optional[str] = None
    if verify and run.completed and run.manifest is not None:
        if simulate:
            skipped = "simulated run"
        else:
            try:
                report = asyncio.run(run_verification(run.manifest, config))
            except ChainPlanError as e:
                skipped = format_error_message(e)
            except Exception as e:
                logger.exception("verification_aborted", error_type=type(e).__name__)
                skipped = f"verification aborted: {type(e).__name__}: {e}"

    if output_format == "json":
        verification = report.to_dict() if report is not None else None
        if skipped:
            verification = {"skipped": skipped}
        print_run_json(run, verification)
    else:
        print_run_summary(run, manifest_path)
        if skipped:
            warning(f"Explorer verification skipped: {skipped}")
        if report is not None:
            print_verification_report(report)

    if run.failure is not None:
        return int(run.failure.exit_code)
    return 0
