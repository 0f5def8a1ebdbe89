"""
CLI command for explorer verification.

Submits the contracts recorded in a manifest to the network's block explorer.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from chainplan.cli.ux import console, error, header, success, warning
from chainplan.clients import ExplorerClient
from chainplan.config import ProvisioningConfig, get_settings, load_config
from chainplan.core.errors import ConfigurationError, ExitCode, main_with_error_handling
from chainplan.ledger import ArtifactStore
from chainplan.orchestration import Manifest
from chainplan.orchestration.manifest import load_manifest
from chainplan.verification import ManifestVerifier, VerificationOutcome, VerificationReport


async def run_verification(
    manifest: Union[Manifest, Dict[str, Any]], config: ProvisioningConfig
) -> VerificationReport:
    """Verify every deployed contract in ``manifest`` on the configured explorer."""
    if not config.explorer.api_url:
        raise ConfigurationError("No explorer API configured", {"network": config.network})

    explorer = ExplorerClient(
        config.explorer.api_url,
        config.explorer.api_key,
        timeout=get_settings().http_timeout,
    )
    verifier = ManifestVerifier(
        explorer,
        ArtifactStore(Path(config.artifacts_dir)),
        config.explorer.api_url,
    )
    return await verifier.verify_manifest(manifest)


def print_verification_report(report: VerificationReport) -> None:
    """Print per-contract verification outcomes."""
    console.print()
    console.print(f"[bold]Explorer verification[/bold] [muted]({report.explorer_url})[/muted]")
    for result in report.results:
        if result.ok:
            console.print(f"  [green]✓ {result.resource:<22}[/green] {result.outcome.value}")
        elif result.outcome is VerificationOutcome.SKIPPED:
            console.print(f"  [yellow]⚠ {result.resource:<22}[/yellow] skipped: {result.detail}")
        else:
            console.print(f"  [red]✗ {result.resource:<22}[/red] {result.detail}")
    console.print()
    if report.all_verified:
        success(f"{report.verified_count} contracts verified")
    else:
        warning(f"{report.verified_count}/{len(report.results)} contracts verified")


@main_with_error_handling()
def verify_command(
    manifest_path: str,
    config_path: Optional[str] = None,
    network: Optional[str] = None,
    output_format: str = "text",
) -> int:
    """
    Verify the contracts of a written manifest.

    Exit codes:
        0 = Every contract verified (or already verified)
        11 = At least one contract failed verification

    Returns:
        Exit code
    """
    path = Path(manifest_path)
    if not path.exists():
        error(f"Manifest not found: {path}")
        return int(ExitCode.CONFIG_ERROR)

    manifest = load_manifest(path)
    config = load_config(config_path, network or manifest.get("network"))

    if output_format != "json":
        header(f"Verify: {manifest.get('plan', path.stem)} ({config.network})")

    report = asyncio.run(run_verification(manifest, config))

    if output_format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_verification_report(report)

    return 0 if not report.failed else int(ExitCode.PROVIDER_ERROR)
