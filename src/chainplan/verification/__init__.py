"""
Explorer verification for chainplan.

After a run completes, each deployed contract in the manifest can be
registered with an Etherscan-compatible explorer. Verification is
best-effort and reported separately from the run result.
"""

from .models import (
    DeployedContract,
    ResourceVerification,
    VerificationOutcome,
    VerificationReport,
)
from .verifier import ManifestVerifier, deployed_contracts

__all__ = [
    "DeployedContract",
    "ManifestVerifier",
    "ResourceVerification",
    "VerificationOutcome",
    "VerificationReport",
    "deployed_contracts",
]
