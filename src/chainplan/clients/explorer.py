from __future__ import annotations

import json
from typing import Any

from chainplan.clients.base import BaseHTTPClient
from chainplan.core.errors import ProviderError

ALREADY_VERIFIED = "already verified"


class ExplorerError(ProviderError):
    """The explorer refused a verification request."""


class ExplorerClient(BaseHTTPClient):
    """Etherscan-compatible contract verification API, with retry and circuit breaker."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        *,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(api_url, timeout=timeout)
        self._api_key = api_key

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def verify_source(
        self,
        *,
        address: str,
        contract_name: str,
        compiler_version: str,
        standard_json_input: dict[str, Any],
        constructor_arguments: str,
    ) -> str:
        """Submit sources for verification; returns the explorer's request GUID."""
        body = await self.post(
            data={
                "apikey": self._api_key or "",
                "module": "contract",
                "action": "verifysourcecode",
                "contractaddress": address,
                "sourceCode": json.dumps(standard_json_input),
                "codeformat": "solidity-standard-json-input",
                "contractname": contract_name,
                "compilerversion": compiler_version,
                # the explorer API spells it this way
                "constructorArguements": constructor_arguments,
            }
        )
        if str(body.get("status")) != "1":
            raise ExplorerError(
                "Verification request rejected",
                {"address": address, "result": body.get("result")},
            )
        return str(body["result"])

    async def check_status(self, guid: str) -> str:
        """Status text for a verification request ("Pass - Verified", "Pending in queue", ...)."""
        body = await self.get(
            params={
                "apikey": self._api_key or "",
                "module": "contract",
                "action": "checkverifystatus",
                "guid": guid,
            }
        )
        return str(body.get("result", ""))
