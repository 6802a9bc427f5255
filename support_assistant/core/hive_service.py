"""Account facts from the Hive blockchain.

JSON-RPC over httpx with node failover: nodes are tried in order until one
answers. Lookups return neutral values when no node answers, matching the
"not available" contract of the account service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from support_assistant.core.logging import get_logger

logger = get_logger(__name__)

# Full mana regeneration takes five days
REGENERATION_SECONDS = 432000
MAX_PERCENT = 10000


class HiveClient:
    """Minimal Hive RPC client for the account facts the assistant needs."""

    def __init__(
        self,
        nodes: list[str],
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not nodes:
            raise ValueError("At least one Hive node is required")
        self._nodes = nodes
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: Any) -> Any | None:
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}
        for node in self._nodes:
            try:
                response = await self._client.post(node, json=payload)
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Hive node {node} failed for {method}: {e}")
                continue
            if "error" in body:
                logger.debug(f"Hive node {node} returned error for {method}: {body['error']}")
                continue
            return body.get("result")
        logger.warning(f"All Hive nodes failed for {method}")
        return None

    async def get_account(self, user_name: str) -> dict[str, Any] | None:
        result = await self._call("condenser_api.get_accounts", [[user_name]])
        if not result:
            return None
        return result[0]

    async def get_voting_power(self, user_name: str, now: datetime | None = None) -> float:
        """Current voting power in basis points (0..10000)."""
        account = await self.get_account(user_name)
        if not account:
            return float(MAX_PERCENT)

        now = now or datetime.now(timezone.utc)
        last_vote = _parse_chain_time(account.get("last_vote_time"))
        elapsed = (now - last_vote).total_seconds() if last_vote else REGENERATION_SECONDS
        voting_power = float(account.get("voting_power") or 0)
        return min(MAX_PERCENT, voting_power + MAX_PERCENT * elapsed / REGENERATION_SECONDS)

    async def get_rc_percentage(self, user_name: str, now: datetime | None = None) -> float:
        """Current resource credits in basis points (0..10000)."""
        result = await self._call("rc_api.find_rc_accounts", {"accounts": [user_name]})
        accounts = (result or {}).get("rc_accounts") or []
        if not accounts:
            return 0.0

        rc = accounts[0]
        max_rc = float(rc.get("max_rc") or 0)
        if max_rc <= 0:
            return 0.0

        manabar = rc.get("rc_manabar") or {}
        current = float(manabar.get("current_mana") or 0)
        last_update = manabar.get("last_update_time")
        now = now or datetime.now(timezone.utc)
        if last_update:
            elapsed = now.timestamp() - float(last_update)
            current = min(max_rc, current + max_rc * elapsed / REGENERATION_SECONDS)
        return current * MAX_PERCENT / max_rc

    async def is_import_active(self, user_name: str, import_account: str) -> bool:
        account = await self.get_account(user_name)
        if not account:
            return False
        auths = (account.get("posting") or {}).get("account_auths") or []
        return import_account in [a[0] for a in auths]


def _parse_chain_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
