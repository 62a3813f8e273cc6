"""Etherscan v2 multichain API client.

Every response carries a ``status`` flag that has to be "1" regardless of the
HTTP status; anything else is an ``ExplorerError``.
"""

import asyncio
import json

import httpx
from loguru import logger

from tokenshield.exceptions import ExplorerError
from tokenshield.models import HolderEntry, TokenWebData
from tokenshield.parsers.etherscan.models import (
    EtherscanHolder,
    EtherscanSourceCode,
    EtherscanTokenInfo,
)
from tokenshield.parsers.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# Etherscan answers empty lookups with status "0" and this message
_NO_DATA_MESSAGES = ("no data found", "no records found", "no transactions found")


class EtherscanClient:
    """Async client for the Etherscan v2 API (one key, all chains)."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.etherscan.io/v2/api",
        timeout: float = 15.0,
        max_rps: float = 4.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, chain_id: int, module: str, action: str, **params: str) -> list | dict | str | None:
        """Run one module/action call and return its ``result``.

        Returns None for the documented "no data" answer.
        """
        query = {
            "chainid": str(chain_id),
            "module": module,
            "action": action,
            **params,
            "apikey": self._api_key,
        }

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(self._base_url, params=query)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[ETHERSCAN] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise ExplorerError(f"{module}.{action} unreachable: {type(e).__name__}") from e

            if resp.status_code == 429 and attempt < MAX_RETRIES:
                await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                continue
            if resp.status_code != 200:
                raise ExplorerError(f"{module}.{action} HTTP {resp.status_code}")

            try:
                body = resp.json()
            except ValueError as e:
                raise ExplorerError(f"{module}.{action} returned non-JSON body") from e
            if not isinstance(body, dict):
                raise ExplorerError(f"{module}.{action} returned {type(body).__name__}, expected object")
            if str(body.get("status")) == "1":
                return body.get("result")

            message = str(body.get("message", ""))
            result = body.get("result")
            if any(m in message.lower() for m in _NO_DATA_MESSAGES):
                return None
            # Free-tier rate limit arrives as status 0 with an explanatory result
            if isinstance(result, str) and "rate limit" in result.lower() and attempt < MAX_RETRIES:
                await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                continue
            raise ExplorerError(f"{module}.{action} status={body.get('status')} message={message} result={result}")

        raise ExplorerError(f"{module}.{action} rate limited after {MAX_RETRIES + 1} attempts")

    async def get_source_code(self, chain_id: int, address: str) -> str | None:
        """Verified Solidity source, or None if the contract is unverified."""
        result = await self._call(chain_id, "contract", "getsourcecode", address=address)
        if not isinstance(result, list) or not result:
            return None
        entry = EtherscanSourceCode.model_validate(result[0])
        return _flatten_source(entry.source_code) or None

    async def get_token_info(self, chain_id: int, address: str) -> TokenWebData | None:
        result = await self._call(chain_id, "token", "tokeninfo", contractaddress=address)
        if not isinstance(result, list) or not result:
            return None
        info = EtherscanTokenInfo.model_validate(result[0])
        return TokenWebData(
            website=info.website,
            twitter=info.twitter,
            discord=info.discord,
            telegram=info.telegram,
            whitepaper=info.whitepaper,
            blue_checkmark=info.blue_checkmark.lower() == "true",
        )

    async def get_token_holders(self, chain_id: int, address: str) -> list[HolderEntry]:
        result = await self._call(
            chain_id, "token", "tokenholderlist", contractaddress=address, page="1", offset="1000"
        )
        if not isinstance(result, list):
            return []
        holders = []
        for raw in result:
            entry = EtherscanHolder.model_validate(raw)
            holders.append(HolderEntry(holder_address=entry.address.lower(), quantity=int(entry.quantity)))
        return holders


def _flatten_source(source: str) -> str:
    """Join multi-file standard-json sources into one Solidity listing.

    Etherscan wraps standard-json input in an extra pair of braces.
    """
    text = source.strip()
    if not text.startswith("{"):
        return text
    if text.startswith("{{") and text.endswith("}}"):
        text = text[1:-1]
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return source
    files = data.get("sources", data) if isinstance(data, dict) else {}
    parts = []
    for name, body in files.items():
        content = body.get("content", "") if isinstance(body, dict) else ""
        if content:
            parts.append(f"// File: {name}\n{content}")
    return "\n\n".join(parts) if parts else source
