"""Moralis Web3 Data API client: ERC-20 owners and token metadata."""

import asyncio

import httpx
from loguru import logger

from tokenshield.exceptions import MoralisError
from tokenshield.models import HolderEntry, TokenWebData
from tokenshield.parsers.moralis.models import MoralisOwner, MoralisTokenMetadata
from tokenshield.parsers.rate_limiter import RateLimiter

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class MoralisClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://deep-index.moralis.io/api/v2.2",
        timeout: float = 15.0,
        max_rps: float = 5.0,
    ) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"X-API-Key": api_key, "Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict) -> dict | list:
        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, params=params)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[MORALIS] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise MoralisError(f"{path} unreachable: {type(e).__name__}") from e

            if resp.status_code == 429 and attempt < MAX_RETRIES:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.debug(f"[MORALIS] Rate limited, waiting {delay}s")
                await asyncio.sleep(delay)
                continue
            if resp.status_code != 200:
                raise MoralisError(f"{path} HTTP {resp.status_code}: {resp.text[:200]}")
            try:
                return resp.json()
            except ValueError as e:
                raise MoralisError(f"{path} returned non-JSON body") from e

        raise MoralisError(f"{path} rate limited after {MAX_RETRIES + 1} attempts")

    async def get_token_holders(self, chain_slug: str, address: str) -> list[HolderEntry]:
        """Largest ERC-20 owners first (first page only, 100 entries)."""
        data = await self._get(
            f"/erc20/{address.lower()}/owners",
            {"chain": chain_slug, "order": "DESC"},
        )
        raw_owners = data.get("result", []) if isinstance(data, dict) else []
        holders = []
        for raw in raw_owners:
            owner = MoralisOwner.model_validate(raw)
            try:
                quantity = int(owner.balance)
            except ValueError:
                continue
            holders.append(HolderEntry(holder_address=owner.owner_address.lower(), quantity=quantity))
        return holders

    async def get_token_metadata(self, chain_slug: str, address: str) -> MoralisTokenMetadata | None:
        data = await self._get(
            "/erc20/metadata",
            {"chain": chain_slug, "addresses": [address.lower()]},
        )
        if not isinstance(data, list) or not data:
            return None
        return MoralisTokenMetadata.model_validate(data[0])


def metadata_to_web_data(metadata: MoralisTokenMetadata) -> TokenWebData:
    links = metadata.links
    if links is None:
        return TokenWebData()
    return TokenWebData(
        website=links.website or "",
        twitter=links.twitter or "",
        discord=links.discord or "",
        telegram=links.telegram or "",
    )
