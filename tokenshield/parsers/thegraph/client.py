"""TheGraph gateway client for Uniswap V2/V3 subgraphs.

The gateway authenticates by API key embedded in the URL path, so request
URLs are never logged.
"""

import asyncio

import httpx
from loguru import logger

from tokenshield.exceptions import IndexerError
from tokenshield.parsers.rate_limiter import RateLimiter
from tokenshield.parsers.thegraph.models import V2LiquidityPosition, V2Pair, V3Pool, V3Position

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]

# Position of the target token inside a pair: token0 or token1
POSITIONS = ("token0", "token1")

_V2_PAIRS_QUERY = """
query TopPairs($token: String!) {
  pairs(
    where: {%(position)s: $token, reserveUSD_gt: "0"}
    orderBy: reserveUSD
    orderDirection: desc
    first: 1
  ) {
    id
    token0 { id symbol }
    token1 { id symbol }
    reserveUSD
    createdAtBlockNumber
  }
}
"""

_V3_POOLS_QUERY = """
query TopPools($token: String!) {
  pools(
    where: {%(position)s: $token, totalValueLockedUSD_gt: "0"}
    orderBy: totalValueLockedUSD
    orderDirection: desc
    first: 1
  ) {
    id
    token0 { id symbol }
    token1 { id symbol }
    feeTier
    totalValueLockedUSD
    createdAtBlockNumber
  }
}
"""

_V2_LP_HOLDERS_QUERY = """
query LpHolders($pair: String!) {
  liquidityPositions(
    where: {pair: $pair, liquidityTokenBalance_gt: "0"}
    first: 1000
  ) {
    user { id }
    liquidityTokenBalance
  }
}
"""

_V3_POSITIONS_QUERY = """
query PoolPositions($pool: String!) {
  positions(
    where: {pool: $pool, liquidity_gt: "0"}
    orderBy: liquidity
    orderDirection: desc
    first: 1000
  ) {
    owner
    liquidity
  }
}
"""


class TheGraphClient:
    """Async GraphQL client for the TheGraph decentralized gateway."""

    def __init__(
        self,
        api_key: str,
        *,
        gateway_url: str = "https://gateway.thegraph.com/api",
        timeout: float = 15.0,
        max_rps: float = 5.0,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=gateway_url.rstrip("/"),
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _query(self, subgraph_id: str, query: str, variables: dict) -> dict:
        """POST a GraphQL query, retrying on 429 and transport errors."""
        path = f"/{self._api_key}/subgraphs/id/{subgraph_id}"
        payload = {"query": query, "variables": variables}

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.post(path, json=payload)
            except httpx.TransportError as e:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[THEGRAPH] {type(e).__name__}, retry in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                raise IndexerError(f"Subgraph {subgraph_id[:8]} unreachable: {type(e).__name__}") from e

            if resp.status_code == 429 and attempt < MAX_RETRIES:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.debug(f"[THEGRAPH] Rate limited, waiting {delay}s")
                await asyncio.sleep(delay)
                continue

            if resp.status_code != 200:
                raise IndexerError(f"Subgraph {subgraph_id[:8]} HTTP {resp.status_code}")

            try:
                body = resp.json()
            except ValueError as e:
                raise IndexerError(f"Subgraph {subgraph_id[:8]} returned non-JSON body") from e
            if not isinstance(body, dict):
                raise IndexerError(f"Subgraph {subgraph_id[:8]} returned {type(body).__name__}, expected object")
            errors = body.get("errors")
            if errors:
                message = errors[0].get("message", "unknown") if isinstance(errors[0], dict) else str(errors[0])
                raise IndexerError(f"Subgraph {subgraph_id[:8]} query error: {message}")
            return body.get("data") or {}

        raise IndexerError(f"Subgraph {subgraph_id[:8]} rate limited after {MAX_RETRIES + 1} attempts")

    async def get_v2_pairs(self, subgraph_id: str, token: str, position: str) -> list[V2Pair]:
        """Top V2 pair where ``token`` sits at ``position`` (token0 or token1)."""
        _check_position(position)
        data = await self._query(
            subgraph_id, _V2_PAIRS_QUERY % {"position": position}, {"token": token.lower()}
        )
        return [V2Pair.model_validate(p) for p in data.get("pairs", [])]

    async def get_v3_pools(self, subgraph_id: str, token: str, position: str) -> list[V3Pool]:
        _check_position(position)
        data = await self._query(
            subgraph_id, _V3_POOLS_QUERY % {"position": position}, {"token": token.lower()}
        )
        return [V3Pool.model_validate(p) for p in data.get("pools", [])]

    async def get_v2_lp_holders(self, subgraph_id: str, pair: str) -> list[V2LiquidityPosition]:
        data = await self._query(subgraph_id, _V2_LP_HOLDERS_QUERY, {"pair": pair.lower()})
        positions = []
        for raw in data.get("liquidityPositions", []):
            user = raw.get("user") or {}
            positions.append(
                V2LiquidityPosition(
                    user=str(user.get("id", "")).lower(),
                    liquidity_token_balance=str(raw.get("liquidityTokenBalance", "0")),
                )
            )
        return positions

    async def get_v3_positions(self, subgraph_id: str, pool: str) -> list[V3Position]:
        """Open positions of one specific pool (not every pool of the pair)."""
        data = await self._query(subgraph_id, _V3_POSITIONS_QUERY, {"pool": pool.lower()})
        return [
            V3Position(owner=str(p.get("owner", "")).lower(), liquidity=int(p.get("liquidity", 0)))
            for p in data.get("positions", [])
        ]


def _check_position(position: str) -> None:
    if position not in POSITIONS:
        raise ValueError(f"position must be one of {POSITIONS}, got {position!r}")
