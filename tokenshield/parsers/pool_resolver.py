"""Find the deepest Uniswap pool for a token across V2 and V3.

The token's side of the pair is unknown up front, so each protocol is
queried twice (token as token0, token as token1). A failing protocol query
fails the whole resolution; an empty answer everywhere is a valid "no pool".
"""

import asyncio

from loguru import logger

from tokenshield.chains import ChainRegistry
from tokenshield.models import Chain, Dex, PoolInfo
from tokenshield.parsers.thegraph.client import POSITIONS, TheGraphClient
from tokenshield.parsers.thegraph.models import V2Pair, V3Pool

V2_FEE = 3000


def pool_from_v2_pair(pair: V2Pair, token: str) -> PoolInfo:
    is_token0 = pair.token0.id.lower() == token
    base = pair.token1 if is_token0 else pair.token0
    return PoolInfo(
        dex=Dex.UNISWAP_V2,
        pair_or_pool_address=pair.id.lower(),
        token0=pair.token0.id.lower(),
        token1=pair.token1.id.lower(),
        is_target_token0=is_token0,
        base_token_address=base.id.lower(),
        base_token_symbol=base.symbol,
        fee_bps=V2_FEE,
        liquidity_usd=pair.reserve_usd,
        created_at_block=pair.created_at_block,
    )


def pool_from_v3_pool(pool: V3Pool, token: str) -> PoolInfo:
    is_token0 = pool.token0.id.lower() == token
    base = pool.token1 if is_token0 else pool.token0
    return PoolInfo(
        dex=Dex.UNISWAP_V3,
        pair_or_pool_address=pool.id.lower(),
        token0=pool.token0.id.lower(),
        token1=pool.token1.id.lower(),
        is_target_token0=is_token0,
        base_token_address=base.id.lower(),
        base_token_symbol=base.symbol,
        fee_bps=pool.fee_tier,
        liquidity_usd=pool.total_value_locked_usd,
        created_at_block=pool.created_at_block,
    )


def rank_candidates(candidates: list[PoolInfo]) -> list[PoolInfo]:
    """Deepest first; equal liquidity falls back to address for a stable order."""
    return sorted(candidates, key=lambda p: (-p.liquidity_usd, p.pair_or_pool_address))


class PoolResolver:
    def __init__(self, thegraph: TheGraphClient, registry: ChainRegistry) -> None:
        self._thegraph = thegraph
        self._registry = registry

    async def _v2_candidates(self, subgraph_id: str, token: str) -> list[PoolInfo]:
        results = await asyncio.gather(
            *(self._thegraph.get_v2_pairs(subgraph_id, token, pos) for pos in POSITIONS)
        )
        return [pool_from_v2_pair(pair, token) for pairs in results for pair in pairs]

    async def _v3_candidates(self, subgraph_id: str, token: str) -> list[PoolInfo]:
        results = await asyncio.gather(
            *(self._thegraph.get_v3_pools(subgraph_id, token, pos) for pos in POSITIONS)
        )
        return [pool_from_v3_pool(pool, token) for pools in results for pool in pools]

    async def find_top_pool(self, token_address: str, chain: Chain) -> PoolInfo | None:
        """Highest USD-liquidity pool for the token, or None when none is indexed.

        Raises IndexerError when either protocol's query fails.
        """
        config = self._registry.get(chain)
        token = token_address.lower()

        v2, v3 = await asyncio.gather(
            self._v2_candidates(config.subgraphs[Dex.UNISWAP_V2], token),
            self._v3_candidates(config.subgraphs[Dex.UNISWAP_V3], token),
        )
        ranked = rank_candidates(v2 + v3)
        if not ranked:
            logger.info(f"[POOL] No indexed pool for {token[:10]} on {config.chain.name}")
            return None

        top = ranked[0]
        logger.info(
            f"[POOL] {token[:10]} top pool {top.pair_or_pool_address[:10]} "
            f"({top.dex.value}, {top.base_token_symbol}) ${top.liquidity_usd:,.0f} "
            f"of {len(ranked)} candidates"
        )
        return top
