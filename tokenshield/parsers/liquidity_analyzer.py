"""LP lock and holder concentration analysis for a resolved pool.

Two independent measurements:
- share of the pool's liquidity held by lockers or burn sinks
  (V2: LP token holders; V3: position owners of this exact pool)
- largest ordinary holder of the token itself, and the share of supply
  sent to burn sinks (tokens held by lockers still count as circulating)

Each half that cannot be measured comes back as None, never 0%.
"""

import asyncio

from loguru import logger

from tokenshield.chains import ChainConfig, ChainRegistry
from tokenshield.models import Chain, Dex, HolderEntry, LiquidityHolderReport, PoolInfo
from tokenshield.parsers.etherscan.client import EtherscanClient
from tokenshield.parsers.moralis.client import MoralisClient
from tokenshield.parsers.thegraph.client import TheGraphClient
from tokenshield.utils.units import decimal_to_base_units, ratio_to_percentage


def locked_share(holders: list[HolderEntry], total: int, config: ChainConfig) -> float | None:
    """Percentage of ``total`` held by the chain's locker allow-list."""
    if not holders:
        return None
    locked = sum(h.quantity for h in holders if config.is_locker(h.holder_address))
    return ratio_to_percentage(locked, total)


def burned_share(holders: list[HolderEntry], total_supply: int, config: ChainConfig) -> float | None:
    """Percentage of supply sitting at burn addresses. Third-party lockers do not count."""
    if not holders:
        return None
    burned = sum(h.quantity for h in holders if config.is_burn(h.holder_address))
    return ratio_to_percentage(burned, total_supply)


def top_holder_share(
    holders: list[HolderEntry],
    total_supply: int,
    config: ChainConfig,
    excluded: set[str],
) -> float | None:
    """Largest holder that is neither a locker nor one of ``excluded`` (pool addresses)."""
    candidates = [
        h.quantity
        for h in holders
        if not config.is_locker(h.holder_address) and h.holder_address not in excluded
    ]
    if not candidates:
        return None
    return ratio_to_percentage(max(candidates), total_supply)


class LiquidityAnalyzer:
    def __init__(
        self,
        registry: ChainRegistry,
        thegraph: TheGraphClient,
        *,
        moralis: MoralisClient | None = None,
        etherscan: EtherscanClient | None = None,
    ) -> None:
        self._registry = registry
        self._thegraph = thegraph
        self._moralis = moralis
        self._etherscan = etherscan

    async def fetch_holders(self, address: str, config: ChainConfig) -> list[HolderEntry]:
        """ERC-20 holder list: Moralis first, Etherscan when Moralis has nothing."""
        if self._moralis is not None:
            try:
                holders = await self._moralis.get_token_holders(config.moralis_slug, address)
                if holders:
                    return holders
            except Exception as e:
                logger.debug(f"[LIQUIDITY] Moralis holders failed for {address[:10]}: {e}")
        if self._etherscan is not None:
            return await self._etherscan.get_token_holders(config.chain_id, address)
        return []

    async def _v2_liquidity_locked(self, pool: PoolInfo, config: ChainConfig) -> float | None:
        pair = pool.pair_or_pool_address
        positions = await self._thegraph.get_v2_lp_holders(config.subgraphs[Dex.UNISWAP_V2], pair)
        holders = [
            HolderEntry(holder_address=p.user, quantity=decimal_to_base_units(p.liquidity_token_balance))
            for p in positions
        ]
        if not holders:
            # Newer V2 subgraphs dropped liquidityPositions; the LP token is a plain ERC-20
            holders = await self.fetch_holders(pair, config)
        if not holders:
            return None
        lp_supply = await self._registry.reader(config.chain).total_supply(pair)
        return locked_share(holders, lp_supply, config)

    async def _v3_liquidity_locked(self, pool: PoolInfo, config: ChainConfig) -> float | None:
        positions = await self._thegraph.get_v3_positions(
            config.subgraphs[Dex.UNISWAP_V3], pool.pair_or_pool_address
        )
        holders = [HolderEntry(holder_address=p.owner, quantity=p.liquidity) for p in positions]
        # Concentrated liquidity has no LP supply; open position liquidity is the denominator
        return locked_share(holders, sum(h.quantity for h in holders), config)

    async def liquidity_locked_percentage(self, pool: PoolInfo, config: ChainConfig) -> float | None:
        if pool.dex is Dex.UNISWAP_V2:
            return await self._v2_liquidity_locked(pool, config)
        if pool.dex is Dex.UNISWAP_V3:
            return await self._v3_liquidity_locked(pool, config)
        return None

    async def token_holder_shares(
        self, token_address: str, pool: PoolInfo, config: ChainConfig
    ) -> tuple[float | None, float | None]:
        """(top holder %, burned %) of the token's own supply."""
        holders = await self.fetch_holders(token_address, config)
        if not holders:
            return None, None
        total_supply = await self._registry.reader(config.chain).total_supply(token_address)
        top = top_holder_share(holders, total_supply, config, {pool.pair_or_pool_address})
        return top, burned_share(holders, total_supply, config)

    async def analyze(self, token_address: str, pool: PoolInfo, chain: Chain) -> LiquidityHolderReport:
        config = self._registry.get(chain)
        token = token_address.lower()

        lp_result, holder_result = await asyncio.gather(
            self.liquidity_locked_percentage(pool, config),
            self.token_holder_shares(token, pool, config),
            return_exceptions=True,
        )

        if isinstance(lp_result, BaseException):
            logger.warning(f"[LIQUIDITY] LP lock check failed for {token[:10]}: {lp_result}")
            lp_result = None
        if isinstance(holder_result, BaseException):
            logger.warning(f"[LIQUIDITY] Holder check failed for {token[:10]}: {holder_result}")
            holder_result = (None, None)

        top_pct, locked_pct = holder_result
        report = LiquidityHolderReport(
            top_holder_percentage=top_pct,
            percentage_locked_or_burned=locked_pct,
            percentage_liquidity_locked_or_burned=lp_result,
        )
        logger.info(
            f"[LIQUIDITY] {token[:10]} lp_locked={_fmt(lp_result)} "
            f"top_holder={_fmt(top_pct)} supply_locked={_fmt(locked_pct)}"
        )
        return report


def _fmt(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}%"
