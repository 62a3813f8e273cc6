"""Uniswap V2/V3 swap drivers used inside a fork.

A swapper only knows how to quote, trade, and move the target token; the
honeypot simulator decides what each outcome means.
"""

from tokenshield.anvil.contracts import (
    ERC20_ABI,
    QUOTER_V2_ABI,
    SWAP_ROUTER02_ABI,
    UNISWAP_V2_PAIR_ABI,
    UNISWAP_V2_ROUTER_ABI,
    UNISWAP_V3_POOL_ABI,
)
from tokenshield.anvil.node import AnvilFork
from tokenshield.chains import ChainConfig
from tokenshield.models import Dex, PoolInfo

DEADLINE_SEC = 300


class TokenSwapper:
    # False when the pool cannot be reached from native ETH
    routable = True

    def __init__(self, fork: AnvilFork, pool: PoolInfo, config: ChainConfig) -> None:
        self._fork = fork
        self._pool = pool
        self._config = config
        self._token = fork.contract(pool.target_token_address, ERC20_ABI)

    async def balance_of(self, owner: str) -> int:
        return await self._token.functions.balanceOf(owner).call()

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        await self._fork.transact(self._token.functions.transfer(recipient, amount), sender=sender)

    async def _approve(self, spender: str, amount: int) -> None:
        fn = self._token.functions.approve(self._fork.w3.to_checksum_address(spender), amount)
        await self._fork.transact(fn, sender=self._fork.wallet)

    async def has_liquidity(self) -> bool:
        raise NotImplementedError

    async def quote_buy(self, amount_in: int) -> int:
        raise NotImplementedError

    async def buy(self, amount_in: int, min_out: int) -> None:
        raise NotImplementedError

    async def quote_sell(self, amount: int) -> int:
        raise NotImplementedError

    async def sell(self, amount: int, min_out: int) -> None:
        raise NotImplementedError


class UniswapV2Swapper(TokenSwapper):
    """Router02 swaps; routes through the pool's base token when it isn't WETH."""

    def __init__(self, fork: AnvilFork, pool: PoolInfo, config: ChainConfig) -> None:
        super().__init__(fork, pool, config)
        self._router = fork.contract(config.v2_router, UNISWAP_V2_ROUTER_ABI)
        self._pair = fork.contract(pool.pair_or_pool_address, UNISWAP_V2_PAIR_ABI)

        to_cs = fork.w3.to_checksum_address
        weth = to_cs(config.weth)
        token = to_cs(pool.target_token_address)
        base = to_cs(pool.base_token_address)
        self.buy_path = [weth, token] if base == weth else [weth, base, token]
        self.sell_path = list(reversed(self.buy_path))

    async def has_liquidity(self) -> bool:
        reserve0, reserve1, _ = await self._pair.functions.getReserves().call()
        return reserve0 > 0 and reserve1 > 0

    async def quote_buy(self, amount_in: int) -> int:
        amounts = await self._router.functions.getAmountsOut(amount_in, self.buy_path).call()
        return amounts[-1]

    async def buy(self, amount_in: int, min_out: int) -> None:
        deadline = await self._fork.latest_timestamp() + DEADLINE_SEC
        fn = self._router.functions.swapExactETHForTokensSupportingFeeOnTransferTokens(
            min_out, self.buy_path, self._fork.wallet, deadline
        )
        await self._fork.transact(fn, sender=self._fork.wallet, value=amount_in)

    async def quote_sell(self, amount: int) -> int:
        amounts = await self._router.functions.getAmountsOut(amount, self.sell_path).call()
        return amounts[-1]

    async def sell(self, amount: int, min_out: int) -> None:
        await self._approve(self._config.v2_router, amount)
        deadline = await self._fork.latest_timestamp() + DEADLINE_SEC
        fn = self._router.functions.swapExactTokensForETHSupportingFeeOnTransferTokens(
            amount, min_out, self.sell_path, self._fork.wallet, deadline
        )
        await self._fork.transact(fn, sender=self._fork.wallet)


class UniswapV3Swapper(TokenSwapper):
    """SwapRouter02 single-hop swaps against a WETH-based pool.

    The sale returns WETH rather than native ETH; the simulator only cares
    whether the tokens left the wallet.
    """

    def __init__(self, fork: AnvilFork, pool: PoolInfo, config: ChainConfig) -> None:
        super().__init__(fork, pool, config)
        self._router = fork.contract(config.v3_swap_router, SWAP_ROUTER02_ABI)
        self._quoter = fork.contract(config.v3_quoter, QUOTER_V2_ABI)
        self._pool_contract = fork.contract(pool.pair_or_pool_address, UNISWAP_V3_POOL_ABI)

        to_cs = fork.w3.to_checksum_address
        self._weth = to_cs(config.weth)
        self._target = to_cs(pool.target_token_address)
        self.routable = to_cs(pool.base_token_address) == self._weth

    async def has_liquidity(self) -> bool:
        return await self._pool_contract.functions.liquidity().call() > 0

    async def _quote(self, token_in: str, token_out: str, amount: int) -> int:
        result = await self._quoter.functions.quoteExactInputSingle(
            (token_in, token_out, amount, self._pool.fee_bps, 0)
        ).call()
        return result[0]

    async def quote_buy(self, amount_in: int) -> int:
        return await self._quote(self._weth, self._target, amount_in)

    async def buy(self, amount_in: int, min_out: int) -> None:
        fn = self._router.functions.exactInputSingle(
            (self._weth, self._target, self._pool.fee_bps, self._fork.wallet, amount_in, min_out, 0)
        )
        await self._fork.transact(fn, sender=self._fork.wallet, value=amount_in)

    async def quote_sell(self, amount: int) -> int:
        return await self._quote(self._target, self._weth, amount)

    async def sell(self, amount: int, min_out: int) -> None:
        await self._approve(self._config.v3_swap_router, amount)
        fn = self._router.functions.exactInputSingle(
            (self._target, self._weth, self._pool.fee_bps, self._fork.wallet, amount, min_out, 0)
        )
        await self._fork.transact(fn, sender=self._fork.wallet)


def make_swapper(fork: AnvilFork, pool: PoolInfo, config: ChainConfig) -> TokenSwapper:
    if pool.dex is Dex.UNISWAP_V2:
        return UniswapV2Swapper(fork, pool, config)
    return UniswapV3Swapper(fork, pool, config)
