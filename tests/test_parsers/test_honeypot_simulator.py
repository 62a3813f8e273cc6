"""Tests for the forked buy/sell honeypot replay."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import ContractLogicError

from tokenshield.anvil.swaps import UniswapV2Swapper, UniswapV3Swapper, make_swapper
from tokenshield.exceptions import ForkStartupError, TransactionRevertedError
from tokenshield.models import Chain, Dex, PoolInfo, SimulationOutcome
from tokenshield.parsers.honeypot_detector import (
    REASON_UNAVAILABLE,
    HoneypotSimulator,
    extract_revert_reason,
)

TOKEN = "0x1111111111111111111111111111111111111111"
PAIR = "0x2222222222222222222222222222222222222222"
WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
WALLET = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
PEER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def _pool(dex: Dex = Dex.UNISWAP_V2, base: str = WETH) -> PoolInfo:
    return PoolInfo(
        dex=dex,
        pair_or_pool_address=PAIR,
        token0=TOKEN,
        token1=base,
        is_target_token0=True,
        base_token_address=base,
        liquidity_usd=20_000.0,
    )


class FakeFork:
    """In-memory fork: records lifecycle and balance funding."""

    def __init__(self, drop_funding: bool = False) -> None:
        self.wallet = WALLET
        self._drop_funding = drop_funding
        self.peer_wallet = PEER
        self.entered = False
        self.exited = False
        self.funded: dict[str, int] = {}
        self.mined = 0

    async def __aenter__(self) -> "FakeFork":
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.exited = True

    async def set_balance(self, address: str, wei: int) -> None:
        if self._drop_funding:
            return
        self.funded[address] = wei

    async def eth_balance(self, address: str) -> int:
        return self.funded.get(address, 0)

    async def mine(self) -> None:
        self.mined += 1


class FakeSwapper:
    """Token ledger with injectable failures at each trading step."""

    def __init__(
        self,
        *,
        routable: bool = True,
        liquid: bool = True,
        quote: int = 1_000,
        buy_error: Exception | None = None,
        transfer_error: Exception | None = None,
        sell_error: Exception | None = None,
        decay_after_mine: bool = False,
        sell_leaves: int = 0,
        fork: FakeFork | None = None,
    ) -> None:
        self.routable = routable
        self._liquid = liquid
        self._quote = quote
        self._buy_error = buy_error
        self._transfer_error = transfer_error
        self._sell_error = sell_error
        self._decay = decay_after_mine
        self._sell_leaves = sell_leaves
        self._fork = fork
        self.balances: dict[str, int] = {}
        self.sold: list[tuple[int, int]] = []

    async def has_liquidity(self) -> bool:
        return self._liquid

    async def quote_buy(self, amount_in: int) -> int:
        return self._quote

    async def buy(self, amount_in: int, min_out: int) -> None:
        if self._buy_error:
            raise self._buy_error
        self.balances[WALLET] = self._quote

    async def balance_of(self, owner: str) -> int:
        if self._decay and self._fork is not None and self._fork.mined and owner == WALLET:
            return self.balances.get(owner, 0) // 2
        return self.balances.get(owner, 0)

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if self._transfer_error:
            raise self._transfer_error
        self.balances[sender] = self.balances.get(sender, 0) - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount

    async def quote_sell(self, amount: int) -> int:
        return 10**17

    async def sell(self, amount: int, min_out: int) -> None:
        if self._sell_error:
            raise self._sell_error
        self.sold.append((amount, min_out))
        self.balances[WALLET] = self._sell_leaves


def _simulator(registry, fake_reader, fork: FakeFork, swapper: FakeSwapper) -> HoneypotSimulator:
    registry._readers[Chain.MAINNET] = fake_reader
    registry._readers[Chain.BASE] = fake_reader
    return HoneypotSimulator(
        registry,
        buy_amount_wei=10**17,
        slippage_pct=5.0,
        fork_factory=lambda config, block: fork,
        swapper_factory=lambda f, pool, config: swapper,
    )


class TestRevertReason:
    def test_execution_reverted(self) -> None:
        err = ContractLogicError("execution reverted: TRANSFER_FAILED")
        assert extract_revert_reason(err) == "TRANSFER_FAILED"

    def test_plain_string_error(self) -> None:
        err = ValueError("RPC error: execution reverted: TRANSFER_FAILED")
        assert extract_revert_reason(err) == "TRANSFER_FAILED"

    def test_hardhat_style_reason_string(self) -> None:
        err = RuntimeError("VM Exception: reverted with reason string 'Trading not enabled'")
        assert extract_revert_reason(err) == "Trading not enabled"

    def test_reason_in_chained_cause(self) -> None:
        try:
            try:
                raise ContractLogicError("execution reverted: UniswapV2: K")
            except ContractLogicError as inner:
                raise TransactionRevertedError("swap failed") from inner
        except TransactionRevertedError as outer:
            assert extract_revert_reason(outer) == "UniswapV2: K"

    def test_no_reason(self) -> None:
        assert extract_revert_reason(TransactionRevertedError("transaction mined with status 0")) is None
        assert extract_revert_reason(ContractLogicError("execution reverted")) is None


class TestHoneypotSimulator:
    @pytest.mark.asyncio
    async def test_legit_round_trip(self, registry, fake_reader) -> None:
        fork = FakeFork()
        swapper = FakeSwapper(fork=fork)
        sim = _simulator(registry, fake_reader, fork, swapper)

        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)

        assert result.outcome is SimulationOutcome.LEGIT
        assert result.outcome.is_token_sellable is True
        assert result.stage == "sold"
        assert result.tokens_bought == 1_000
        assert fork.entered and fork.exited
        assert fork.funded[WALLET] == 100 * 10**18
        assert PEER in fork.funded
        # 5% slippage applied to the sell quote
        assert swapper.sold == [(1_000, 95 * 10**15)]

    @pytest.mark.asyncio
    async def test_zero_reserves_cannot_buy(self, registry, fake_reader) -> None:
        fork = FakeFork()
        sim = _simulator(registry, fake_reader, fork, FakeSwapper(liquid=False))

        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)

        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.outcome.is_token_sellable is None
        assert result.stage == "quote"
        assert fork.exited

    @pytest.mark.asyncio
    async def test_unfunded_wallet_cannot_buy(self, registry, fake_reader) -> None:
        fork = FakeFork(drop_funding=True)
        swapper = FakeSwapper(fork=fork)
        sim = _simulator(registry, fake_reader, fork, swapper)

        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)

        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "fund"
        assert WALLET not in swapper.balances
        assert fork.exited

    @pytest.mark.asyncio
    async def test_zero_quote_cannot_buy(self, registry, fake_reader) -> None:
        sim = _simulator(registry, fake_reader, FakeFork(), FakeSwapper(quote=0))
        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)
        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "quote"

    @pytest.mark.asyncio
    async def test_unroutable_pool_cannot_buy(self, registry, fake_reader) -> None:
        sim = _simulator(registry, fake_reader, FakeFork(), FakeSwapper(routable=False))
        result = await sim.simulate(TOKEN, _pool(Dex.UNISWAP_V3, base=USDC), Chain.MAINNET)
        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "route"

    @pytest.mark.asyncio
    async def test_buy_revert_is_indeterminate(self, registry, fake_reader) -> None:
        swapper = FakeSwapper(buy_error=ContractLogicError("execution reverted: Trading not open"))
        sim = _simulator(registry, fake_reader, FakeFork(), swapper)

        result = await sim.simulate(TOKEN, _pool(), Chain.BASE)

        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "buy"
        assert result.revert_reason == "Trading not open"

    @pytest.mark.asyncio
    async def test_balance_decay_after_block(self, registry, fake_reader) -> None:
        fork = FakeFork()
        sim = _simulator(registry, fake_reader, fork, FakeSwapper(decay_after_mine=True, fork=fork))
        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)
        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "post_buy"

    @pytest.mark.asyncio
    async def test_transfer_revert(self, registry, fake_reader) -> None:
        swapper = FakeSwapper(transfer_error=TransactionRevertedError("transaction mined with status 0"))
        sim = _simulator(registry, fake_reader, FakeFork(), swapper)

        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)

        assert result.outcome is SimulationOutcome.CANNOT_BUY
        assert result.stage == "transfer"
        assert result.revert_reason == REASON_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_sell_revert_cannot_sell(self, registry, fake_reader) -> None:
        swapper = FakeSwapper(sell_error=ContractLogicError("execution reverted: TRANSFER_FAILED"))
        sim = _simulator(registry, fake_reader, FakeFork(), swapper)

        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)

        assert result.outcome is SimulationOutcome.CANNOT_SELL
        assert result.outcome.is_token_sellable is False
        assert result.stage == "sell"
        assert result.revert_reason == "TRANSFER_FAILED"
        assert result.tokens_bought == 1_000

    @pytest.mark.asyncio
    async def test_partial_sell_cannot_sell(self, registry, fake_reader) -> None:
        sim = _simulator(registry, fake_reader, FakeFork(), FakeSwapper(sell_leaves=400))
        result = await sim.simulate(TOKEN, _pool(), Chain.MAINNET)
        assert result.outcome is SimulationOutcome.CANNOT_SELL
        assert result.stage == "post_sell"

    @pytest.mark.asyncio
    async def test_fork_released_on_unexpected_error(self, registry, fake_reader) -> None:
        fork = FakeFork()
        swapper = FakeSwapper()
        swapper.has_liquidity = AsyncMock(side_effect=RuntimeError("boom"))
        sim = _simulator(registry, fake_reader, fork, swapper)

        with pytest.raises(RuntimeError):
            await sim.simulate(TOKEN, _pool(), Chain.MAINNET)
        assert fork.exited

    @pytest.mark.asyncio
    async def test_fork_pinned_to_live_block(self, registry, fake_reader) -> None:
        seen: list[tuple[int, int]] = []
        fork = FakeFork()

        def factory(config, block):
            seen.append((config.chain_id, block))
            return fork

        registry._readers[Chain.BASE] = fake_reader
        sim = HoneypotSimulator(
            registry,
            buy_amount_wei=10**17,
            fork_factory=factory,
            swapper_factory=lambda f, pool, config: FakeSwapper(liquid=False),
        )

        await sim.simulate(TOKEN, _pool(), Chain.BASE)

        assert seen == [(8453, 19_000_000)]

    @pytest.mark.asyncio
    async def test_fork_startup_failure_propagates(self, registry, fake_reader) -> None:
        class BrokenFork:
            async def __aenter__(self):
                raise ForkStartupError("anvil exited early with code 1")

            async def __aexit__(self, *exc):
                return None

        registry._readers[Chain.MAINNET] = fake_reader
        sim = HoneypotSimulator(registry, buy_amount_wei=1, fork_factory=lambda config, block: BrokenFork())

        with pytest.raises(ForkStartupError):
            await sim.simulate(TOKEN, _pool(), Chain.MAINNET)


def _mock_fork() -> MagicMock:
    fork = MagicMock()
    fork.w3.to_checksum_address = lambda address: address.upper()
    fork.wallet = WALLET
    return fork


class TestSwappers:
    @pytest.mark.asyncio
    async def test_v2_zero_reserves(self, registry) -> None:
        fork = _mock_fork()
        pair = MagicMock()
        pair.functions.getReserves.return_value.call = AsyncMock(return_value=(0, 5 * 10**18, 1700000000))
        fork.contract.side_effect = lambda address, abi: pair if address == PAIR else MagicMock()

        swapper = UniswapV2Swapper(fork, _pool(), registry.get(Chain.MAINNET))

        assert await swapper.has_liquidity() is False

    def test_v2_routes_through_base_token(self, registry) -> None:
        config = registry.get(Chain.MAINNET)
        direct = UniswapV2Swapper(_mock_fork(), _pool(), config)
        hop = UniswapV2Swapper(_mock_fork(), _pool(base=USDC), config)

        assert direct.buy_path == [WETH.upper(), TOKEN.upper()]
        assert hop.buy_path == [WETH.upper(), USDC.upper(), TOKEN.upper()]
        assert hop.sell_path == [TOKEN.upper(), USDC.upper(), WETH.upper()]

    def test_v3_requires_weth_base(self, registry) -> None:
        config = registry.get(Chain.MAINNET)
        assert UniswapV3Swapper(_mock_fork(), _pool(Dex.UNISWAP_V3), config).routable is True
        assert UniswapV3Swapper(_mock_fork(), _pool(Dex.UNISWAP_V3, base=USDC), config).routable is False

    def test_factory_picks_by_dex(self, registry) -> None:
        config = registry.get(Chain.MAINNET)
        assert isinstance(make_swapper(_mock_fork(), _pool(), config), UniswapV2Swapper)
        assert isinstance(make_swapper(_mock_fork(), _pool(Dex.UNISWAP_V3), config), UniswapV3Swapper)
