"""Forked-chain honeypot detection.

Replays a small buy and a full sell of the token on a private anvil fork
pinned to the live head:

    Initializing -> Funded -> BuyAttempted -> Bought -> SellAttempted -> Sold

A failed buy is reported as CANNOT_BUY, which scoring treats as
indeterminate: brand-new pools often reject early buys on purpose
(anti-bot windows). A failed sell after a good buy is CANNOT_SELL, the
strongest honeypot signal.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from loguru import logger
from web3.exceptions import Web3Exception

from tokenshield.anvil.node import AnvilFork
from tokenshield.anvil.swaps import TokenSwapper, make_swapper
from tokenshield.chains import ChainConfig, ChainRegistry
from tokenshield.exceptions import TransactionRevertedError
from tokenshield.models import Chain, PoolInfo, SimulationOutcome, SimulationResult
from tokenshield.utils.units import apply_slippage

REASON_UNAVAILABLE = "reason unavailable"
PEER_GAS_FUNDING_WEI = 10**18

_EXECUTION_REVERTED = "execution reverted:"
_REASON_STRING = "reverted with reason string '"

SWAP_ERRORS = (Web3Exception, TransactionRevertedError)

ForkFactory = Callable[[ChainConfig, int], AbstractAsyncContextManager]
SwapperFactory = Callable[[object, PoolInfo, ChainConfig], TokenSwapper]


def _scan_for_reason(text: str) -> str | None:
    idx = text.find(_EXECUTION_REVERTED)
    if idx != -1:
        reason = text[idx + len(_EXECUTION_REVERTED):].strip().strip("'\"")
        if reason:
            return reason
    idx = text.find(_REASON_STRING)
    if idx != -1:
        start = idx + len(_REASON_STRING)
        end = text.find("'", start)
        reason = text[start:end] if end != -1 else text[start:]
        if reason.strip():
            return reason.strip()
    return None


def _texts_of(err: BaseException) -> list[str]:
    texts = []
    message = getattr(err, "message", None)
    if isinstance(message, str):
        texts.append(message)
    texts.extend(arg for arg in err.args if isinstance(arg, str))
    texts.append(str(err))
    return texts


def extract_revert_reason(err: BaseException) -> str | None:
    """Best-effort revert reason from an error and its chained causes.

    Looks for "execution reverted: <reason>" or "reverted with reason string
    '<reason>'". Returns None when nothing matches; never raises.
    """
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        for text in _texts_of(current):
            reason = _scan_for_reason(text)
            if reason:
                return reason
        current = current.__cause__ or current.__context__
    return None


def _result(outcome: SimulationOutcome, stage: str, reason: str | None = None, bought: int = 0) -> SimulationResult:
    return SimulationResult(outcome=outcome, stage=stage, revert_reason=reason, tokens_bought=bought)


def _cannot_buy(stage: str, reason: str) -> SimulationResult:
    return _result(SimulationOutcome.CANNOT_BUY, stage, reason)


def _cannot_sell(stage: str, reason: str, bought: int) -> SimulationResult:
    return _result(SimulationOutcome.CANNOT_SELL, stage, reason, bought)


class HoneypotSimulator:
    def __init__(
        self,
        registry: ChainRegistry,
        *,
        buy_amount_wei: int,
        slippage_pct: float = 5.0,
        funding_wei: int = 100 * 10**18,
        anvil_path: str = "anvil",
        startup_timeout: float = 20.0,
        receipt_timeout: float = 30.0,
        fork_factory: ForkFactory | None = None,
        swapper_factory: SwapperFactory = make_swapper,
    ) -> None:
        self._registry = registry
        self._buy_amount = buy_amount_wei
        self._slippage_pct = slippage_pct
        self._funding = funding_wei
        self._anvil_path = anvil_path
        self._startup_timeout = startup_timeout
        self._receipt_timeout = receipt_timeout
        self._fork_factory = fork_factory or self._spawn_fork
        self._swapper_factory = swapper_factory

    def _spawn_fork(self, config: ChainConfig, block: int) -> AnvilFork:
        return AnvilFork(
            config.rpc_url,
            config.chain_id,
            fork_block=block,
            anvil_path=self._anvil_path,
            startup_timeout=self._startup_timeout,
            receipt_timeout=self._receipt_timeout,
        )

    async def simulate(self, token_address: str, pool: PoolInfo, chain: Chain) -> SimulationResult:
        """Buy then sell ``token_address`` through ``pool`` on a fresh fork.

        Fork startup failures propagate; every trade failure is classified.
        """
        config = self._registry.get(chain)
        block = await self._registry.reader(chain).block_number()

        async with self._fork_factory(config, block) as fork:
            result = await self._replay(fork, pool, config)

        log = logger.warning if result.outcome is SimulationOutcome.CANNOT_SELL else logger.info
        log(
            f"[HONEYPOT] {token_address[:10]} {result.outcome.value} at {result.stage}"
            + (f": {result.revert_reason}" if result.revert_reason else "")
        )
        return result

    async def _replay(self, fork, pool: PoolInfo, config: ChainConfig) -> SimulationResult:
        await fork.set_balance(fork.wallet, self._funding)
        if await fork.eth_balance(fork.wallet) < self._buy_amount:
            return _cannot_buy("fund", "wallet funding did not apply")
        swapper = self._swapper_factory(fork, pool, config)

        if not swapper.routable:
            return _cannot_buy("route", "no WETH route for this pool")

        # Buy
        try:
            if not await swapper.has_liquidity():
                return _cannot_buy("quote", "pool has no reserves")
            quote = await swapper.quote_buy(self._buy_amount)
        except SWAP_ERRORS as e:
            return _cannot_buy("quote", extract_revert_reason(e) or REASON_UNAVAILABLE)
        if quote <= 0:
            return _cannot_buy("quote", "router quoted zero output")

        try:
            await swapper.buy(self._buy_amount, apply_slippage(quote, self._slippage_pct))
        except SWAP_ERRORS as e:
            return _cannot_buy("buy", extract_revert_reason(e) or REASON_UNAVAILABLE)

        bought = await swapper.balance_of(fork.wallet)
        if bought == 0:
            return _cannot_buy("post_buy", "no tokens received")

        # Balance must survive a new block and a wallet-to-wallet round trip
        await fork.mine()
        held = await swapper.balance_of(fork.wallet)
        if held < bought:
            return _cannot_buy("post_buy", "balance dropped after one block")

        try:
            await swapper.transfer(fork.wallet, fork.peer_wallet, held)
            relayed = await swapper.balance_of(fork.peer_wallet)
            await fork.set_balance(fork.peer_wallet, PEER_GAS_FUNDING_WEI)
            await swapper.transfer(fork.peer_wallet, fork.wallet, relayed)
        except SWAP_ERRORS as e:
            return _cannot_buy("transfer", extract_revert_reason(e) or REASON_UNAVAILABLE)

        balance = await swapper.balance_of(fork.wallet)
        if balance == 0:
            return _cannot_buy("transfer", "tokens lost in wallet-to-wallet transfer")

        # Sell
        try:
            sell_quote = await swapper.quote_sell(balance)
            await swapper.sell(balance, apply_slippage(sell_quote, self._slippage_pct))
        except SWAP_ERRORS as e:
            return _cannot_sell("sell", extract_revert_reason(e) or REASON_UNAVAILABLE, bought)

        remaining = await swapper.balance_of(fork.wallet)
        if remaining > 0:
            return _cannot_sell("post_sell", f"{remaining} tokens left after sell", bought)

        return _result(SimulationOutcome.LEGIT, "sold", bought=bought)
