"""Per-chain static data and the process-wide registry of chain readers.

The registry is built once at start-up and handed to every component.
Readers are created lazily on first use and never replaced afterwards.
"""

from dataclasses import dataclass, field

from loguru import logger

from config.settings import Settings
from tokenshield.chain_reader import ChainReader
from tokenshield.exceptions import UnsupportedChainError
from tokenshield.models import Chain, Dex

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEAD_ADDRESS = "0x000000000000000000000000000000000000dead"
BURN_ADDRESSES = frozenset({ZERO_ADDRESS, DEAD_ADDRESS})

# Team Finance, UNCX, plus burn sinks
MAINNET_LOCKERS = frozenset({
    "0xe2fe530c047f2d85298b07d9333c05737f1435fb",
    "0x663a5c229c09b049e36dcc11a9b0d4a8eb9db214",
    *BURN_ADDRESSES,
})
# UNCX, plus burn sinks
BASE_LOCKERS = frozenset({
    "0xc4e637d37113192f4f1f060daebd7758de7f4131",
    *BURN_ADDRESSES,
})


@dataclass(frozen=True)
class ChainConfig:
    chain: Chain
    moralis_slug: str
    rpc_url: str
    weth: str
    v2_router: str
    v3_swap_router: str
    v3_quoter: str
    subgraphs: dict[Dex, str] = field(default_factory=dict)
    lockers: frozenset[str] = frozenset()

    @property
    def chain_id(self) -> int:
        return int(self.chain)

    def is_locker(self, address: str) -> bool:
        return address.lower() in self.lockers

    def is_burn(self, address: str) -> bool:
        return address.lower() in BURN_ADDRESSES


def build_chain_configs(cfg: Settings) -> dict[Chain, ChainConfig]:
    return {
        Chain.MAINNET: ChainConfig(
            chain=Chain.MAINNET,
            moralis_slug="eth",
            rpc_url=cfg.eth_rpc_url,
            weth="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            v2_router="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
            v3_swap_router="0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45",
            v3_quoter="0x61fFE014bA17989E743c5F6cB21bF9697530B21e",
            subgraphs={
                Dex.UNISWAP_V2: cfg.thegraph_v2_mainnet_subgraph,
                Dex.UNISWAP_V3: cfg.thegraph_v3_mainnet_subgraph,
            },
            lockers=MAINNET_LOCKERS,
        ),
        Chain.BASE: ChainConfig(
            chain=Chain.BASE,
            moralis_slug="base",
            rpc_url=cfg.base_rpc_url,
            weth="0x4200000000000000000000000000000000000006",
            v2_router="0x4752ba5DBc23f44D87826276BF6Fd6b1C372aD24",
            v3_swap_router="0x2626664c2603336E57B271c5C0b26F421741e481",
            v3_quoter="0x3d4e44Eb1374240CE5F1B871ab261CD16335B76a",
            subgraphs={
                Dex.UNISWAP_V2: cfg.thegraph_v2_base_subgraph,
                Dex.UNISWAP_V3: cfg.thegraph_v3_base_subgraph,
            },
            lockers=BASE_LOCKERS,
        ),
    }


class ChainRegistry:
    """Read-only chain table with lazily created, shared RPC readers."""

    def __init__(
        self,
        configs: dict[Chain, ChainConfig],
        *,
        request_timeout: float = 15.0,
    ) -> None:
        self._configs = dict(configs)
        self._readers: dict[Chain, ChainReader] = {}
        self._request_timeout = request_timeout

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ChainRegistry":
        return cls(build_chain_configs(cfg), request_timeout=cfg.http_timeout_sec)

    @property
    def chains(self) -> list[Chain]:
        return list(self._configs)

    def get(self, chain: Chain | int) -> ChainConfig:
        try:
            return self._configs[Chain(chain)]
        except (ValueError, KeyError):
            raise UnsupportedChainError(f"Chain {int(chain)} is not supported") from None

    def reader(self, chain: Chain | int) -> ChainReader:
        config = self.get(chain)
        reader = self._readers.get(config.chain)
        if reader is None:
            # No await between lookup and insert, so one reader per chain
            reader = ChainReader(config.rpc_url, timeout=self._request_timeout)
            self._readers[config.chain] = reader
            logger.debug(f"[CHAIN] Reader initialised for {config.chain.name}")
        return reader

    async def close(self) -> None:
        for reader in self._readers.values():
            await reader.close()
