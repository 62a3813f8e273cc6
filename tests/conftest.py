"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from config.settings import Settings
from tokenshield.chains import ChainRegistry, build_chain_configs


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        eth_rpc_url="http://127.0.0.1:8545",
        base_rpc_url="http://127.0.0.1:9545",
        thegraph_api_key="graph-key",
        moralis_api_key="moralis-key",
        etherscan_api_key="etherscan-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def registry(test_settings: Settings) -> ChainRegistry:
    return ChainRegistry(build_chain_configs(test_settings))


@pytest.fixture
def fake_reader() -> MagicMock:
    """ChainReader stand-in; install with ``registry._readers[chain] = fake_reader``."""
    reader = MagicMock()
    reader.block_number = AsyncMock(return_value=19_000_000)
    reader.total_supply = AsyncMock(return_value=1_000_000 * 10**18)
    reader.name = AsyncMock(return_value="Test Token")
    reader.symbol = AsyncMock(return_value="TEST")
    reader.close = AsyncMock()
    return reader
