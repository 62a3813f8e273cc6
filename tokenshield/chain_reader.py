"""Read-only ERC-20 and block queries against the live chain."""

from web3 import AsyncHTTPProvider, AsyncWeb3

from tokenshield.anvil.contracts import ERC20_ABI


class ChainReader:
    def __init__(self, rpc_url: str, *, timeout: float = 15.0) -> None:
        self._w3 = AsyncWeb3(
            AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    def _erc20(self, address: str):
        return self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address), abi=ERC20_ABI
        )

    async def block_number(self) -> int:
        return await self._w3.eth.block_number

    async def total_supply(self, address: str) -> int:
        return await self._erc20(address).functions.totalSupply().call()

    async def name(self, address: str) -> str:
        return await self._erc20(address).functions.name().call()

    async def symbol(self, address: str) -> str:
        return await self._erc20(address).functions.symbol().call()

    async def close(self) -> None:
        await self._w3.provider.disconnect()
