"""Ephemeral anvil fork owned by exactly one assessment.

``AnvilFork`` is an async context manager: the node process and its
websocket are released on every exit path, including exceptions and task
cancellation from an enclosing ``asyncio.wait_for``.
"""

import asyncio
import socket

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3, WebSocketProvider
from web3.middleware import SignAndSendRawMiddlewareBuilder

from tokenshield.exceptions import ForkStartupError, TransactionRevertedError

# anvil's well-known development keys (mnemonic "test test ... junk"); local fork only
TEST_WALLET_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
PEER_WALLET_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

KILL_GRACE_SEC = 3.0
PORT_POLL_INTERVAL = 0.2


def free_local_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class AnvilFork:
    """Forked node on a private localhost port."""

    def __init__(
        self,
        fork_url: str,
        chain_id: int,
        *,
        fork_block: int | None = None,
        anvil_path: str = "anvil",
        startup_timeout: float = 20.0,
        receipt_timeout: float = 30.0,
    ) -> None:
        self._fork_url = fork_url
        self._chain_id = chain_id
        self._fork_block = fork_block
        self._anvil_path = anvil_path
        self._startup_timeout = startup_timeout
        self._receipt_timeout = receipt_timeout

        self._wallet = Account.from_key(TEST_WALLET_KEY)
        self._peer = Account.from_key(PEER_WALLET_KEY)
        self._port: int | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._w3: AsyncWeb3 | None = None

    @property
    def wallet(self) -> str:
        return self._wallet.address

    @property
    def peer_wallet(self) -> str:
        return self._peer.address

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise ForkStartupError("Fork is not running")
        return self._w3

    @property
    def ws_url(self) -> str:
        return f"ws://127.0.0.1:{self._port}"

    def command(self) -> list[str]:
        cmd = [
            self._anvil_path,
            "--fork-url", self._fork_url,
            "--chain-id", str(self._chain_id),
            "--port", str(self._port),
            "--no-storage-caching",
            "--silent",
        ]
        if self._fork_block is not None:
            cmd += ["--fork-block-number", str(self._fork_block)]
        return cmd

    async def start(self) -> None:
        self._port = free_local_port()
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command(),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ForkStartupError(f"Cannot launch {self._anvil_path}: {e}") from e

        logger.debug(
            f"[ANVIL] pid={self._process.pid} port={self._port} chain={self._chain_id} "
            f"block={self._fork_block or 'latest'}"
        )
        await self._wait_for_port()

        w3 = AsyncWeb3(WebSocketProvider(self.ws_url))
        try:
            await w3.provider.connect()
        except Exception as e:
            raise ForkStartupError(f"Websocket connect to {self.ws_url} failed: {e}") from e
        w3.middleware_onion.inject(
            SignAndSendRawMiddlewareBuilder.build([self._wallet, self._peer]), layer=0
        )
        self._w3 = w3

    async def _wait_for_port(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._startup_timeout
        while True:
            if self._process is not None and self._process.returncode is not None:
                raise ForkStartupError(f"anvil exited early with code {self._process.returncode}")
            try:
                _, writer = await asyncio.open_connection("127.0.0.1", self._port)
            except OSError:
                if loop.time() >= deadline:
                    raise ForkStartupError(
                        f"anvil did not listen on {self._port} within {self._startup_timeout}s"
                    ) from None
                await asyncio.sleep(PORT_POLL_INTERVAL)
                continue
            writer.close()
            await writer.wait_closed()
            return

    async def close(self) -> None:
        w3, self._w3 = self._w3, None
        process, self._process = self._process, None
        try:
            if w3 is not None:
                try:
                    await w3.provider.disconnect()
                except Exception as e:
                    logger.debug(f"[ANVIL] Websocket disconnect error: {e}")
        finally:
            if process is not None:
                await _stop_process(process)
                logger.debug(f"[ANVIL] pid={process.pid} stopped")

    async def __aenter__(self) -> "AnvilFork":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- node helpers -------------------------------------------------

    async def _rpc(self, method: str, params: list) -> object:
        response = await self.w3.provider.make_request(method, params)
        if response.get("error"):
            raise ForkStartupError(f"{method} failed: {response['error']}")
        return response.get("result")

    async def set_balance(self, address: str, wei: int) -> None:
        await self._rpc("anvil_setBalance", [address, hex(wei)])

    async def mine(self) -> None:
        await self._rpc("evm_mine", [])

    async def eth_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(address)

    async def latest_timestamp(self) -> int:
        block = await self.w3.eth.get_block("latest")
        return int(block["timestamp"])

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    async def transact(self, fn, *, sender: str, value: int = 0) -> dict:
        """Send a contract call from ``sender`` and wait for its receipt.

        Gas estimation surfaces most reverts as ``ContractLogicError``; a mined
        transaction with status 0 raises ``TransactionRevertedError``.
        """
        params = {"from": sender}
        if value:
            params["value"] = value
        tx_hash = await fn.transact(params)
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionRevertedError("transaction mined with status 0", tx_hash=AsyncWeb3.to_hex(tx_hash))
        return receipt


async def _stop_process(process: asyncio.subprocess.Process) -> None:
    """Terminate, then kill after a grace period. Kills even if cancelled mid-wait."""
    try:
        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=KILL_GRACE_SEC)
            except asyncio.TimeoutError:
                logger.warning(f"[ANVIL] pid={process.pid} ignored SIGTERM, killing")
                process.kill()
                await process.wait()
    except ProcessLookupError:
        pass
    finally:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
