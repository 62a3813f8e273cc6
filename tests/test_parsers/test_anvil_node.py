"""Tests for the anvil fork lifecycle and node helpers."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tokenshield.anvil import node
from tokenshield.anvil.node import AnvilFork
from tokenshield.exceptions import ForkStartupError, TransactionRevertedError

FORK_URL = "https://eth.example/rpc"


def _process(*, ignores_sigterm: bool = False) -> MagicMock:
    process = MagicMock()
    process.pid = 4242
    process.returncode = None

    async def wait():
        if ignores_sigterm and not process.kill.called:
            await asyncio.sleep(10)
        process.returncode = -15
        return process.returncode

    process.wait = AsyncMock(side_effect=wait)
    return process


def _running_fork() -> AnvilFork:
    fork = AnvilFork(FORK_URL, 1)
    fork._w3 = MagicMock()
    fork._w3.provider.make_request = AsyncMock(return_value={"jsonrpc": "2.0", "id": 1, "result": True})
    fork._w3.provider.disconnect = AsyncMock()
    return fork


class TestAnvilCommand:
    def test_command_pins_block(self) -> None:
        fork = AnvilFork(FORK_URL, 8453, fork_block=21_000_000, anvil_path="/opt/foundry/anvil")
        fork._port = 40123

        cmd = fork.command()

        assert cmd[0] == "/opt/foundry/anvil"
        assert cmd[cmd.index("--fork-url") + 1] == FORK_URL
        assert cmd[cmd.index("--chain-id") + 1] == "8453"
        assert cmd[cmd.index("--port") + 1] == "40123"
        assert cmd[cmd.index("--fork-block-number") + 1] == "21000000"
        assert "--no-storage-caching" in cmd

    def test_command_without_block(self) -> None:
        fork = AnvilFork(FORK_URL, 1)
        fork._port = 1
        assert "--fork-block-number" not in fork.command()

    def test_dev_wallets_are_distinct(self) -> None:
        fork = AnvilFork(FORK_URL, 1)
        assert fork.wallet.startswith("0x")
        assert fork.wallet != fork.peer_wallet

    def test_w3_requires_running_fork(self) -> None:
        with pytest.raises(ForkStartupError):
            _ = AnvilFork(FORK_URL, 1).w3


class TestAnvilLifecycle:
    @pytest.mark.asyncio
    async def test_close_terminates_process(self) -> None:
        fork = _running_fork()
        process = _process()
        fork._process = process
        provider = fork._w3.provider

        await fork.close()

        provider.disconnect.assert_awaited_once()
        process.terminate.assert_called_once()
        process.kill.assert_not_called()
        assert fork._process is None
        assert fork._w3 is None

    @pytest.mark.asyncio
    async def test_close_kills_stubborn_process(self, monkeypatch) -> None:
        monkeypatch.setattr(node, "KILL_GRACE_SEC", 0.01)
        fork = AnvilFork(FORK_URL, 1)
        process = _process(ignores_sigterm=True)
        fork._process = process

        await fork.close()

        process.terminate.assert_called_once()
        process.kill.assert_called()

    @pytest.mark.asyncio
    async def test_close_kills_even_if_disconnect_fails(self) -> None:
        fork = _running_fork()
        fork._w3.provider.disconnect = AsyncMock(side_effect=ConnectionError("socket gone"))
        process = _process()
        fork._process = process

        await fork.close()

        process.terminate.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_binary(self, monkeypatch) -> None:
        monkeypatch.setattr(
            "tokenshield.anvil.node.asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("anvil")),
        )
        with pytest.raises(ForkStartupError, match="Cannot launch"):
            async with AnvilFork(FORK_URL, 1):
                pass

    @pytest.mark.asyncio
    async def test_failed_startup_releases_process(self, monkeypatch) -> None:
        process = _process()
        monkeypatch.setattr(
            "tokenshield.anvil.node.asyncio.create_subprocess_exec",
            AsyncMock(return_value=process),
        )
        monkeypatch.setattr(
            AnvilFork, "_wait_for_port", AsyncMock(side_effect=ForkStartupError("did not listen"))
        )

        with pytest.raises(ForkStartupError):
            async with AnvilFork(FORK_URL, 1):
                pass

        process.terminate.assert_called_once()

    @pytest.mark.asyncio
    async def test_early_exit_detected(self) -> None:
        fork = AnvilFork(FORK_URL, 1, startup_timeout=5.0)
        fork._port = node.free_local_port()
        process = MagicMock()
        process.returncode = 1
        fork._process = process

        with pytest.raises(ForkStartupError, match="exited early"):
            await fork._wait_for_port()


class TestNodeHelpers:
    @pytest.mark.asyncio
    async def test_set_balance_hex(self) -> None:
        fork = _running_fork()
        await fork.set_balance("0xabc", 10**18)
        fork._w3.provider.make_request.assert_awaited_once_with(
            "anvil_setBalance", ["0xabc", "0xde0b6b3a7640000"]
        )

    @pytest.mark.asyncio
    async def test_rpc_error_raises(self) -> None:
        fork = _running_fork()
        fork._w3.provider.make_request = AsyncMock(
            return_value={"error": {"code": -32601, "message": "method not found"}}
        )
        with pytest.raises(ForkStartupError, match="evm_mine"):
            await fork.mine()

    @pytest.mark.asyncio
    async def test_transact_status_zero(self) -> None:
        fork = _running_fork()
        fork._w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 0})
        fn = MagicMock()
        fn.transact = AsyncMock(return_value=bytes.fromhex("1234"))

        with pytest.raises(TransactionRevertedError) as exc_info:
            await fork.transact(fn, sender=fork.wallet, value=5)

        assert exc_info.value.tx_hash == "0x1234"
        fn.transact.assert_awaited_once_with({"from": fork.wallet, "value": 5})

    @pytest.mark.asyncio
    async def test_transact_success(self) -> None:
        fork = _running_fork()
        fork._w3.eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 1, "gasUsed": 21000})
        fn = MagicMock()
        fn.transact = AsyncMock(return_value=b"\x01")

        receipt = await fork.transact(fn, sender=fork.wallet)

        assert receipt["gasUsed"] == 21000
        fn.transact.assert_awaited_once_with({"from": fork.wallet})
