"""Tests for the Moralis ERC-20 client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tokenshield.exceptions import MoralisError
from tokenshield.parsers.moralis.client import MoralisClient, metadata_to_web_data
from tokenshield.parsers.moralis.models import MoralisTokenMetadata

TOKEN = "0x1111111111111111111111111111111111111111"


def _client_returning(status_code: int, body) -> MoralisClient:
    client = MoralisClient("mkey", max_rps=1000.0)
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = body
    mock_resp.text = "error body"
    client._client = AsyncMock()
    client._client.get = AsyncMock(return_value=mock_resp)
    return client


class TestMoralisClient:
    @pytest.mark.asyncio
    async def test_token_holders(self) -> None:
        client = _client_returning(200, {
            "result": [
                {"owner_address": "0xPOOL", "balance": "600000000000000000000000", "is_contract": True},
                {"owner_address": "0xwhale", "balance": "50000000000000000000000"},
                {"owner_address": "0xbroken", "balance": "n/a"},
            ]
        })

        holders = await client.get_token_holders("eth", TOKEN)

        assert [h.holder_address for h in holders] == ["0xpool", "0xwhale"]
        assert holders[0].quantity == 6 * 10**23
        path = client._client.get.call_args.args[0]
        params = client._client.get.call_args.kwargs["params"]
        assert path == f"/erc20/{TOKEN}/owners"
        assert params == {"chain": "eth", "order": "DESC"}

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        client = _client_returning(401, {})
        with pytest.raises(MoralisError, match="HTTP 401"):
            await client.get_token_holders("base", TOKEN)

    @pytest.mark.asyncio
    async def test_metadata(self) -> None:
        client = _client_returning(200, [{
            "address": TOKEN,
            "name": "Test Token",
            "symbol": "TEST",
            "decimals": "18",
            "links": {"website": "https://test.io", "discord": "https://discord.gg/x"},
        }])

        metadata = await client.get_token_metadata("eth", TOKEN)

        assert metadata is not None
        assert metadata.symbol == "TEST"
        web = metadata_to_web_data(metadata)
        assert web.has_website is True
        assert web.has_twitter_or_discord is True
        assert web.twitter_handle is None

    @pytest.mark.asyncio
    async def test_metadata_empty(self) -> None:
        client = _client_returning(200, [])
        assert await client.get_token_metadata("eth", TOKEN) is None


def test_metadata_without_links() -> None:
    web = metadata_to_web_data(MoralisTokenMetadata(name="X"))
    assert web.has_website is False
    assert web.has_twitter_or_discord is False


class TestTransportFailures:
    @pytest.mark.asyncio
    async def test_remote_protocol_error_retried_then_typed(self, monkeypatch) -> None:
        monkeypatch.setattr("tokenshield.parsers.moralis.client.asyncio.sleep", AsyncMock())
        client = _client_returning(200, {})
        client._client.get = AsyncMock(
            side_effect=httpx.RemoteProtocolError("Server disconnected without sending a response.")
        )

        with pytest.raises(MoralisError, match="unreachable"):
            await client.get_token_holders("eth", TOKEN)
        assert client._client.get.await_count == 3

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        client = _client_returning(200, {})
        client._client.get.return_value.json.side_effect = ValueError("Expecting value")

        with pytest.raises(MoralisError, match="non-JSON"):
            await client.get_token_metadata("eth", TOKEN)
