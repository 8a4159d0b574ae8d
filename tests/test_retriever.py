"""Unit tests for DiscordRetriever."""

import httpx
import pytest

from gateway.exceptions import RetrieverError
from gateway.retriever import DiscordRetriever


def _retriever(handler, token="bot-token-value") -> DiscordRetriever:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiscordRetriever(token, api_base="https://discord.test/api/v10/", client=client)


@pytest.mark.asyncio
async def test_resolves_matching_attachment():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={
            "id": "222",
            "attachments": [
                {"filename": "other.part001.nitro", "proxy_url": "https://media.test/other"},
                {"filename": "clip.part002.nitro", "url": "https://cdn.test/a", "proxy_url": "https://media.test/a"},
            ],
        })

    url = await _retriever(handler).resolve_fetch_url("111", "222", "clip.part002.nitro", True)

    assert url == "https://media.test/a"
    assert seen[0].url.path == "/api/v10/channels/111/messages/222"
    assert seen[0].headers["authorization"] == "Bot bot-token-value"


@pytest.mark.asyncio
async def test_falls_back_to_url_without_proxy():
    def handler(request):
        return httpx.Response(200, json={"attachments": [{"filename": "a.part001.nitro", "url": "https://cdn.test/a"}]})

    assert await _retriever(handler).resolve_fetch_url("1", "2", "a.part001.nitro", False) == "https://cdn.test/a"


@pytest.mark.asyncio
async def test_attachment_not_found():
    def handler(request):
        return httpx.Response(200, json={"attachments": []})

    with pytest.raises(RetrieverError, match="not found"):
        await _retriever(handler).resolve_fetch_url("1", "2", "a.part001.nitro", True)


@pytest.mark.asyncio
async def test_message_deleted():
    def handler(request):
        return httpx.Response(404, json={"message": "Unknown Message"})

    with pytest.raises(RetrieverError, match="not found or deleted"):
        await _retriever(handler).resolve_fetch_url("1", "2", "a.part001.nitro", True)


@pytest.mark.asyncio
async def test_server_error():
    def handler(request):
        return httpx.Response(503)

    with pytest.raises(RetrieverError, match="HTTP 503"):
        await _retriever(handler).resolve_fetch_url("1", "2", "a.part001.nitro", True)


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RetrieverError, match="Network error"):
        await _retriever(handler).resolve_fetch_url("1", "2", "a.part001.nitro", True)


@pytest.mark.asyncio
async def test_requires_bot_token():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(RetrieverError, match="Bot token"):
        await _retriever(handler, token=None).resolve_fetch_url("1", "2", "a.part001.nitro", True)
