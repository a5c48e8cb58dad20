import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from llmloop.utilities.http import ClientCache, RequestsTransport, Transport, TransportResponse, normalize_host


class TestNormalizeHost:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://api.openai.com/", "https://api.openai.com"),
            ("HTTPS://API.OpenAI.com/v1/chat", "https://api.openai.com"),
            ("http://localhost:8000/v1", "http://localhost:8000"),
            ("  https://example.com  ", "https://example.com"),
        ],
    )
    def test_normalize(self, url, expected):
        assert normalize_host(url) == expected

    @pytest.mark.parametrize("url", ["", "example.com", "/just/a/path"])
    def test_invalid(self, url):
        with pytest.raises(ValueError, match="Invalid URL"):
            normalize_host(url)


class TestClientCache:
    def test_insert_get(self):
        cache = ClientCache()
        cache.insert("a", 1)
        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert len(cache) == 1

    def test_expiry(self):
        cache = ClientCache(expiry_seconds=10)
        with patch("llmloop.utilities.http.time.monotonic", return_value=100.0):
            cache.insert("a", 1)
        with patch("llmloop.utilities.http.time.monotonic", return_value=109.0):
            assert cache.get("a") == 1
        with patch("llmloop.utilities.http.time.monotonic", return_value=110.0):
            assert cache.get("a") is None
        assert len(cache) == 0

    def test_on_evict_called_on_expiry(self):
        evicted = []
        cache = ClientCache(expiry_seconds=10, on_evict=evicted.append)
        with patch("llmloop.utilities.http.time.monotonic", return_value=100.0):
            cache.insert("a", 1)
            cache.insert("a", 2)
        assert evicted == [1]
        with patch("llmloop.utilities.http.time.monotonic", return_value=110.0):
            assert cache.get("a") is None
        assert evicted == [1, 2]

    def test_invalid_expiry(self):
        with pytest.raises(ValueError, match="expiry_seconds must be > 0"):
            ClientCache(expiry_seconds=0)


class TestTransportResponse:
    def test_json(self):
        assert TransportResponse(status=200, headers={}, body='{"a": 1}').json() == {"a": 1}


class TestRequestsTransport:
    def test_is_transport(self):
        assert isinstance(RequestsTransport(), Transport)

    def test_session_reused_per_host(self):
        transport = RequestsTransport()
        first = transport.session_for("https://api.openai.com/v1/chat/completions")
        second = transport.session_for("https://API.openai.com/other")
        third = transport.session_for("https://api.deepinfra.com/")

        assert isinstance(first, requests.Session)
        assert first is second
        assert first is not third
        assert len(transport.cache) == 2

    def test_expired_session_closed(self):
        transport = RequestsTransport()
        with patch("llmloop.utilities.http.time.monotonic", return_value=0.0):
            first = transport.session_for("https://api.openai.com/")
        with (
            patch("llmloop.utilities.http.time.monotonic", return_value=1200.0),
            patch.object(first, "close") as close,
        ):
            second = transport.session_for("https://api.openai.com/")
        close.assert_called_once_with()
        assert second is not first

    @pytest.mark.asyncio(loop_scope="function")
    async def test_issue_request(self):
        response = MagicMock()
        response.status_code = 429
        response.headers = {"Retry-After": "1"}
        response.text = json.dumps({"detail": "slow down"})
        response.__enter__.return_value = response

        session = MagicMock(spec=requests.Session)
        session.post.return_value = response

        transport = RequestsTransport(timeout=5)
        transport.cache.insert("https://api.example.com", session)

        result = await transport.issue_request("https://api.example.com/v1/x", {"Authorization": "Bearer k"}, {"a": 1})

        session.post.assert_called_once_with(
            "https://api.example.com/v1/x",
            headers={"Authorization": "Bearer k"},
            json={"a": 1},
            timeout=5,
        )
        assert result == TransportResponse(status=429, headers={"Retry-After": "1"}, body='{"detail": "slow down"}')

    @pytest.mark.asyncio(loop_scope="function")
    async def test_does_not_block_loop(self):
        ticks = []

        def slow_post(*args, **kwargs):
            import time

            time.sleep(0.05)
            return TransportResponse(status=200, headers={}, body="{}")

        async def ticker():
            for _ in range(3):
                ticks.append(1)
                await asyncio.sleep(0.005)

        transport = RequestsTransport()
        with patch.object(transport, "_post", side_effect=slow_post):
            await asyncio.gather(transport.issue_request("https://example.com", {}, {}), ticker())
        assert len(ticks) == 3
