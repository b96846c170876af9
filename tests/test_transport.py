"""Tests for the deadline-bound transport."""

from __future__ import annotations

import time

import httpx
import pytest
from helpers import never_respond

from imagine_gateway.gateway.errors import NetworkFailure, NetworkTimeout
from imagine_gateway.gateway.transport import fetch_with_timeout


class TestFetchWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_response(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        async with httpx.AsyncClient(transport=transport) as client:
            resp = await fetch_with_timeout(client, "GET", "https://provider.test/ping", timeout=1.0)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_hung_request_times_out_near_deadline(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(never_respond)) as client:
            start = time.monotonic()
            with pytest.raises(NetworkTimeout) as exc_info:
                await fetch_with_timeout(client, "POST", "https://slow.test/v1/images", timeout=0.2)
            elapsed = time.monotonic() - start

        assert 0.19 <= elapsed < 1.0
        assert "timeout" in str(exc_info.value).lower()
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_httpx_timeout_maps_to_network_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NetworkTimeout):
                await fetch_with_timeout(client, "GET", "https://provider.test/", timeout=1.0)

    @pytest.mark.asyncio
    async def test_connect_error_is_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NetworkFailure) as exc_info:
                await fetch_with_timeout(client, "GET", "https://down.test/", timeout=1.0)

        assert not isinstance(exc_info.value, NetworkTimeout)
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_error_does_not_leak_query_key(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(never_respond)) as client:
            with pytest.raises(NetworkTimeout) as exc_info:
                await fetch_with_timeout(
                    client, "POST", "https://google.test/v1beta/models/x:generateContent?key=secret", timeout=0.05
                )
        assert exc_info.value.url == "https://google.test/v1beta/models/x:generateContent"
        assert "secret" not in str(exc_info.value)
