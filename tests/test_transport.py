from __future__ import annotations

import httpx
import pytest

from joku import (
    HttpMethod,
    HttpStatusError,
    InvalidBaseAddressError,
    TransportConnectionError,
    TransportTimeoutError,
)
from joku.transport import join_url

from conftest import make_transport

def test_join_url():
    assert str(join_url("http://192.168.1.3:8060", "keypress/Home")) == "http://192.168.1.3:8060/keypress/Home"
    assert str(join_url("http://192.168.1.3:8060/", "search/browse?keyword=a%20b")) == \
        "http://192.168.1.3:8060/search/browse?keyword=a%20b"

@pytest.mark.parametrize("base", ["192.168.1.3:8060", "ftp://192.168.1.3/", "http://"])
def test_invalid_base_address(base):
    with pytest.raises(InvalidBaseAddressError):
        join_url(base, "keypress/Home")

async def test_send_posts_without_body():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    async with make_transport(handler) as transport:
        response = await transport.send("http://192.168.1.3:8060", "keypress/Home", HttpMethod.POST)

    assert response.status_code == 200
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/keypress/Home"
    assert seen[0].content == b""

async def test_non_2xx_raises_by_default():
    async with make_transport(lambda request: httpx.Response(404)) as transport:
        with pytest.raises(HttpStatusError) as excinfo:
            await transport.send("http://192.168.1.3:8060", "launch/999")
        assert excinfo.value.status_code == 404
        response = await transport.send("http://192.168.1.3:8060", "launch/999", check_status=False)
        assert response.status_code == 404

async def test_connection_errors_are_distinct():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def stall(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_transport(refuse) as transport:
        with pytest.raises(TransportConnectionError) as excinfo:
            await transport.send("http://192.168.1.3:8060", "keypress/Home")
        assert not isinstance(excinfo.value, TransportTimeoutError)

    async with make_transport(stall) as transport:
        with pytest.raises(TransportTimeoutError):
            await transport.send("http://192.168.1.3:8060", "query/device-info", HttpMethod.GET)
