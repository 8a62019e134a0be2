from __future__ import annotations

from typing import Awaitable, Callable, Union

import httpx
import pytest

from joku import AppCatalogEntry, TransportClient

Handler = Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]]

def make_transport(handler: Handler, timeout: float=1.0) -> TransportClient:
    """A TransportClient whose requests are answered by handler instead of the network."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TransportClient(timeout=timeout, client=client)

@pytest.fixture
def catalog():
    return [
        AppCatalogEntry(id="12", type="appl", version="5.1.0", name="Netflix"),
        AppCatalogEntry(id="837", type="appl", version="2.21.43000003", name="youtube"),
        AppCatalogEntry(id="2285", type="appl", version="6.30.1", name="Hulu"),
    ]
