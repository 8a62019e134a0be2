#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
TransportClient -- issues a single HTTP request to a device.

There is no retry logic here; remote-control signalling is best effort and any
retry policy belongs to the caller.
"""

from __future__ import annotations

from enum import Enum

import httpx

from .internal_types import *
from .pkg_logging import logger
from .constants import DEFAULT_REQUEST_TIMEOUT
from .exceptions import (
    InvalidBaseAddressError,
    TransportConnectionError,
    TransportTimeoutError,
    HttpStatusError,
  )

class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"

def parse_base_url(base: str) -> httpx.URL:
    """Validate a device base address such as "http://192.168.1.3:8060" and return it
       as a URL whose path ends in "/", so that relative wire paths join beneath it."""
    try:
        url = httpx.URL(base)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidBaseAddressError(base, str(e)) from e
    if url.scheme not in ('http', 'https'):
        raise InvalidBaseAddressError(base, "scheme must be http or https")
    if url.host == '':
        raise InvalidBaseAddressError(base, "no host")
    path = url.path
    return url.copy_with(path=path if path.endswith('/') else path + '/')

def join_url(base: str, path: str) -> httpx.URL:
    return parse_base_url(base).join(path)

class TransportClient(AsyncContextManager['TransportClient']):
    """An HTTP client for sending wire paths to devices.

    Usage:
        async with TransportClient() as transport:
            response = await transport.send("http://192.168.1.3:8060", "keypress/Home", HttpMethod.POST)
    """

    timeout: float
    """The default per-request timeout, in seconds."""

    _client: httpx.AsyncClient
    _owns_client: bool

    def __init__(
            self,
            timeout: float=DEFAULT_REQUEST_TIMEOUT,
            client: Optional[httpx.AsyncClient]=None,
          ) -> None:
        """Create a transport.

        Parameters:
            timeout:  The default timeout for each request, in seconds.
            client:   An existing httpx.AsyncClient to send requests with (e.g., one built
                        around an httpx.MockTransport). If None, a client is created and
                        closed with this transport.
        """
        self.timeout = timeout
        self._owns_client = client is None
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout)) if client is None else client

    async def send(
            self,
            base: str,
            path: str,
            method: HttpMethod=HttpMethod.POST,
            timeout: Optional[float]=None,
            check_status: bool=True,
          ) -> httpx.Response:
        """Send one request with no body to <base>/<path>.

        Parameters:
            base:          The device base URL, e.g. "http://192.168.1.3:8060".
            path:          A wire path produced by joku.encoder.encode().
            method:        The HTTP method.
            timeout:       Overrides the transport's default timeout for this request.
            check_status:  If True (the default), a non-2xx reply raises HttpStatusError.

        Raises InvalidBaseAddressError, TransportConnectionError (TransportTimeoutError for
        timeouts), or HttpStatusError.
        """
        url = join_url(base, path)
        logger.debug(f"Sending {method.value} {url}")
        try:
            response = await self._client.request(
                method.value,
                url,
                timeout=httpx.Timeout(self.timeout if timeout is None else timeout),
              )
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(str(url), e) from e
        except httpx.HTTPError as e:
            raise TransportConnectionError(str(url), e) from e
        logger.debug(f"{method.value} {url} returned {response.status_code}")
        if check_status and not response.is_success:
            raise HttpStatusError(str(url), response.status_code)
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        await self.aclose()
        return False
