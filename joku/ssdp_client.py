#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpClient -- A minimal asyncio SSDP client that can:

  1. Send an M-SEARCH request to the SSDP multicast address (239.255.255.250:1900)
     from every local interface
  2. Receive and decode the unicast HTTP-over-UDP responses from remote devices
  3. Yield responses received within a configurable wait time

Only the search half of SSDP is implemented; NOTIFY advertisements are ignored.
"""

from __future__ import annotations

import asyncio
import socket
import time

from .internal_types import *
from .pkg_logging import logger
from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, ECP_SEARCH_TARGET, DEFAULT_SEARCH_WAIT_TIME
from .exceptions import DiscoveryError
from .ssdp_datagram import SsdpDatagram, make_search_datagram
from .util import get_local_ip_addresses, format_host_and_port

MAX_QUEUE_SIZE = 1000

class SsdpSocketBinding:
    """
    The binding of an SsdpClient to a single low-level datagram socket. There is one
    instance of this class for each local interface address that searches are sent from.
    """

    sock: Optional[socket.socket] = None
    """The low-level socket, bound to an ephemeral port on one local address."""

    transport: Optional[asyncio.DatagramTransport] = None
    """The asyncio transport for sock. Set once loop.create_datagram_endpoint() completes."""

    unicast_addr: HostAndPort
    """The local address and port that responses are received on."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.unicast_addr = sock.getsockname()[:2]

    def sendto(self, datagram: SsdpDatagram, addr: HostAndPort) -> None:
        logger.debug(f"Sending SsdpDatagram via {self} to {addr}: {datagram}")
        assert not self.transport is None
        self.transport.sendto(datagram.raw_data, addr)

    def close(self) -> None:
        if not self.transport is None:
            try:
                self.transport.close()
            except OSError as e:
                logger.error(f"Error closing transport on {self}: {e}")
            self.transport = None
        if not self.sock is None:
            try:
                self.sock.close()
            except OSError as e:
                logger.error(f"Error closing socket on {self}: {e}")
            self.sock = None

    def __str__(self) -> str:
        return f"SsdpSocketBinding({format_host_and_port(self.unicast_addr)})"

    def __repr__(self) -> str:
        return str(self)

class _SsdpSocketProtocol(asyncio.DatagramProtocol):
    """Adapter between an asyncio datagram transport and SsdpClient."""
    socket_binding: SsdpSocketBinding
    ssdp_client: SsdpClient

    def __init__(self, ssdp_client: SsdpClient, socket_binding: SsdpSocketBinding):
        self.ssdp_client = ssdp_client
        self.socket_binding = socket_binding

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.ssdp_client.datagram_received(self.socket_binding, addr[:2], data)

    def error_received(self, exc: Exception):
        logger.info(f"Error received from transport {self.socket_binding}: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        logger.debug(f"Connection to transport lost on {self.socket_binding}, exc={exc}")
        self.ssdp_client.end_of_stream(exc)

class SsdpResponseInfo:
    socket_binding: SsdpSocketBinding
    """The socket binding on which the response was received"""

    src_addr: HostAndPort
    """The source address of the response"""

    datagram: SsdpDatagram
    """The response datagram"""

    def __init__(self, socket_binding: SsdpSocketBinding, src_addr: HostAndPort, datagram: SsdpDatagram):
        self.socket_binding = socket_binding
        self.src_addr = src_addr
        self.datagram = datagram

    @property
    def location(self) -> Optional[str]:
        return self.datagram.hdr_location

class SsdpSearchRequest(
        AsyncContextManager['SsdpSearchRequest'],
        AsyncIterable[SsdpResponseInfo]
      ):
    """A single M-SEARCH on an SsdpClient and all of the responses it gathers,
       within an AsyncContextManager/AsyncIterable interface.

    Usage:
        async with client.search(ECP_SEARCH_TARGET) as search_request:
            async for response in search_request:
                print(response.location)
    """

    ssdp_client: SsdpClient
    search_target: str
    response_wait_time: float
    max_responses: int
    queue: asyncio.Queue[Optional[Tuple[SsdpSocketBinding, HostAndPort, SsdpDatagram]]]
    end_time: float = 0.0
    eos: bool = False

    def __init__(
            self,
            ssdp_client: SsdpClient,
            search_target: str=ECP_SEARCH_TARGET,
            response_wait_time: Optional[float]=None,
            max_responses: int=0,
          ):
        self.ssdp_client = ssdp_client
        self.search_target = search_target
        self.response_wait_time = ssdp_client.response_wait_time if response_wait_time is None else response_wait_time
        self.max_responses = max_responses
        self.queue = asyncio.Queue(MAX_QUEUE_SIZE)

    async def __aenter__(self) -> Self:
        # Subscribe before sending so that no early response is missed.
        self.ssdp_client.add_subscriber(self)
        try:
            mx = max(1, int(self.response_wait_time))
            for socket_binding in self.ssdp_client.socket_bindings:
                search_datagram = make_search_datagram(
                    self.search_target, self.ssdp_client.multicast_address, self.ssdp_client.multicast_port, mx=mx)
                socket_binding.sendto(search_datagram, (self.ssdp_client.multicast_address, self.ssdp_client.multicast_port))
            self.end_time = time.monotonic() + self.response_wait_time
        except BaseException:
            self.ssdp_client.remove_subscriber(self)
            raise
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.ssdp_client.remove_subscriber(self)
        self.on_end_of_stream()
        return False

    def on_datagram(self, socket_binding: SsdpSocketBinding, addr: HostAndPort, datagram: SsdpDatagram) -> None:
        if not self.eos:
            try:
                self.queue.put_nowait((socket_binding, addr, datagram))
            except asyncio.QueueFull:
                logger.warning(f"Queue full, dropping datagram from {socket_binding} {addr}: {datagram}")

    def on_end_of_stream(self) -> None:
        if not self.eos:
            self.eos = True
            try:
                # wake up any waiting tasks
                self.queue.put_nowait(None)
            except asyncio.QueueFull:
                # queue is full so waiters will wake up soon
                pass

    def _accepts(self, datagram: SsdpDatagram) -> bool:
        if datagram.status_code != 200:
            return False
        if self.search_target != "ssdp:all" and datagram.hdr_st != self.search_target:
            return False
        return not datagram.hdr_location is None

    async def iter_responses(self) -> AsyncIterator[SsdpResponseInfo]:
        n = 0
        while True:
            if self.max_responses > 0 and n >= self.max_responses:
                break
            remaining_time = self.end_time - time.monotonic()
            if remaining_time <= 0.0:
                break
            try:
                resp_tuple = await asyncio.wait_for(self.queue.get(), remaining_time)
            except asyncio.TimeoutError:
                break
            if resp_tuple is None:
                break
            socket_binding, addr, datagram = resp_tuple
            logger.debug(f"Received SSDP datagram from {addr} on {socket_binding}: {datagram}")
            if self._accepts(datagram):
                n += 1
                yield SsdpResponseInfo(socket_binding, addr, datagram)

    def __aiter__(self) -> AsyncIterator[SsdpResponseInfo]:
        return self.iter_responses()

class SsdpClient(AsyncContextManager['SsdpClient']):
    """
    An SSDP search client. Entering the context manager binds one UDP socket per
    local interface address; exiting closes them.
    """

    response_wait_time: float
    """The default amount of time (in seconds) to wait for responses to a search."""

    multicast_address: str
    """The multicast address to send searches to."""

    multicast_port: int
    """The multicast port to send searches to."""

    bind_addresses: List[str]
    """The local IP addresses to send searches from."""

    socket_bindings: List[SsdpSocketBinding]

    subscribers: Set[SsdpSearchRequest]
    """Search requests currently waiting for responses."""

    def __init__(
            self,
            response_wait_time: float=DEFAULT_SEARCH_WAIT_TIME,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
            bind_addresses: Optional[Iterable[str]]=None,
            include_loopback: bool=False,
          ) -> None:
        self.response_wait_time = response_wait_time
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port
        if bind_addresses is None:
            bind_addresses = get_local_ip_addresses(include_loopback=include_loopback)
        self.bind_addresses = list(bind_addresses)
        self.socket_bindings = []
        self.subscribers = set()

    def add_subscriber(self, subscriber: SsdpSearchRequest) -> None:
        self.subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: SsdpSearchRequest) -> None:
        self.subscribers.discard(subscriber)

    def _create_socket(self, bind_address: str) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(bind_address))
            sock.bind((bind_address, 0))
            sock.setblocking(False)
        except BaseException:
            sock.close()
            raise
        return sock

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        logger.debug(f"Creating socket bindings to {self.bind_addresses}")
        errors: List[str] = []
        for bind_address in self.bind_addresses:
            try:
                socket_binding = SsdpSocketBinding(self._create_socket(bind_address))
            except OSError as e:
                logger.warning(f"Unable to bind SSDP socket to {bind_address}: {e}")
                errors.append(f"{bind_address}: {e}")
                continue
            try:
                transport, _ = await loop.create_datagram_endpoint(
                    lambda: _SsdpSocketProtocol(self, socket_binding),
                    sock=socket_binding.sock
                  )
            except OSError as e:
                logger.warning(f"Unable to create datagram endpoint for {socket_binding}: {e}")
                errors.append(f"{bind_address}: {e}")
                socket_binding.close()
                continue
            socket_binding.transport = transport # type: ignore[assignment]
            self.socket_bindings.append(socket_binding)
            logger.debug(f"Created datagram endpoint for {socket_binding}")
        if len(self.socket_bindings) == 0:
            if len(errors) == 0:
                raise DiscoveryError("No local IPv4 addresses are available to search from")
            raise DiscoveryError(f"Unable to create any SSDP socket: {'; '.join(errors)}")

    def close(self) -> None:
        for socket_binding in self.socket_bindings:
            socket_binding.close()
        self.socket_bindings = []

    def datagram_received(self, socket_binding: SsdpSocketBinding, addr: HostAndPort, data: bytes) -> None:
        try:
            datagram = SsdpDatagram(raw_data=data)
        except ValueError as e:
            logger.warning(f"Error parsing datagram from {addr}, raw=[{data!r}]: {e}")
            return
        for subscriber in list(self.subscribers):
            subscriber.on_datagram(socket_binding, addr, datagram)

    def end_of_stream(self, exc: Optional[Exception]=None) -> None:
        for subscriber in list(self.subscribers):
            subscriber.on_end_of_stream()

    def search(
            self,
            search_target: str=ECP_SEARCH_TARGET,
            response_wait_time: Optional[float]=None,
            max_responses: int=0,
          ) -> SsdpSearchRequest:
        """Create an async context manager/iterable that sends a multicast M-SEARCH and yields the
           responses as they arrive.

        Parameters:
            search_target:       The ST header to search for. Defaults to "roku:ecp".
            response_wait_time:  The amount of time (in seconds) to wait for responses to come in. Defaults to
                                    self.response_wait_time.
            max_responses:       The maximum number of responses to return. If 0 (the default), all responses
                                    received within response_wait_time will be returned.
        """
        return SsdpSearchRequest(
                self,
                search_target=search_target,
                response_wait_time=response_wait_time,
                max_responses=max_responses,
              )

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.end_of_stream()
        self.close()
        return False

async def ssdp_search_locations(
        response_wait_time: float=DEFAULT_SEARCH_WAIT_TIME,
        search_target: str=ECP_SEARCH_TARGET,
        bind_addresses: Optional[Iterable[str]]=None,
        multicast_address: str=SSDP_MULTICAST_ADDRESS,
        multicast_port: int=SSDP_PORT,
      ) -> List[str]:
    """Search the local network and return the distinct LOCATION URLs of the devices that answered,
       in the order they first answered. An empty list is a valid result."""
    locations: List[str] = []
    async with SsdpClient(
            response_wait_time=response_wait_time,
            multicast_address=multicast_address,
            multicast_port=multicast_port,
            bind_addresses=bind_addresses,
          ) as client:
        async with client.search(search_target=search_target) as search_request:
            async for info in search_request:
                location = info.location
                assert not location is None
                if not location in locations:
                    locations.append(location)
    logger.debug(f"SSDP search for {search_target} found {locations}")
    return locations
