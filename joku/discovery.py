#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DiscoveryEngine -- finds Roku devices on the local network:

  1. Multicasts an SSDP M-SEARCH for "roku:ecp" and collects the LOCATION URLs of responders
  2. Probes each responder with GET query/device-info, with a bounded number of probes in flight
  3. Pulls the friendly device name out of each reply to make a DeviceRecord

A responder whose probe fails in any way is logged and left out of the result; it never
fails the discovery as a whole.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
import xml.etree.ElementTree as ET

import httpx

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    ECP_SEARCH_TARGET,
    DEFAULT_SEARCH_WAIT_TIME,
    DEFAULT_PROBE_CONCURRENCY,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_DISCOVERY_DEADLINE,
  )
from .commands import Command, CommandKind
from .encoder import encode, http_method_for
from .exceptions import JokuError, ResponseParseError, InvalidBaseAddressError
from .ssdp_client import ssdp_search_locations
from .transport import TransportClient, parse_base_url
from .util import format_host_and_port

Locator = Callable[[float], Awaitable[List[str]]]
"""An async callable that takes a wait time in seconds and returns device location URLs."""

FRIENDLY_NAME_TAG = "friendly-device-name"

_friendly_name_re = re.compile(
    rf"<{FRIENDLY_NAME_TAG}(?:\s[^>]*)?>(?P<text>.*?)</{FRIENDLY_NAME_TAG}\s*>", re.DOTALL)

# The entities devices have been seen to put in names; anything else is left as is.
_known_entities: Dict[str, str] = {
    "&quot;": '"',
    "&apos;": "'",
    "&#39;": "'",
    "&lt;": "<",
    "&gt;": ">",
    "&amp;": "&",
}

_entity_re = re.compile("|".join(re.escape(e) for e in _known_entities))

def decode_known_entities(text: str) -> str:
    return _entity_re.sub(lambda m: _known_entities[m.group(0)], text)

def extract_friendly_name(body: str) -> str:
    """Return the text of the first <friendly-device-name> element in a device-info reply."""
    m = _friendly_name_re.search(body)
    if m is None:
        raise ResponseParseError(f"No <{FRIENDLY_NAME_TAG}> element in device-info response")
    return decode_known_entities(m.group('text').strip())

def parse_device_info(xml_text: str) -> Dict[str, str]:
    """Flatten a device-info reply into {tag: text} for display."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ResponseParseError(f"Unable to parse device-info: {e}") from e
    return { child.tag: (child.text or '').strip() for child in root }

def parse_ecp_url(location: str) -> httpx.URL:
    """Parse a device URL, which must be plain http. A URL with no port means port 80."""
    url = parse_base_url(location)
    if url.scheme != 'http':
        raise InvalidBaseAddressError(location, "ECP devices are only reachable over http")
    return url

@dataclass(frozen=True)
class DeviceRecord:
    """A Roku device found on the network."""
    name: str
    address: HostAndPort

    @property
    def base_url(self) -> str:
        return f"http://{format_host_and_port(self.address)}/"

    @classmethod
    def from_base_url(cls, name: str, base: str) -> DeviceRecord:
        url = parse_ecp_url(base)
        port = 80 if url.port is None else url.port
        return cls(name=name, address=(url.host, port))

    def to_jsonable(self) -> JsonableDict:
        return dict(name=self.name, addr=format_host_and_port(self.address))

    def __str__(self) -> str:
        return f"{self.name} ({format_host_and_port(self.address)})"

def origin_of(location: str) -> str:
    """Reduce a LOCATION URL to the device base URL, e.g. "http://192.168.1.3:8060/"."""
    url = parse_ecp_url(location)
    return f"{url.scheme}://{url.netloc.decode('ascii')}/"

async def default_locator(response_wait_time: float) -> List[str]:
    return await ssdp_search_locations(response_wait_time, search_target=ECP_SEARCH_TARGET)

class DiscoveryEngine:
    """Finds devices and probes them for their names.

    Usage:
        async with TransportClient() as transport:
            devices = await DiscoveryEngine(transport).discover()
    """

    transport: TransportClient
    locator: Locator
    probe_timeout: float

    def __init__(
            self,
            transport: TransportClient,
            locator: Optional[Locator]=None,
            probe_timeout: float=DEFAULT_PROBE_TIMEOUT,
          ) -> None:
        """
        Parameters:
            transport:      The transport that probes are sent with.
            locator:        Finds candidate device URLs. Defaults to an SSDP multicast search.
            probe_timeout:  The timeout (in seconds) for each individual probe.
        """
        self.transport = transport
        self.locator = default_locator if locator is None else locator
        self.probe_timeout = probe_timeout

    async def probe(self, base: str, timeout: Optional[float]=None) -> DeviceRecord:
        """Fetch device-info from one candidate and build its DeviceRecord. Raises on any failure."""
        command = Command.of(CommandKind.DEVICE_INFO)
        response = await self.transport.send(
            base,
            encode(command),
            http_method_for(command),
            timeout=self.probe_timeout if timeout is None else timeout,
          )
        name = extract_friendly_name(response.text)
        return DeviceRecord.from_base_url(name, base)

    async def _probe_gated(self, semaphore: asyncio.Semaphore, base: str, deadline: float) -> DeviceRecord:
        async with semaphore:
            loop = asyncio.get_running_loop()
            timeout = min(self.probe_timeout, deadline - loop.time())
            if timeout <= 0.0:
                raise asyncio.TimeoutError()
            return await asyncio.wait_for(self.probe(base, timeout), timeout)

    async def discover(
            self,
            timeout: float=DEFAULT_SEARCH_WAIT_TIME,
            probe_concurrency: int=DEFAULT_PROBE_CONCURRENCY,
            deadline: float=DEFAULT_DISCOVERY_DEADLINE,
          ) -> List[DeviceRecord]:
        """Search for devices and return a DeviceRecord for each one that answered its probe.

        Parameters:
            timeout:            How long (in seconds) to wait for multicast search responses.
            probe_concurrency:  The maximum number of probes in flight at once.
            deadline:           The upper bound (in seconds) for the whole call, search included.
                                  Probes still running when it passes are abandoned.

        Returns the records sorted by address. An empty list means no device answered.
        Raises DiscoveryError if the search itself could not be performed.
        """
        if probe_concurrency < 1:
            raise ValueError(f"probe_concurrency must be at least 1, got {probe_concurrency}")
        loop = asyncio.get_running_loop()
        end_time = loop.time() + deadline
        locations = await self.locator(min(timeout, deadline))

        bases: List[str] = []
        for location in locations:
            try:
                base = origin_of(location)
            except JokuError as e:
                logger.info(f"Ignoring responder with unusable location {location!r}: {e}")
                continue
            if not base in bases:
                bases.append(base)
        if len(bases) == 0:
            return []

        semaphore = asyncio.Semaphore(probe_concurrency)
        tasks: Dict[asyncio.Task[DeviceRecord], str] = {
            asyncio.create_task(self._probe_gated(semaphore, base, end_time)): base for base in bases
        }
        try:
            remaining = max(0.0, end_time - loop.time())
            done, pending = await asyncio.wait(tasks.keys(), timeout=remaining)
            for task in pending:
                logger.info(f"Abandoning probe of {tasks[task]}: discovery deadline passed")
        finally:
            # No probe outlives this call, even when the caller cancels it.
            unfinished = [ task for task in tasks if not task.done() ]
            for task in unfinished:
                task.cancel()
            if len(unfinished) > 0:
                await asyncio.gather(*unfinished, return_exceptions=True)

        devices: List[DeviceRecord] = []
        for task in done:
            base = tasks[task]
            exc = task.exception()
            if exc is None:
                device = task.result()
                logger.debug(f"Found device {device}")
                devices.append(device)
            elif isinstance(exc, (JokuError, asyncio.TimeoutError)):
                logger.info(f"Probe of {base} failed: {exc!r}")
            else:
                logger.warning(f"Probe of {base} failed unexpectedly: {exc!r}")
        return sorted(devices, key=lambda d: (d.address, d.name))
