from __future__ import annotations

import asyncio

import httpx
import pytest

from joku import (
    DeviceRecord,
    DiscoveryEngine,
    InvalidBaseAddressError,
    ResponseParseError,
    extract_friendly_name,
    parse_device_info,
    ssdp_search_locations,
  )
from joku.discovery import decode_known_entities, origin_of

from conftest import make_transport

DEVICE_INFO_XML = """<?xml version="1.0" encoding="UTF-8" ?>
<device-info>
    <udn>29380007-0800-1025-80a4-d83134a4d3e6</udn>
    <serial-number>X00400AAAAAA</serial-number>
    <model-name>Roku Ultra</model-name>
    <friendly-device-name>{name}</friendly-device-name>
    <power-mode>PowerOn</power-mode>
</device-info>
"""

def device_info(name: str) -> str:
    return DEVICE_INFO_XML.format(name=name)

def fixed_locator(locations):
    async def locate(wait_time: float):
        return list(locations)
    return locate

def test_extract_friendly_name_decodes_quote():
    assert extract_friendly_name(device_info("Living Room&quot;TV")) == 'Living Room"TV'

def test_extract_friendly_name_takes_first_element():
    body = "<x><friendly-device-name>One</friendly-device-name><friendly-device-name>Two</friendly-device-name></x>"
    assert extract_friendly_name(body) == "One"

def test_extract_friendly_name_missing():
    with pytest.raises(ResponseParseError):
        extract_friendly_name("<device-info><model-name>Roku</model-name></device-info>")

def test_decode_known_entities_is_single_pass():
    assert decode_known_entities("Tom&amp;quot;s &lt;TV&gt; &#39;n&apos; &copy;") == "Tom&quot;s <TV> 'n' &copy;"

def test_parse_device_info():
    info = parse_device_info(device_info("Den"))
    assert info["model-name"] == "Roku Ultra"
    assert info["friendly-device-name"] == "Den"

def test_origin_of():
    assert origin_of("http://192.168.1.3:8060/dial/dd.xml") == "http://192.168.1.3:8060/"

def test_device_record_base_url():
    device = DeviceRecord.from_base_url("Den", "http://192.168.1.3:8060/")
    assert device.address == ("192.168.1.3", 8060)
    assert device.base_url == "http://192.168.1.3:8060/"
    assert DeviceRecord.from_base_url("Den", "http://192.168.1.3").address == ("192.168.1.3", 80)

def test_device_record_uses_probed_port():
    device = DeviceRecord.from_base_url("Den", "http://192.168.1.3/")
    assert device.base_url == "http://192.168.1.3:80/"

def test_https_locations_are_rejected():
    with pytest.raises(InvalidBaseAddressError):
        DeviceRecord.from_base_url("Den", "https://192.168.1.3:8060/")
    with pytest.raises(InvalidBaseAddressError):
        origin_of("https://192.168.1.3:8060/dial/dd.xml")

async def test_discover_round_trip():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=device_info("Living Room&quot;TV"))

    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(transport, locator=fixed_locator(["http://192.168.1.3:8060/"]))
        devices = await engine.discover(timeout=0.1)

    assert devices == [DeviceRecord(name='Living Room"TV', address=("192.168.1.3", 8060))]
    assert len(requests) == 1
    assert requests[0].method == "GET"
    assert str(requests[0].url) == "http://192.168.1.3:8060/query/device-info"

async def test_discover_no_responders():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no probe expected")

    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(transport, locator=fixed_locator([]))
        assert await engine.discover(timeout=0.1) == []

async def test_discover_drops_probe_that_times_out():
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "192.168.1.4":
            await asyncio.sleep(10)
        return httpx.Response(200, text=device_info("Bedroom"))

    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(
            transport,
            locator=fixed_locator(["http://192.168.1.4:8060/", "http://192.168.1.3:8060/"]),
            probe_timeout=0.2,
        )
        devices = await asyncio.wait_for(engine.discover(timeout=0.1), 5.0)

    assert devices == [DeviceRecord(name="Bedroom", address=("192.168.1.3", 8060))]

async def test_discover_tolerates_mixed_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "10.0.0.1":
            raise httpx.ConnectError("connection refused", request=request)
        if host == "10.0.0.2":
            return httpx.Response(500)
        if host == "10.0.0.3":
            return httpx.Response(200, text="<device-info><model-name>x</model-name></device-info>")
        return httpx.Response(200, text=device_info(host))

    locations = [f"http://10.0.0.{i}:8060/" for i in range(1, 6)] + ["not a url"]
    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(transport, locator=fixed_locator(locations))
        devices = await engine.discover(timeout=0.1, probe_concurrency=2)

    assert [d.name for d in devices] == ["10.0.0.4", "10.0.0.5"]

async def test_discover_deduplicates_responders():
    hits = []

    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(str(request.url))
        return httpx.Response(200, text=device_info("Den"))

    locations = ["http://192.168.1.3:8060/", "http://192.168.1.3:8060/dial/dd.xml"]
    async with make_transport(handler) as transport:
        devices = await DiscoveryEngine(transport, locator=fixed_locator(locations)).discover(timeout=0.1)

    assert len(devices) == 1
    assert len(hits) == 1

async def test_discover_bounds_probes_in_flight():
    in_flight = 0
    max_in_flight = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.05)
        in_flight -= 1
        return httpx.Response(200, text=device_info(request.url.host))

    locations = [f"http://10.0.0.{i}:8060/" for i in range(1, 9)]
    async with make_transport(handler) as transport:
        devices = await DiscoveryEngine(transport, locator=fixed_locator(locations)).discover(
            timeout=0.1, probe_concurrency=3)

    assert len(devices) == 8
    assert max_in_flight <= 3

async def test_discover_respects_overall_deadline():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200, text=device_info("late"))

    loop = asyncio.get_running_loop()
    start = loop.time()
    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(transport, locator=fixed_locator(["http://10.0.0.1:8060/"]), probe_timeout=30.0)
        devices = await engine.discover(timeout=0.1, deadline=0.3)
    assert devices == []
    assert loop.time() - start < 5.0

async def test_discover_rejects_zero_concurrency():
    async with make_transport(lambda request: httpx.Response(200)) as transport:
        with pytest.raises(ValueError):
            await DiscoveryEngine(transport, locator=fixed_locator([])).discover(probe_concurrency=0)

async def test_cancelled_discover_leaves_no_probe_running():
    finished = []

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.5)
        finished.append(request.url.host)
        return httpx.Response(200, text=device_info("slow"))

    async with make_transport(handler) as transport:
        engine = DiscoveryEngine(transport, locator=fixed_locator(["http://10.0.0.1:8060/"]), probe_timeout=5.0)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(engine.discover(timeout=0.0, deadline=5.0), 0.1)
        await asyncio.sleep(0.8)
    assert finished == []

class _LoopbackRoku(asyncio.DatagramProtocol):
    """Answers M-SEARCH requests for roku:ecp the way a device on the LAN does."""

    def __init__(self, location: str):
        self.location = location
        self.searches = []

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data: bytes, addr):
        self.searches.append(data)
        if data.startswith(b"M-SEARCH") and b"ST: roku:ecp" in data:
            reply = (
                b"HTTP/1.1 200 OK\r\n"
                b"ST: roku:ecp\r\n"
                b"USN: uuid:roku:ecp:X00400AAAAAA\r\n"
                b"LOCATION: " + self.location.encode('ascii') + b"\r\n"
                b"\r\n"
            )
            self.transport.sendto(reply, addr)

async def test_discover_through_real_ssdp_search():
    loop = asyncio.get_running_loop()
    responder = _LoopbackRoku("http://127.0.0.1:8060/")
    endpoint, _ = await loop.create_datagram_endpoint(lambda: responder, local_addr=("127.0.0.1", 0))
    port = endpoint.get_extra_info('sockname')[1]

    async def locate(wait_time: float):
        return await ssdp_search_locations(
            wait_time,
            bind_addresses=["127.0.0.1"],
            multicast_address="127.0.0.1",
            multicast_port=port,
          )

    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=device_info("Living Room&quot;TV"))

    try:
        async with make_transport(handler) as transport:
            devices = await DiscoveryEngine(transport, locator=locate).discover(timeout=0.5)
    finally:
        endpoint.close()

    assert len(responder.searches) == 1
    assert responder.searches[0].startswith(b"M-SEARCH * HTTP/1.1\r\n")
    assert devices == [DeviceRecord(name='Living Room"TV', address=("127.0.0.1", 8060))]
    assert [ (r.method, str(r.url)) for r in requests ] == [("GET", "http://127.0.0.1:8060/query/device-info")]
