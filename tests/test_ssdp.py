from __future__ import annotations

from joku import SsdpClient, SsdpDatagram
from joku.ssdp_datagram import make_search_datagram

ROKU_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Cache-Control: max-age=3600\r\n"
    b"ST: roku:ecp\r\n"
    b"USN: uuid:roku:ecp:X00400AAAAAA\r\n"
    b"Ext: \r\n"
    b"Server: Roku/12.0.0 UPnP/1.0 Roku/12.0.0\r\n"
    b"LOCATION: http://192.168.1.3:8060/\r\n"
    b"\r\n"
)

def test_parse_search_response():
    datagram = SsdpDatagram(raw_data=ROKU_RESPONSE)
    assert datagram.statement_line == "HTTP/1.1 200 OK"
    assert datagram.status_code == 200
    assert datagram.hdr_location == "http://192.168.1.3:8060/"
    assert datagram.hdr_st == "roku:ecp"
    assert datagram["location"] == "http://192.168.1.3:8060/"
    assert datagram.body == b""

def test_parse_tolerates_bare_lf():
    datagram = SsdpDatagram(raw_data=b"HTTP/1.1 200 OK\nST: roku:ecp\nLocation: http://10.0.0.9:8060/\n\n")
    assert datagram.hdr_location == "http://10.0.0.9:8060/"

def test_request_is_not_a_response():
    datagram = SsdpDatagram(raw_data=b"NOTIFY * HTTP/1.1\r\nNT: roku:ecp\r\n\r\n")
    assert not datagram.is_response
    assert datagram.status_code is None

def test_search_datagram_wire_format():
    datagram = make_search_datagram("roku:ecp", "239.255.255.250", 1900, mx=2)
    assert datagram.raw_data == (
        b"M-SEARCH * HTTP/1.1\r\n"
        b"HOST: 239.255.255.250:1900\r\n"
        b'MAN: "ssdp:discover"\r\n'
        b"MX: 2\r\n"
        b"ST: roku:ecp\r\n"
        b"\r\n"
    )
    assert SsdpDatagram(raw_data=datagram.raw_data) == datagram

def test_setting_header_rebuilds_raw_data():
    datagram = SsdpDatagram("HTTP/1.1 200 OK")
    datagram["Location"] = "http://10.0.0.9:8060/"
    assert b"Location: http://10.0.0.9:8060/\r\n" in datagram.raw_data

async def test_search_request_filters_responses():
    # No bind addresses: nothing is sent, datagrams are fed in directly.
    client = SsdpClient(bind_addresses=[])
    other_target = ROKU_RESPONSE.replace(b"ST: roku:ecp", b"ST: upnp:rootdevice")
    error_response = ROKU_RESPONSE.replace(b"200 OK", b"404 Not Found")
    no_location = ROKU_RESPONSE.replace(b"LOCATION: http://192.168.1.3:8060/\r\n", b"")

    async with client.search(response_wait_time=2.0) as search_request:
        for raw in (other_target, error_response, no_location, ROKU_RESPONSE):
            client.datagram_received(None, ("192.168.1.3", 1900), raw)
        client.end_of_stream()
        responses = [ response async for response in search_request ]

    assert [ r.location for r in responses ] == ["http://192.168.1.3:8060/"]
    assert responses[0].src_addr == ("192.168.1.3", 1900)
    assert len(client.subscribers) == 0

async def test_search_request_stops_at_max_responses():
    client = SsdpClient(bind_addresses=[])
    async with client.search(response_wait_time=2.0, max_responses=1) as search_request:
        client.datagram_received(None, ("192.168.1.3", 1900), ROKU_RESPONSE)
        client.datagram_received(None, ("192.168.1.4", 1900), ROKU_RESPONSE.replace(b".1.3:", b".1.4:"))
        responses = [ response async for response in search_request ]
    assert len(responses) == 1

async def test_search_request_ends_after_wait_time():
    client = SsdpClient(bind_addresses=[])
    async with client.search(response_wait_time=0.1) as search_request:
        responses = [ response async for response in search_request ]
    assert responses == []
