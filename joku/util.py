#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

import re
from ipaddress import ip_address

import netifaces

from email.parser import BytesHeaderParser
from email.message import Message as EmailParserMessage
from requests.structures import CaseInsensitiveDict

from .internal_types import *

_bare_lf_re = re.compile(rb'(?<!\r)\n')

def split_statement_line(data: bytes) -> Tuple[str, bytes]:
    """Split an HTTP-style message into its first line (decoded) and the remainder.

    A bare LF is accepted as a line delimiter even though CRLF is required by the standard.
    """
    parts = data.split(b'\n', 1)
    statement = parts[0]
    if statement.endswith(b'\r'):
        statement = statement[:-1]
    remainder = b'' if len(parts) < 2 else parts[1]
    return (statement.decode('utf-8', errors='replace'), remainder)

def split_headers_and_body(data: bytes) -> Tuple[bytes, bytes]:
    """Splits a byte string with HTTP headers and an optional body at the first empty line.

    Returns a Tuple[headers: bytes, body: bytes]. If there is no body, b'' is returned for the body.
    """
    m = re.search(rb'\r?\n\r?\n', data)
    if m is None:
        return (data, b'')
    return (data[:m.start()], data[m.end():])

def parse_http_headers(data: bytes) -> Tuple[CaseInsensitiveDict[str], bytes]:
    """Parse HTTP-style headers out of a byte string. Also returns the body of the message, if any.

    It is assumed that the statement line (e.g., "HTTP/1.1 200 OK") has already been removed.
    Header values are not decoded in any way.

    Returns a tuple of (headers: CaseInsensitiveDict[str], body: bytes).
    """
    headers_data, body = split_headers_and_body(data)
    # the email parser wants CRLF throughout
    headers_data = _bare_lf_re.sub(b'\r\n', headers_data)
    msg: EmailParserMessage = BytesHeaderParser().parsebytes(headers_data)
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict(
        (name, str(value).strip()) for name, value in msg.items()
      )
    return (headers, body)

def encode_http_header(name: str, value: str) -> bytes:
    """Encodes a raw HTTP header name/value pair, terminated with CRLF."""
    return f"{name}: {value}\r\n".encode('utf-8')

def get_default_ip_gateway_interface() -> Optional[str]:
    """Returns the name of the interface that holds the default IPv4 gateway, or None."""
    gws = netifaces.gateways()
    default_gateways = gws.get("default", {})
    if netifaces.AF_INET in default_gateways:
        return default_gateways[netifaces.AF_INET][1]
    return None

def get_local_ip_addresses(include_loopback: bool=False) -> List[str]:
    """Returns the IPv4 addresses of the local host, with addresses on the default
       gateway interface first, then other non-loopback addresses, then (optionally)
       loopback addresses. Addresses beginning with 172. are sorted after other
       non-loopback addresses so that local docker networks are tried last."""
    result_with_priority: List[Tuple[int, str]] = []
    default_ifname = get_default_ip_gateway_interface()
    for ifname in netifaces.interfaces():
        for addrinfo in netifaces.ifaddresses(ifname).get(netifaces.AF_INET, []):
            ip_str = addrinfo.get('addr')
            if not isinstance(ip_str, str):
                continue
            if ip_address(ip_str).is_loopback:
                if not include_loopback:
                    continue
                priority = 3
            elif ifname == default_ifname:
                priority = 0
            elif ip_str.startswith('172.'):
                priority = 2
            else:
                priority = 1
            result_with_priority.append((priority, ip_str))
    return [ ip for _, ip in sorted(result_with_priority) ]

def format_host_and_port(addr: HostAndPort) -> str:
    host, port = addr
    if ':' in host:
        # bare IPv6 literal
        host = f"[{host}]"
    return f"{host}:{port}"
