#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Abstraction of a datagram used in the SSDP (HTTP-over-UDP) protocol.
"""

from __future__ import annotations

from typing import MutableMapping

from .internal_types import *
from .util import (
    CaseInsensitiveDict,
    split_statement_line,
    parse_http_headers,
    encode_http_header,
)

class SsdpDatagram(MutableMapping[str, str]):
    """Wrapper for a raw SSDP datagram.

    This class provides parsing and formatting of the HTTP-like packets, a dict-like
    case-insensitive interface to the headers, and a few convenient properties.
    """

    _raw_data: bytes
    """The raw UDP datagram contents"""

    _statement_line: str
    """The first line of the datagram; e.g., "HTTP/1.1 200 OK" or "M-SEARCH * HTTP/1.1"."""

    _headers: CaseInsensitiveDict[str]
    """The headers, keyed case-insensitively."""

    _body: bytes
    """The body of the datagram, if any. If there is no body, b'' is returned."""

    def __init__(
            self,
            statement: Optional[str]=None,
            headers: Optional[Mapping[str, str]]=None,
            body: Optional[bytes]=None,
            raw_data: Optional[bytes]=None,
          ):
        if raw_data is None:
            if statement is None:
                raise ValueError("Either statement or raw_data must be provided")
            self._statement_line = statement
            self._headers = CaseInsensitiveDict(headers or {})
            self._body = b'' if body is None else body
            self._rebuild_raw_data()
        else:
            if not (statement is None and headers is None and body is None):
                raise ValueError("If raw_data is provided, statement, headers, and body must be None")
            self.raw_data = raw_data

    def __str__(self) -> str:
        return f"SsdpDatagram('{self._statement_line}', headers={dict(self._headers)}, body={self._body!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_data(self) -> bytes:
        """The raw UDP datagram contents"""
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        """Set the raw UDP datagram contents, and recompute the statement line, headers and body."""
        assert isinstance(value, bytes)
        self._raw_data = value
        self._statement_line, remainder = split_statement_line(value)
        self._headers, self._body = parse_http_headers(remainder)

    @property
    def statement_line(self) -> str:
        return self._statement_line

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        return self._headers

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def is_response(self) -> bool:
        """True if the statement line is an HTTP status line."""
        return self._statement_line.upper().startswith("HTTP/")

    @property
    def status_code(self) -> Optional[int]:
        """The numeric status of a response datagram, or None if this is not a valid response."""
        if not self.is_response:
            return None
        parts = self._statement_line.split(None, 2)
        if len(parts) < 2:
            return None
        try:
            return int(parts[1])
        except ValueError:
            return None

    @property
    def hdr_location(self) -> Optional[str]:
        """The "LOCATION" header; the base URL of the responding device."""
        return self._headers.get("Location")

    @property
    def hdr_st(self) -> Optional[str]:
        """The "ST" (search target) header."""
        return self._headers.get("ST")

    def __setitem__(self, key: str, value: str) -> None:
        assert isinstance(value, str)
        self._headers[key] = value
        self._rebuild_raw_data()

    def __getitem__(self, key: str) -> str:
        return self._headers[key]

    def __delitem__(self, key: str) -> None:
        del self._headers[key]
        self._rebuild_raw_data()

    def __iter__(self):
        return iter(self._headers)

    def __len__(self):
        return len(self._headers)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpDatagram):
            return False
        return (self._statement_line == other._statement_line and
                self._headers == other._headers and
                self._body == other._body)

    def _rebuild_raw_data(self) -> None:
        """Rebuild the raw data from the statement line, headers (in insertion order), and body."""
        raw_data = self._statement_line.encode('utf-8') + b'\r\n'
        for k, v in self._headers.items():
            raw_data += encode_http_header(k, v)
        raw_data += b'\r\n'
        raw_data += self._body
        self._raw_data = raw_data

def make_search_datagram(search_target: str, host: str, port: int, mx: int=1) -> SsdpDatagram:
    """Create an SSDP M-SEARCH request datagram for a search target."""
    return SsdpDatagram(
        "M-SEARCH * HTTP/1.1",
        headers={
            "HOST": f"{host}:{port}",
            "MAN": '"ssdp:discover"',
            "MX": str(mx),
            "ST": search_target,
          }
      )
