#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from typing import Optional

class JokuError(Exception):
    """Base class for all error exceptions defined by this package."""
    pass

# ======================= Encoding / resolution

class EncodeError(JokuError):
    """A command could not be turned into a wire path. Raised before any network I/O."""
    pass

class EmptyKeywordError(EncodeError):
    def __init__(self) -> None:
        super().__init__("Search keyword must not be empty")

class UnknownAppError(EncodeError):
    name: str

    def __init__(self, name: str):
        super().__init__(f"Unknown app: {name!r}")
        self.name = name

class AmbiguousAppError(EncodeError):
    name: str
    count: int

    def __init__(self, name: str, count: int):
        super().__init__(f"App name {name!r} matches {count} installed apps")
        self.name = name
        self.count = count

class InvalidContentIdentifierError(EncodeError):
    link: Optional[str]

    def __init__(self, link: Optional[str]=None, msg: Optional[str]=None):
        if msg is None:
            msg = f"Invalid content identifier in link {link!r}"
        super().__init__(msg)
        self.link = link

class NotSendableError(EncodeError):
    """The command is a local pseudo-command (e.g. discover) and has no wire form."""
    pass

# ======================= Transport

class TransportError(JokuError):
    """An HTTP request to a device failed."""
    pass

class InvalidBaseAddressError(TransportError):
    base: str

    def __init__(self, base: str, reason: Optional[str]=None):
        msg = f"Invalid device base address {base!r}"
        if not reason is None:
            msg += f": {reason}"
        super().__init__(msg)
        self.base = base

class TransportConnectionError(TransportError):
    url: str

    def __init__(self, url: str, cause: BaseException):
        super().__init__(f"Request to {url} failed: {cause}")
        self.url = url

class TransportTimeoutError(TransportConnectionError):
    pass

class HttpStatusError(TransportError):
    url: str
    status_code: int

    def __init__(self, url: str, status_code: int):
        super().__init__(f"Request to {url} returned HTTP status {status_code}")
        self.url = url
        self.status_code = status_code

# ======================= Responses, discovery, configuration

class ResponseParseError(JokuError):
    """A device response body could not be parsed."""
    pass

class DiscoveryError(JokuError):
    """The multicast search itself could not be performed."""
    pass

class ConfigError(JokuError):
    pass
