# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Type hints shared by modules in this package"""

from __future__ import annotations

from typing import (
    Any,
    AsyncContextManager,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
  )

from types import TracebackType
from typing_extensions import Self

HostAndPort = Tuple[str, int]
"""An (ip_address_or_hostname, port) pair, as used by the socket module."""

Jsonable = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]
"""A value that can be serialized with json.dumps()"""

JsonableDict = Dict[str, Jsonable]
"""A JSON object"""
