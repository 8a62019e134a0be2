# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package joku sends commands to Roku devices using the External Control Protocol (ECP).

ECP is a plain HTTP API served by Roku devices on port 8060. Remote-control key
presses, searches and app launches are POSTs to short paths such as
"keypress/Home"; queries such as "query/device-info" are GETs that return XML.

Devices are found with an SSDP multicast search for the "roku:ecp" search
target; each responder's LOCATION header gives its base URL, and a device-info
probe of that URL yields the device's friendly name.

See https://developer.roku.com/docs/developer-program/debugging/external-control-api.md
"""

from .version import __version__

from .internal_types import HostAndPort, Jsonable, JsonableDict

from .exceptions import (
    JokuError,
    EncodeError,
    EmptyKeywordError,
    UnknownAppError,
    AmbiguousAppError,
    InvalidContentIdentifierError,
    NotSendableError,
    TransportError,
    InvalidBaseAddressError,
    TransportConnectionError,
    TransportTimeoutError,
    HttpStatusError,
    ResponseParseError,
    DiscoveryError,
    ConfigError,
  )

from .commands import Command, CommandKind, KEYPRESS_KINDS, SearchParams, LaunchParams
from .app_catalog import (
    AppCatalogEntry,
    parse_app_catalog,
    resolve_app,
    ContentIdHandler,
    QueryParamContentIdHandler,
    register_content_id_handler,
  )
from .transport import TransportClient, HttpMethod
from .encoder import encode, http_method_for
from .ssdp_datagram import SsdpDatagram
from .ssdp_client import SsdpClient, SsdpSearchRequest, SsdpResponseInfo, ssdp_search_locations
from .discovery import DiscoveryEngine, DeviceRecord, extract_friendly_name, parse_device_info
from .client import EcpClient
from .config import JokuConfig, load_config, save_config
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    ECP_SEARCH_TARGET,
    ECP_PORT,
    DEFAULT_SEARCH_WAIT_TIME,
    DEFAULT_PROBE_CONCURRENCY,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_DISCOVERY_DEADLINE,
  )

__all__ = [
    '__version__',
    'HostAndPort', 'Jsonable', 'JsonableDict',
    'JokuError', 'EncodeError', 'EmptyKeywordError', 'UnknownAppError', 'AmbiguousAppError',
    'InvalidContentIdentifierError', 'NotSendableError',
    'TransportError', 'InvalidBaseAddressError', 'TransportConnectionError', 'TransportTimeoutError',
    'HttpStatusError', 'ResponseParseError', 'DiscoveryError', 'ConfigError',
    'Command', 'CommandKind', 'KEYPRESS_KINDS', 'SearchParams', 'LaunchParams',
    'AppCatalogEntry', 'parse_app_catalog', 'resolve_app',
    'ContentIdHandler', 'QueryParamContentIdHandler', 'register_content_id_handler',
    'TransportClient', 'HttpMethod',
    'encode', 'http_method_for',
    'SsdpDatagram', 'SsdpClient', 'SsdpSearchRequest', 'SsdpResponseInfo', 'ssdp_search_locations',
    'DiscoveryEngine', 'DeviceRecord', 'extract_friendly_name', 'parse_device_info',
    'EcpClient',
    'JokuConfig', 'load_config', 'save_config',
    'SSDP_MULTICAST_ADDRESS', 'SSDP_PORT', 'ECP_SEARCH_TARGET', 'ECP_PORT',
    'DEFAULT_SEARCH_WAIT_TIME', 'DEFAULT_PROBE_CONCURRENCY', 'DEFAULT_PROBE_TIMEOUT',
    'DEFAULT_DISCOVERY_DEADLINE',
]
