#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Encoding of Commands into External Control Protocol wire paths.

A wire path has no scheme or host; it is joined onto a device base URL such as
"http://192.168.1.3:8060/". See
https://developer.roku.com/docs/developer-program/debugging/external-control-api.md
"""

from __future__ import annotations

from urllib.parse import quote

from .internal_types import *
from .commands import Command, CommandKind, SearchParams, LaunchParams
from .app_catalog import AppCatalogEntry, resolve_app, extract_content_id
from .exceptions import EmptyKeywordError, NotSendableError
from .transport import HttpMethod

KEYPRESS_PREFIX = "keypress"
SEARCH_PATH = "search/browse"
LAUNCH_PREFIX = "launch"

_literal_paths: Dict[CommandKind, str] = {
    CommandKind.DEVICE_INFO: "query/device-info",
    CommandKind.LIST_APPS: "query/apps",
}

_query_methods: Set[CommandKind] = { CommandKind.DEVICE_INFO, CommandKind.LIST_APPS }

# (attribute name, wire key) in the order they appear in the query string
_search_fields: List[Tuple[str, str]] = [
    ('keyword', 'keyword'),
    ('type', 'type'),
    ('title', 'title'),
    ('season', 'season'),
    ('launch', 'launch'),
    ('provider', 'provider'),
    ('provider_id', 'provider-id'),
  ]

def _format_query_value(value: Union[str, bool]) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return quote(value, safe='')

def encode_search_query(params: SearchParams) -> str:
    if params.keyword == '':
        raise EmptyKeywordError()
    pairs: List[str] = []
    for attr_name, key in _search_fields:
        value = getattr(params, attr_name)
        if not value is None:
            pairs.append(f"{key}={_format_query_value(value)}")
    return '&'.join(pairs)

def encode_launch_path(params: LaunchParams, catalog: Sequence[AppCatalogEntry]) -> str:
    app_id = resolve_app(catalog, params.app)
    path = f"{LAUNCH_PREFIX}/{quote(app_id, safe='')}"
    if not params.link is None:
        content_id = extract_content_id(app_id, params.link)
        path += f"?contentId={quote(content_id, safe='')}"
    return path

def encode(command: Command, catalog: Optional[Sequence[AppCatalogEntry]]=None) -> str:
    """Encode a command as a wire path.

    Parameters:
        command:  The command to encode.
        catalog:  The device's installed apps. Only consulted for LAUNCH; an absent
                    catalog is treated as empty.

    Raises an EncodeError subclass if the command is invalid or cannot be sent.
    """
    kind = command.kind
    if kind.is_keypress:
        return f"{KEYPRESS_PREFIX}/{kind.value}"
    if kind in _literal_paths:
        return _literal_paths[kind]
    if kind == CommandKind.SEARCH:
        assert not command.search is None
        return f"{SEARCH_PATH}?{encode_search_query(command.search)}"
    if kind == CommandKind.LAUNCH:
        assert not command.launch is None
        return encode_launch_path(command.launch, () if catalog is None else catalog)
    raise NotSendableError(f"{command} is not a device command and cannot be sent")

def http_method_for(command: Command) -> HttpMethod:
    """Queries are fetched with GET; everything that acts on the device is a POST."""
    if command.kind == CommandKind.DISCOVER:
        raise NotSendableError(f"{command} is not a device command and cannot be sent")
    return HttpMethod.GET if command.kind in _query_methods else HttpMethod.POST
