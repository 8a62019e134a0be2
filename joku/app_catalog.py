#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The apps installed on a device, and how a user-typed app name and link become
an ECP launch target.

A device reports its apps from GET /query/apps as:

    <apps>
      <app id="837" type="appl" version="2.21.43000003">YouTube</app>
      ...
    </apps>

Content identifiers are app specific. Each app that supports deep links gets a
ContentIdHandler registered under its ECP app id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlsplit, parse_qs
import xml.etree.ElementTree as ET

from .internal_types import *
from .pkg_logging import logger
from .constants import YOUTUBE_APP_ID
from .exceptions import (
    UnknownAppError,
    AmbiguousAppError,
    InvalidContentIdentifierError,
    ResponseParseError,
  )

@dataclass(frozen=True)
class AppCatalogEntry:
    id: str
    type: str
    version: str
    name: str

    def to_jsonable(self) -> JsonableDict:
        return dict(id=self.id, type=self.type, version=self.version, name=self.name)

def parse_app_catalog(xml_text: str) -> List[AppCatalogEntry]:
    """Parse the body of a query/apps response."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ResponseParseError(f"Unable to parse app list: {e}") from e
    result: List[AppCatalogEntry] = []
    for app in root.iter('app'):
        app_id = app.get('id')
        if app_id is None:
            logger.debug(f"Skipping app element without an id: {ET.tostring(app)!r}")
            continue
        result.append(AppCatalogEntry(
            id=app_id,
            type=app.get('type', ''),
            version=app.get('version', ''),
            name=(app.text or '').strip(),
          ))
    return result

def resolve_app(catalog: Sequence[AppCatalogEntry], name: str) -> str:
    """Return the app id of the single catalog entry whose name matches `name`, ignoring case.

    Raises UnknownAppError if nothing matches and AmbiguousAppError if more than one entry does.
    """
    folded = name.casefold()
    matches = [ entry for entry in catalog if entry.name.casefold() == folded ]
    if len(matches) == 0:
        raise UnknownAppError(name)
    if len(matches) > 1:
        raise AmbiguousAppError(name, len(matches))
    return matches[0].id

class ContentIdHandler(ABC):
    """Knows how to pull an app's content identifier out of a user supplied link."""

    @abstractmethod
    def extract_content_id(self, link: str) -> Optional[str]:
        """Return the content id embedded in link, or None if there is none."""
        raise NotImplementedError()

class QueryParamContentIdHandler(ContentIdHandler):
    """Takes the content id from a named query parameter of a URL link."""

    param_name: str

    def __init__(self, param_name: str):
        self.param_name = param_name

    def extract_content_id(self, link: str) -> Optional[str]:
        parts = urlsplit(link)
        if parts.scheme == '' or parts.netloc == '':
            return None
        values = parse_qs(parts.query).get(self.param_name)
        if not values or values[0] == '':
            return None
        return values[0]

_content_id_handlers: Dict[str, ContentIdHandler] = {}

def register_content_id_handler(app_id: str, handler: ContentIdHandler) -> None:
    _content_id_handlers[app_id] = handler

def get_content_id_handler(app_id: str) -> Optional[ContentIdHandler]:
    return _content_id_handlers.get(app_id)

def extract_content_id(app_id: str, link: str) -> str:
    """Extract the content id for app_id from link.

    Raises InvalidContentIdentifierError if the app has no registered handler or the
    link does not carry an identifier.
    """
    handler = get_content_id_handler(app_id)
    if handler is None:
        raise InvalidContentIdentifierError(link, f"App {app_id} does not support content links")
    content_id = handler.extract_content_id(link)
    if content_id is None:
        raise InvalidContentIdentifierError(link)
    return content_id

# YouTube watch links carry the video id in ?v=
register_content_id_handler(YOUTUBE_APP_ID, QueryParamContentIdHandler('v'))
