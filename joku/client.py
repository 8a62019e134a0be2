#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
EcpClient -- sends Commands to one Roku device.
"""

from __future__ import annotations

import httpx

from .internal_types import *
from .pkg_logging import logger
from .commands import Command, CommandKind, LaunchParams
from .encoder import encode, http_method_for
from .app_catalog import AppCatalogEntry, parse_app_catalog
from .discovery import parse_device_info
from .transport import TransportClient, parse_base_url

class EcpClient:
    """A device-bound client. Every method makes exactly one request, except launch(),
       which first fetches the device's app list to resolve the app name."""

    base_url: str
    transport: TransportClient

    def __init__(self, base_url: str, transport: TransportClient):
        # fail early on a bad address rather than on first send
        parse_base_url(base_url)
        self.base_url = base_url
        self.transport = transport

    async def send(
            self,
            command: Command,
            catalog: Optional[Sequence[AppCatalogEntry]]=None,
          ) -> httpx.Response:
        """Encode and send a command. Encoding errors are raised before anything is sent."""
        path = encode(command, catalog)
        method = http_method_for(command)
        logger.info(f"Sending {command} to {self.base_url}")
        return await self.transport.send(self.base_url, path, method)

    async def fetch_apps(self) -> List[AppCatalogEntry]:
        response = await self.send(Command.of(CommandKind.LIST_APPS))
        return parse_app_catalog(response.text)

    async def device_info(self) -> Dict[str, str]:
        response = await self.send(Command.of(CommandKind.DEVICE_INFO))
        return parse_device_info(response.text)

    async def launch(self, params: LaunchParams) -> httpx.Response:
        catalog = await self.fetch_apps()
        return await self.send(Command(CommandKind.LAUNCH, launch=params), catalog)
