#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging

from joku.internal_types import *

from joku import (
    __version__ as pkg_version,
    Command,
    CommandKind,
    KEYPRESS_KINDS,
    LaunchParams,
    EcpClient,
    TransportClient,
    DiscoveryEngine,
    DeviceRecord,
    JokuConfig,
    load_config,
    save_config,
    ECP_PORT,
    DEFAULT_SEARCH_WAIT_TIME,
    DEFAULT_PROBE_CONCURRENCY,
  )
from joku.transport import parse_base_url

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

def keypress_command_name(kind: CommandKind) -> str:
    """Convert an ECP key name to a subcommand name, e.g. VolumeUp -> volume-up."""
    name = kind.value
    return ''.join(('-' + c.lower()) if c.isupper() and i > 0 else c.lower() for i, c in enumerate(name))

def normalize_device_arg(device: str) -> str:
    """Accept "192.168.1.3", "192.168.1.3:8060" or a full URL, and return a base URL."""
    if '://' not in device:
        device = f"http://{device}"
    url = parse_base_url(device)
    if url.port is None:
        url = url.copy_with(port=ECP_PORT)
    return str(url)

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def get_device_base_url(self) -> str:
        device_arg: Optional[str] = self._args.device
        if not device_arg is None:
            return normalize_device_arg(device_arg)
        config = load_config(self._args.config_file)
        logging.debug(f"Using configured device {config.device}")
        return config.device.base_url

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def send_simple(self, command: Command) -> int:
        async with TransportClient() as transport:
            client = EcpClient(self.get_device_base_url(), transport)
            await client.send(command)
        return 0

    async def cmd_keypress(self) -> int:
        kind: CommandKind = self._args.kind
        return await self.send_simple(Command.of(kind))

    async def cmd_search(self) -> int:
        command = Command.search_for(
            self._args.keyword,
            type=self._args.type,
            title=self._args.title,
            season=self._args.season,
            launch=self._args.launch,
            provider=self._args.provider,
            provider_id=self._args.provider_id,
          )
        return await self.send_simple(command)

    async def cmd_launch(self) -> int:
        params = LaunchParams(self._args.app, self._args.link)
        async with TransportClient() as transport:
            client = EcpClient(self.get_device_base_url(), transport)
            await client.launch(params)
        return 0

    async def cmd_device_info(self) -> int:
        async with TransportClient() as transport:
            client = EcpClient(self.get_device_base_url(), transport)
            info = await client.device_info()
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0

    async def cmd_apps(self) -> int:
        async with TransportClient() as transport:
            client = EcpClient(self.get_device_base_url(), transport)
            apps = await client.fetch_apps()
        print(json.dumps([ app.to_jsonable() for app in apps ], indent=2))
        return 0

    async def cmd_discover(self) -> int:
        wait_time: float = self._args.wait_time
        concurrency: int = self._args.concurrency
        save_index: Optional[int] = self._args.save_index
        async with TransportClient() as transport:
            devices = await DiscoveryEngine(transport).discover(timeout=wait_time, probe_concurrency=concurrency)
        if len(devices) == 0:
            print("No Roku devices found", file=sys.stderr)
            return 1
        for i, device in enumerate(devices):
            print(f"{i}: {device}")
        chosen: Optional[DeviceRecord] = None
        if not save_index is None:
            if save_index < 0 or save_index >= len(devices):
                raise CmdExitError(1, f"--save index {save_index} is out of range")
            chosen = devices[save_index]
        elif len(devices) == 1:
            chosen = devices[0]
        else:
            print("Multiple devices found; rerun with --save <index> to choose one", file=sys.stderr)
        if not chosen is None:
            path = save_config(JokuConfig(chosen), self._args.config_file)
            print(f"Saved {chosen} to {path}")
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    async def arun(self) -> int:
        """Run the joku command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog="joku", description="Send commands to a Roku device.")

        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('-c', '--config', dest='config_file', default=None,
                            help='''The config file holding the selected device. Default: $JOKU_CONFIG or ~/.config/joku/config.json''')
        parser.add_argument('-d', '--device', default=None,
                            help='''The device to send to, as <host>[:<port>] or a URL. Overrides the configured device.''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        # ======================= discover

        parser_discover = subparsers.add_parser('discover', description="Find Roku devices on the local network")
        parser_discover.add_argument('--wait-time', type=float, default=DEFAULT_SEARCH_WAIT_TIME,
                            help=f'''The amount of time to wait for search responses, in seconds. Default: {DEFAULT_SEARCH_WAIT_TIME}''')
        parser_discover.add_argument('--concurrency', type=int, default=DEFAULT_PROBE_CONCURRENCY,
                            help=f'''The maximum number of devices probed at once. Default: {DEFAULT_PROBE_CONCURRENCY}''')
        parser_discover.add_argument('--save', dest='save_index', type=int, default=None,
                            help='''Save the device with this index as the configured device. Default: save only if exactly one device is found''')
        parser_discover.set_defaults(func=self.cmd_discover)

        # ======================= keypresses

        for kind in KEYPRESS_KINDS:
            parser_key = subparsers.add_parser(keypress_command_name(kind), description=f"Press the {kind.value} key")
            parser_key.set_defaults(func=self.cmd_keypress, kind=kind)

        # ======================= search

        parser_search = subparsers.add_parser('search', description="Search for content")
        parser_search.add_argument('keyword', help='The text to search for')
        parser_search.add_argument('--type', default=None, help='The content type, e.g. "movie" or "tv-show"')
        parser_search.add_argument('--title', default=None, help='The exact title of the content')
        parser_search.add_argument('--season', default=None, help='The season of a TV show')
        parser_search.add_argument('--launch', action=argparse.BooleanOptionalAction, default=None,
                            help='Launch the content if a provider is found')
        parser_search.add_argument('--provider', default=None, help='The preferred content provider')
        parser_search.add_argument('--provider-id', dest='provider_id', default=None, help='The preferred provider channel id')
        parser_search.set_defaults(func=self.cmd_search)

        # ======================= launch

        parser_launch = subparsers.add_parser('launch', description="Launch an installed app")
        parser_launch.add_argument('app', help='The app name (case-insensitive)')
        parser_launch.add_argument('--link', default=None, help='A link to content to open in the app')
        parser_launch.set_defaults(func=self.cmd_launch)

        # ======================= queries

        parser_device_info = subparsers.add_parser('device-info', description="Show device information")
        parser_device_info.set_defaults(func=self.cmd_device_info)

        parser_apps = subparsers.add_parser('apps', description="List installed apps")
        parser_apps.set_defaults(func=self.cmd_apps)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"joku: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"joku: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
