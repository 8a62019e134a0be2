#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Persisted configuration: the device that commands are sent to.

The file is JSON:

    {
      "device": { "name": "Living Room", "addr": "192.168.1.3:8060" }
    }
"""

from __future__ import annotations

import os
import json

from .internal_types import *
from .pkg_logging import logger
from .exceptions import ConfigError
from .discovery import DeviceRecord

CONFIG_ENV_VAR = "JOKU_CONFIG"

def default_config_path() -> str:
    """$JOKU_CONFIG if set, otherwise ~/.config/joku/config.json"""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return os.path.abspath(os.path.expanduser(env_path))
    return os.path.join(os.path.expanduser('~'), '.config', 'joku', 'config.json')

def _parse_addr(addr: str) -> HostAndPort:
    host, sep, port_str = addr.rpartition(':')
    if sep == '' or host == '':
        raise ConfigError(f"Config: device addr {addr!r} must be <host>:<port>")
    try:
        port = int(port_str)
    except ValueError as e:
        raise ConfigError(f"Config: device addr {addr!r} has an invalid port") from e
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    return (host, port)

class JokuConfig:
    device: DeviceRecord

    def __init__(self, device: DeviceRecord):
        self.device = device

    def to_jsonable(self) -> JsonableDict:
        return { "device": self.device.to_jsonable() }

    @classmethod
    def from_jsonable(cls, data: Any) -> JokuConfig:
        if not isinstance(data, dict):
            raise ConfigError(f"Config: Expected a JSON object, got {type(data).__name__}")
        device = data.get("device")
        if not isinstance(device, dict):
            raise ConfigError("Config: Missing 'device' object")
        name = device.get("name")
        addr = device.get("addr")
        if not isinstance(name, str) or not isinstance(addr, str):
            raise ConfigError("Config: 'device' must have string 'name' and 'addr' properties")
        return cls(DeviceRecord(name=name, address=_parse_addr(addr)))

def load_config(path: Optional[str]=None) -> JokuConfig:
    if path is None:
        path = default_config_path()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"No device configured ({path} does not exist); run 'joku discover' first") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    return JokuConfig.from_jsonable(data)

def save_config(config: JokuConfig, path: Optional[str]=None) -> str:
    """Write config to path (or the default location), creating directories as needed.
       Returns the path written."""
    if path is None:
        path = default_config_path()
    dirname = os.path.dirname(path)
    if dirname != '':
        os.makedirs(dirname, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_jsonable(), f, indent=2, sort_keys=True)
        f.write('\n')
    logger.debug(f"Saved config to {path}")
    return path
