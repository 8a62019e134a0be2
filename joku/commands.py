#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The closed set of commands that can be sent to a Roku device.

A Command is an immutable tagged value: a CommandKind plus, for the two
parameterized kinds, a SearchParams or LaunchParams payload. Turning a
Command into a wire path is the job of joku.encoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .internal_types import *

class CommandKind(Enum):
    """The kind of a Command. Keypress kinds have the ECP key name as their value."""
    HOME = "Home"
    PLAY = "Play"
    PAUSE = "Pause"
    SELECT = "Select"
    LEFT = "Left"
    RIGHT = "Right"
    DOWN = "Down"
    UP = "Up"
    BACK = "Back"
    VOLUME_UP = "VolumeUp"
    VOLUME_DOWN = "VolumeDown"
    MUTE = "Mute"
    POWER_OFF = "PowerOff"
    DEVICE_INFO = "device-info"
    LIST_APPS = "apps"
    DISCOVER = "discover"
    SEARCH = "search"
    LAUNCH = "launch"

    @property
    def is_keypress(self) -> bool:
        return self in KEYPRESS_KINDS

KEYPRESS_KINDS: Tuple[CommandKind, ...] = (
    CommandKind.HOME,
    CommandKind.PLAY,
    CommandKind.PAUSE,
    CommandKind.SELECT,
    CommandKind.LEFT,
    CommandKind.RIGHT,
    CommandKind.DOWN,
    CommandKind.UP,
    CommandKind.BACK,
    CommandKind.VOLUME_UP,
    CommandKind.VOLUME_DOWN,
    CommandKind.MUTE,
    CommandKind.POWER_OFF,
  )
"""The commands that are sent as a single remote-control key press."""

@dataclass(frozen=True)
class SearchParams:
    """Parameters for the ECP search/browse request. Only keyword is required;
       an optional field that is None is left out of the request entirely."""
    keyword: str
    type: Optional[str] = None
    title: Optional[str] = None
    season: Optional[str] = None
    launch: Optional[bool] = None
    provider: Optional[str] = None
    provider_id: Optional[str] = None

@dataclass(frozen=True)
class LaunchParams:
    """Parameters for launching an installed app, optionally deep-linking to content."""
    app: str
    """The app name as the user typed it; matched case-insensitively against the device's app list."""

    link: Optional[str] = None
    """A URL from which a content identifier is extracted (e.g. a YouTube watch link)."""

@dataclass(frozen=True)
class Command:
    kind: CommandKind
    search: Optional[SearchParams] = None
    launch: Optional[LaunchParams] = None

    def __post_init__(self) -> None:
        if (self.kind == CommandKind.SEARCH) != (not self.search is None):
            raise TypeError(f"Command {self.kind.name} requires search params exactly when kind is SEARCH")
        if (self.kind == CommandKind.LAUNCH) != (not self.launch is None):
            raise TypeError(f"Command {self.kind.name} requires launch params exactly when kind is LAUNCH")

    @classmethod
    def of(cls, kind: CommandKind) -> Command:
        """Create a command that takes no parameters."""
        return cls(kind)

    @classmethod
    def search_for(cls, keyword: str, **kwargs: Any) -> Command:
        return cls(CommandKind.SEARCH, search=SearchParams(keyword, **kwargs))

    @classmethod
    def launch_app(cls, app: str, link: Optional[str]=None) -> Command:
        return cls(CommandKind.LAUNCH, launch=LaunchParams(app, link))

    def __str__(self) -> str:
        if not self.search is None:
            return f"Search({self.search.keyword!r})"
        if not self.launch is None:
            return f"Launch({self.launch.app!r})"
        return self.kind.name
