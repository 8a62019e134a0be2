# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address used by SSDP for UDP multicast."""

SSDP_PORT = 1900
"""The port number used by SSDP for UDP multicast."""

ECP_SEARCH_TARGET = "roku:ecp"
"""The SSDP search target (ST header) that Roku devices answer to."""

ECP_PORT = 8060
"""The TCP port that Roku devices serve the External Control Protocol on."""

DEFAULT_SEARCH_WAIT_TIME = 2.0
"""The default amount of time (in seconds) to wait for SSDP responses to come in."""

DEFAULT_PROBE_CONCURRENCY = 5
"""The default maximum number of device-info probes in flight at once during discovery."""

DEFAULT_PROBE_TIMEOUT = 2.0
"""The default timeout (in seconds) for a single device-info probe."""

DEFAULT_DISCOVERY_DEADLINE = 10.0
"""The default upper bound (in seconds) for an entire discovery call."""

DEFAULT_REQUEST_TIMEOUT = 5.0
"""The default timeout (in seconds) for a command sent to a device."""

YOUTUBE_APP_ID = "837"
"""The ECP app id of the YouTube channel."""
