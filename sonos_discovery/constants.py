# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

import sys

SSDP_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address used by SSDP for UDP multicast."""

SSDP_PORT = 1900
"""The port number used by SSDP for UDP multicast."""

SONOS_SEARCH_TARGET = "urn:schemas-upnp-org:device:ZonePlayer:1"
"""The SSDP search target (ST) advertised by Sonos ZonePlayers."""

DEFAULT_TIMEOUT = 5.0
"""The default amount of time (in seconds) to listen for replies."""

DEFAULT_MX = 1
"""The default MX value, in seconds, sent in the search request."""

UNBOUNDED_DEVICE_COUNT = sys.maxsize
"""Device count used when the caller does not ask for a limit."""

MULTICAST_TTL = 4
"""UPnP 1.0 requires a multicast TTL of 4."""

RECV_BUFFER_SIZE = 65507
"""Largest UDP payload that can be received over IPv4."""
