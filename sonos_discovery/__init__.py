# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package sonos_discovery finds Sonos speakers on the local network with the Simple Service
Discovery Protocol (SSDP).

SSDP is the discovery part of UPnP. A client multicasts an M-SEARCH request to
239.255.255.250:1900 naming the kind of device it is looking for (for Sonos players, the
search target is "urn:schemas-upnp-org:device:ZonePlayer:1"), and each matching device
answers with a unicast HTTP-style reply. The sender address of each reply identifies a device.

Usage:
    import sonos_discovery

    addresses = sonos_discovery.discover(timeout=3, device_count=2)
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict, HostAndPort, DiscoveredAddress

from .exceptions import SonosDiscoveryError, SetupError, MalformedReplyError, EngineReuseError

from .ssdp_message import SsdpMessage
from .search_request import SearchRequestBuilder
from .discovery import DiscoveryConfig, DiscoveryEngine, DiscoveryState, SsdpReplyInfo, discover
from .util import CaseInsensitiveDict
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    SONOS_SEARCH_TARGET,
    DEFAULT_TIMEOUT,
    DEFAULT_MX,
    UNBOUNDED_DEVICE_COUNT,
  )

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict', 'HostAndPort', 'DiscoveredAddress',
    'SonosDiscoveryError', 'SetupError', 'MalformedReplyError', 'EngineReuseError',
    'SsdpMessage',
    'SearchRequestBuilder',
    'DiscoveryConfig', 'DiscoveryEngine', 'DiscoveryState', 'SsdpReplyInfo', 'discover',
    'CaseInsensitiveDict',
    'SSDP_MULTICAST_ADDRESS', 'SSDP_PORT', 'SONOS_SEARCH_TARGET',
    'DEFAULT_TIMEOUT', 'DEFAULT_MX', 'UNBOUNDED_DEVICE_COUNT',
]
