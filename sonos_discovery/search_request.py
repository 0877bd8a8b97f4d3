#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SearchRequestBuilder -- builds the SSDP M-SEARCH request used to find Sonos players.
"""

from __future__ import annotations

from sonos_discovery.internal_types import *
from .constants import SSDP_MULTICAST_ADDRESS, SSDP_PORT, SONOS_SEARCH_TARGET, DEFAULT_MX
from .ssdp_message import SsdpMessage

SEARCH_STATEMENT_LINE = "M-SEARCH * HTTP/1.1"
SSDP_DISCOVER = '"ssdp:discover"'

class SearchRequestBuilder:
    """Builds the M-SEARCH request datagram:

        M-SEARCH * HTTP/1.1
        HOST: 239.255.255.250:1900
        MAN: "ssdp:discover"
        MX: 1
        ST: urn:schemas-upnp-org:device:ZonePlayer:1

    Every call to build() returns the same bytes.
    """

    search_target: str
    """The ST header; the device or service type being searched for."""

    mx: int
    """The MX header; the maximum number of seconds a responder may delay its reply."""

    multicast_address: str = SSDP_MULTICAST_ADDRESS
    multicast_port: int = SSDP_PORT

    def __init__(
            self,
            search_target: str=SONOS_SEARCH_TARGET,
            mx: int=DEFAULT_MX,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
          ) -> None:
        if mx < 0:
            raise ValueError(f"MX must not be negative: {mx}")
        self.search_target = search_target
        self.mx = mx
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port

    def build_message(self) -> SsdpMessage:
        # Header order is significant to some responders; HOST, MAN, MX, ST
        return SsdpMessage(
            SEARCH_STATEMENT_LINE,
            headers={
                "HOST": f"{self.multicast_address}:{self.multicast_port}",
                "MAN": SSDP_DISCOVER,
                "MX": str(self.mx),
                "ST": self.search_target,
              },
          )

    def build(self) -> bytes:
        """Returns the raw M-SEARCH request datagram."""
        return self.build_message().raw_data
