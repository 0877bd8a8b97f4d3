#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DiscoveryEngine -- A blocking SSDP client that can:

  1. Send an M-SEARCH request for Sonos players to the SSDP multicast address (239.255.255.250:1900)
  2. Receive unicast replies and collect the distinct sender IP addresses
  3. Stop as soon as enough devices have answered, or when the timeout has elapsed
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
import socket
import time
import datetime
from contextlib import closing
from enum import Enum

from sonos_discovery.internal_types import *
from .pkg_logging import logger
from .constants import (
    SSDP_MULTICAST_ADDRESS,
    SSDP_PORT,
    SONOS_SEARCH_TARGET,
    DEFAULT_TIMEOUT,
    DEFAULT_MX,
    UNBOUNDED_DEVICE_COUNT,
    MULTICAST_TTL,
    RECV_BUFFER_SIZE,
  )
from .exceptions import SetupError, MalformedReplyError, EngineReuseError
from .search_request import SearchRequestBuilder
from .ssdp_message import SsdpMessage
from .util import sender_ip_address

SocketFactory = Callable[[int, int, int], socket.socket]
ReplyHandler = Callable[['SsdpReplyInfo'], None]

@dataclass(frozen=True)
class DiscoveryConfig:
    """Settings for a single discovery run."""

    timeout: float = DEFAULT_TIMEOUT
    """The amount of time (in seconds) to listen for replies."""

    device_count: int = UNBOUNDED_DEVICE_COUNT
    """Stop as soon as this many distinct devices have replied. Defaults to no limit."""

    mx: int = DEFAULT_MX
    """The MX value sent in the request. Clamped to the timeout when the request is built."""

    search_target: str = SONOS_SEARCH_TARGET
    """The ST value sent in the request."""

    interface_addr: Optional[str] = None
    """Local IPv4 address of the interface to send from. If None, the OS chooses."""

    sonos_only: bool = False
    """If True, only replies whose headers identify a Sonos player are accepted. Otherwise
       any host that answers the search is accepted."""

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"timeout must not be negative: {self.timeout}")
        if self.device_count < 0:
            raise ValueError(f"device_count must not be negative: {self.device_count}")
        if self.mx < 0:
            raise ValueError(f"mx must not be negative: {self.mx}")

    def with_bounds(self, timeout: Optional[float]=None, device_count: Optional[int]=None) -> DiscoveryConfig:
        """Returns a copy with timeout and/or device_count replaced. None leaves a value unchanged."""
        changes: Dict[str, Any] = {}
        if timeout is not None:
            changes['timeout'] = timeout
        if device_count is not None:
            changes['device_count'] = device_count
        if len(changes) == 0:
            return self
        return dataclasses.replace(self, **changes)

    @property
    def effective_mx(self) -> int:
        """The MX value to advertise. Never larger than the whole-second timeout, but at least 1
           (the UPnP minimum) unless mx itself is 0."""
        return min(self.mx, max(1, int(self.timeout)))


class DiscoveryState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    LISTENING = "listening"
    DONE = "done"


class SsdpReplyInfo:
    src_addr: HostAndPort
    """The source address of the reply"""

    address: DiscoveredAddress
    """The sender IP address; the identity of the device"""

    message: Optional[SsdpMessage]
    """The parsed reply, or None if the payload was not inspected"""

    raw_data: bytes
    """The raw reply datagram"""

    monotonic_time: float
    """The local time (in seconds) since an arbitrary point in the past at which
       the reply was received, as returned by time.monotonic()."""

    utc_time: datetime.datetime
    """The UTC time at which the reply was received."""

    def __init__(
            self,
            src_addr: HostAndPort,
            address: DiscoveredAddress,
            raw_data: bytes,
            message: Optional[SsdpMessage]=None,
          ) -> None:
        self.src_addr = src_addr
        self.address = address
        self.raw_data = raw_data
        self.message = message
        self.monotonic_time = time.monotonic()
        self.utc_time = datetime.datetime.now(datetime.timezone.utc)

    def __str__(self) -> str:
        return f"SsdpReplyInfo({self.address}, src_addr={self.src_addr})"

    def __repr__(self) -> str:
        return str(self)


class DiscoveryEngine:
    """
    A single-use SSDP discovery run.

    Usage:
        devices = DiscoveryEngine().start(timeout=3, device_count=2)

    start() opens a UDP socket, sends one M-SEARCH request, and collects the IP addresses
    of the hosts that reply. It returns when device_count distinct hosts have replied or
    when timeout seconds have elapsed, whichever comes first. The socket is closed before
    start() returns or raises. An engine may only be started once.
    """

    config: DiscoveryConfig
    socket_factory: SocketFactory
    reply_handler: Optional[ReplyHandler] = None
    multicast_address: str = SSDP_MULTICAST_ADDRESS
    multicast_port: int = SSDP_PORT

    state: DiscoveryState = DiscoveryState.IDLE

    def __init__(
            self,
            config: Optional[DiscoveryConfig]=None,
            socket_factory: Optional[SocketFactory]=None,
            reply_handler: Optional[ReplyHandler]=None,
            multicast_address: str=SSDP_MULTICAST_ADDRESS,
            multicast_port: int=SSDP_PORT,
          ) -> None:
        """Create a discovery engine. No network resources are acquired until start().

        Parameters:
            config:            The default settings for the run. Defaults to DiscoveryConfig().
            socket_factory:    Called as socket_factory(family, type, proto) to create the
                                  UDP socket. Defaults to socket.socket.
            reply_handler:     If provided, called with an SsdpReplyInfo for each newly
                                  discovered device, as it is discovered.
            multicast_address: The address the search request is sent to.
            multicast_port:    The port the search request is sent to.
        """
        self.config = DiscoveryConfig() if config is None else config
        self.socket_factory = socket.socket if socket_factory is None else socket_factory
        self.reply_handler = reply_handler
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port

    def start(self, timeout: Optional[float]=None, device_count: Optional[int]=None) -> Set[DiscoveredAddress]:
        """Run discovery and return the set of distinct IP addresses that replied.

        Parameters:
            timeout:      Seconds to listen for replies. None uses the config value (default 5).
            device_count: Stop once this many distinct devices have replied. None uses the
                             config value (default unlimited).

        Raises SetupError if the socket cannot be created or the request cannot be sent,
        and EngineReuseError if the engine has already been started.
        """
        if self.state != DiscoveryState.IDLE:
            raise EngineReuseError("A DiscoveryEngine can only be started once")
        start_time = time.monotonic()
        config = self.config.with_bounds(timeout, device_count)
        devices: Set[DiscoveredAddress] = set()
        try:
            if config.device_count == 0 or config.timeout <= 0:
                logger.debug(f"Nothing to discover: timeout={config.timeout}, device_count={config.device_count}")
                return devices
            request = SearchRequestBuilder(
                search_target=config.search_target,
                mx=config.effective_mx,
                multicast_address=self.multicast_address,
                multicast_port=self.multicast_port,
              ).build()
            self.state = DiscoveryState.SENDING
            with closing(self._open_socket(config)) as sock:
                self._send_search(sock, request)
                self.state = DiscoveryState.LISTENING
                self._collect_replies(sock, config, start_time, devices)
        finally:
            self.state = DiscoveryState.DONE
        logger.debug(f"Discovery finished after {time.monotonic() - start_time:.3f}s with {len(devices)} device(s)")
        return devices

    def _open_socket(self, config: DiscoveryConfig) -> socket.socket:
        try:
            sock = self.socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            raise SetupError(f"Unable to create UDP socket: {e}") from e
        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, MULTICAST_TTL)
            if config.interface_addr is not None:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(config.interface_addr))
            sock.bind((config.interface_addr or '', 0))
        except OSError as e:
            sock.close()
            raise SetupError(f"Unable to set up UDP socket on interface {config.interface_addr or 'default'}: {e}") from e
        return sock

    def _send_search(self, sock: socket.socket, request: bytes) -> None:
        addr = (self.multicast_address, self.multicast_port)
        logger.debug(f"Sending M-SEARCH to {addr}: {request!r}")
        try:
            sock.sendto(request, addr)
        except OSError as e:
            raise SetupError(f"Unable to send search request to {addr[0]}:{addr[1]}: {e}") from e

    def _collect_replies(
            self,
            sock: socket.socket,
            config: DiscoveryConfig,
            start_time: float,
            devices: Set[DiscoveredAddress],
          ) -> None:
        while len(devices) < config.device_count:
            remaining_time = config.timeout - (time.monotonic() - start_time)
            if remaining_time <= 0.0:
                break
            sock.settimeout(remaining_time)
            try:
                data, src_addr = sock.recvfrom(RECV_BUFFER_SIZE)
            except socket.timeout:
                break
            except OSError as e:
                logger.info(f"Error receiving SSDP reply, ending discovery: {e}")
                break
            try:
                info = self._parse_reply(config, data, src_addr)
            except MalformedReplyError as e:
                logger.debug(f"Discarding reply from {src_addr}: {e}")
                continue
            if info is None or info.address in devices:
                continue
            devices.add(info.address)
            logger.debug(f"Discovered device {info.address} ({len(devices)} so far)")
            self._notify(info)

    def _parse_reply(self, config: DiscoveryConfig, data: bytes, src_addr: Any) -> Optional[SsdpReplyInfo]:
        """Returns an SsdpReplyInfo for an acceptable reply, or None if the reply does not
           come from a Sonos player and config.sonos_only is set.

           Raises MalformedReplyError if the reply cannot be interpreted."""
        try:
            host_and_port: HostAndPort = (str(src_addr[0]), int(src_addr[1]))
        except (TypeError, IndexError, ValueError) as e:
            raise MalformedReplyError(f"Unusable sender address {src_addr!r}") from e
        address = sender_ip_address(host_and_port)
        message: Optional[SsdpMessage] = None
        if config.sonos_only:
            message = SsdpMessage(raw_data=data)
            if not message.is_sonos:
                logger.debug(f"Ignoring non-Sonos reply from {address}: {message}")
                return None
        return SsdpReplyInfo(host_and_port, address, data, message)

    def _notify(self, info: SsdpReplyInfo) -> None:
        if self.reply_handler is None:
            return
        try:
            self.reply_handler(info)
        except Exception as e:
            logger.warning(f"Reply handler raised exception processing {info}: {e}")


def discover(
        timeout: Optional[float]=None,
        device_count: Optional[int]=None,
        **kwargs: Any
      ) -> Set[DiscoveredAddress]:
    """Discover Sonos players with a fresh DiscoveryEngine.

    Parameters:
        timeout:      Seconds to listen for replies. Defaults to 5.
        device_count: Stop once this many distinct devices have replied. Defaults to no limit.
        kwargs:       Any other DiscoveryConfig field; e.g., interface_addr, sonos_only.
    """
    config = DiscoveryConfig(**kwargs).with_bounds(timeout, device_count)
    return DiscoveryEngine(config).start()
