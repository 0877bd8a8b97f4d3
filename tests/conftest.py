from __future__ import annotations

import socket
import time

import pytest

from sonos_discovery.internal_types import *

SONOS_REPLY = (
    b'HTTP/1.1 200 OK\r\n'
    b'CACHE-CONTROL: max-age = 1800\r\n'
    b'EXT:\r\n'
    b'LOCATION: http://192.168.1.20:1400/xml/device_description.xml\r\n'
    b'SERVER: Linux UPnP/1.0 Sonos/70.3-35220 (ZPS1)\r\n'
    b'ST: urn:schemas-upnp-org:device:ZonePlayer:1\r\n'
    b'USN: uuid:RINCON_000E58A0123401400::urn:schemas-upnp-org:device:ZonePlayer:1\r\n'
    b'X-RINCON-HOUSEHOLD: Sonos_abcdefghijklmnop\r\n'
    b'\r\n'
  )

ROUTER_REPLY = (
    b'HTTP/1.1 200 OK\r\n'
    b'CACHE-CONTROL: max-age=120\r\n'
    b'LOCATION: http://192.168.1.1:5000/rootDesc.xml\r\n'
    b'SERVER: OpenWRT/OpenWrt UPnP/1.1 MiniUPnPd/2.2.1\r\n'
    b'ST: urn:schemas-upnp-org:device:InternetGatewayDevice:1\r\n'
    b'USN: uuid:01234567-89ab-cdef-0123-456789abcdef::urn:schemas-upnp-org:device:InternetGatewayDevice:1\r\n'
    b'\r\n'
  )

# (seconds after the search request is sent, payload or exception, sender address)
ScriptedReply = Tuple[float, Union[bytes, BaseException], Any]

class FakeSocket:
    """Stands in for a UDP socket. Replies are delivered at scripted times after sendto();
       recvfrom() blocks for at most the configured timeout like a real socket."""

    def __init__(
            self,
            replies: Iterable[ScriptedReply]=(),
            fail_on: Optional[str]=None,
          ):
        self.replies: List[ScriptedReply] = list(replies)
        self.fail_on = fail_on
        self.sockopts: List[Tuple[int, int, Any]] = []
        self.bound_addr: Optional[HostAndPort] = None
        self.sent: List[Tuple[bytes, HostAndPort]] = []
        self.timeouts: List[float] = []
        self.timeout: Optional[float] = None
        self.closed = False
        self._send_time: Optional[float] = None

    def _maybe_fail(self, op: str) -> None:
        if self.fail_on == op:
            raise OSError(f"simulated {op} failure")

    def setsockopt(self, level: int, option: int, value: Any) -> None:
        self._maybe_fail('setsockopt')
        self.sockopts.append((level, option, value))

    def bind(self, addr: HostAndPort) -> None:
        self._maybe_fail('bind')
        self.bound_addr = addr

    def sendto(self, data: bytes, addr: HostAndPort) -> int:
        self._maybe_fail('sendto')
        self.sent.append((data, addr))
        self._send_time = time.monotonic()
        return len(data)

    def settimeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout
        if timeout is not None:
            self.timeouts.append(timeout)

    def recvfrom(self, bufsize: int) -> Tuple[bytes, Any]:
        assert not self.closed
        assert self._send_time is not None
        assert self.timeout is not None and self.timeout > 0
        if len(self.replies) == 0:
            time.sleep(self.timeout)
            raise socket.timeout("timed out")
        delay, data, addr = self.replies[0]
        wait = self._send_time + delay - time.monotonic()
        if wait > self.timeout:
            time.sleep(self.timeout)
            raise socket.timeout("timed out")
        if wait > 0:
            time.sleep(wait)
        self.replies.pop(0)
        if isinstance(data, BaseException):
            raise data
        return data, addr

    def close(self) -> None:
        self.closed = True


class FakeSocketFactory:
    def __init__(self, sock: Optional[FakeSocket]=None, error: Optional[OSError]=None):
        self.sock = FakeSocket() if sock is None else sock
        self.error = error
        self.calls: List[Tuple[int, int, int]] = []

    def __call__(self, family: int, type: int, proto: int) -> FakeSocket:
        self.calls.append((family, type, proto))
        if self.error is not None:
            raise self.error
        return self.sock


@pytest.fixture
def make_socket_factory() -> Callable[..., FakeSocketFactory]:
    """Returns a function that builds a FakeSocketFactory around a FakeSocket with scripted replies."""
    def _make(replies: Iterable[ScriptedReply]=(), fail_on: Optional[str]=None, error: Optional[OSError]=None) -> FakeSocketFactory:
        return FakeSocketFactory(FakeSocket(replies, fail_on=fail_on), error=error)
    return _make

@pytest.fixture
def sonos_reply() -> bytes:
    return SONOS_REPLY

@pytest.fixture
def router_reply() -> bytes:
    return ROUTER_REPLY
