#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Type hints used throughout this package
"""

from __future__ import annotations

from typing import (
    Any, Dict, List, Optional, Set, Tuple, Union, Callable, Iterable, Iterator,
    Mapping, MutableMapping, Sequence, Type, TypeVar, Generator, ContextManager,
  )

from types import TracebackType
from ipaddress import IPv4Address, IPv6Address

from typing_extensions import Self, SupportsIndex

Jsonable = Union[Dict[str, 'Jsonable'], List['Jsonable'], str, int, float, bool, None]
"""A type that can be serialized to JSON"""

JsonableDict = Dict[str, Jsonable]
"""A JSON object"""

HostAndPort = Tuple[str, int]
"""A (host, port) tuple as returned by socket.recvfrom()"""

DiscoveredAddress = Union[IPv4Address, IPv6Address]
"""The identity of a discovered device; the sender IP address of its reply"""
