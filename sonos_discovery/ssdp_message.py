#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Abstraction of an HTTP-over-UDP message used in the SSDP protocol.
"""

from __future__ import annotations

import re

from sonos_discovery.internal_types import *
from .exceptions import MalformedReplyError
from .constants import SONOS_SEARCH_TARGET

from .util import (
    CaseInsensitiveDict,
    split_bytes_at_lf_or_crlf,
    parse_http_headers,
    encode_http_header,
)

class SsdpMessage(MutableMapping[str, str]):
    """Wrapper for a raw SSDP message.

    This class provides parsing and formatting of the HTTP-like packets, a dict-like
    interface to the headers, and a few convenient properties for the headers used
    in M-SEARCH requests and their replies.

    Unlike HTTP on TCP, header order is preserved when the message is formatted, so
    a request built from headers added in a given order goes out on the wire in that order.
    """

    _response_statement_re = re.compile(r'^HTTP/(?P<version_major>[0-9]+)\.(?P<version_minor>[0-9]+) +(?P<status_code>[0-9]{3})(?: +(?P<status>.*[^ ]))? *$')

    _raw_data: bytes
    """The raw UDP datagram contents"""

    _statement_line: str
    """The first line of the message; e.g., "M-SEARCH * HTTP/1.1", "HTTP/1.1 200 OK", etc."""

    _headers: CaseInsensitiveDict[str]
    """The headers as a CaseInsensitiveDict[str]. Quoted strings are not unquoted."""

    _body: bytes
    """The body of the message, if any. If there is no body, b'' is returned."""

    def __init__(
            self,
            statement: Optional[str]=None,
            headers: Optional[Mapping[str, Optional[str]]]=None,
            body: Optional[bytes]=None,
            raw_data: Optional[bytes]=None,
          ):
        self._headers = CaseInsensitiveDict()
        if raw_data is None:
            if statement is None:
                raise ValueError("Either statement or raw_data must be provided")
            assert isinstance(statement, str)
            self._statement_line = statement
            self._body = b'' if body is None else body
            if not headers is None:
                for name, value in headers.items():
                    self._set_header_no_rebuild(name, value)
            self._rebuild_raw_data()
        else:
            assert isinstance(raw_data, bytes)
            if not (statement is None and headers is None and body is None):
                raise ValueError("If raw_data is provided, statement, headers, and body must be None")
            self.raw_data = raw_data

    def __str__(self) -> str:
        return f"SsdpMessage('{self._statement_line}', headers={dict(self._headers)}, body={self._body!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_data(self) -> bytes:
        """The raw UDP datagram contents"""
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        """Set the raw UDP datagram contents, and recompute headers.

        Raises MalformedReplyError if the data is not a parseable HTTP-style message.
        """
        assert isinstance(value, bytes)
        statement_and_remainder = split_bytes_at_lf_or_crlf(value, 1)
        try:
            statement_line = statement_and_remainder[0].decode('utf-8').strip()
            headers_and_body = b'' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
            headers, body = parse_http_headers(headers_and_body)
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedReplyError(f"Unparseable SSDP message: {value!r}") from e
        if statement_line == '':
            raise MalformedReplyError(f"SSDP message has no statement line: {value!r}")
        self._raw_data = value
        self._statement_line = statement_line
        self._headers = headers
        self._body = body

    @property
    def statement_line(self) -> str:
        """The first line of the message; e.g., "M-SEARCH * HTTP/1.1", "HTTP/1.1 200 OK", etc."""
        return self._statement_line

    @statement_line.setter
    def statement_line(self, value: str) -> None:
        assert isinstance(value, str)
        self._statement_line = value
        self._rebuild_raw_data()

    @property
    def body(self) -> bytes:
        """The body of the message, if any. If there is no body, b'' is returned."""
        return self._body

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """The headers as a CaseInsensitiveDict[str]. Quoted strings are not unquoted."""
        return self._headers

    @property
    def status_code(self) -> Optional[int]:
        """The status code of a reply (e.g., 200), or None if this is not a reply."""
        m = self._response_statement_re.match(self._statement_line)
        if m is None:
            return None
        return int(m.group('status_code'))

    @property
    def is_response(self) -> bool:
        return self.status_code is not None

    def set_header(self, name: str, value: Optional[str]) -> None:
        """Set a header value. If value is None, the header is removed.

           `name` is case-insensitive, but the case of the header name is preserved
           and updated to reflect the provided value.

           The raw packet byte string is updated to reflect the new header value.
        """
        self._set_header_no_rebuild(name, value)
        self._rebuild_raw_data()

    def del_header(self, name: str) -> None:
        """Delete a header if it exists. If the header does not exist, this is a no-op."""
        self._headers.pop(name, None)
        self._rebuild_raw_data()

    def _get_str_header(self, name: str) -> Optional[str]:
        return self._headers.get(name)

    @property
    def hdr_host(self) -> Optional[str]:
        """The "HOST" header, or None"""
        return self._get_str_header("HOST")

    @property
    def hdr_man(self) -> Optional[str]:
        """The "MAN" header, including its quotes; e.g., '"ssdp:discover"'"""
        return self._get_str_header("MAN")

    @property
    def hdr_mx(self) -> Optional[int]:
        """Returns the "MX" header as an int.

        Returns None if there is no valid MX header.
        """
        value = self._get_str_header("MX")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def hdr_st(self) -> Optional[str]:
        """The "ST" (search target) header, or None"""
        return self._get_str_header("ST")

    @property
    def hdr_usn(self) -> Optional[str]:
        """The "USN" (unique service name) header, or None"""
        return self._get_str_header("USN")

    @property
    def hdr_location(self) -> Optional[str]:
        """The "LOCATION" header (URL of the device description), or None"""
        return self._get_str_header("LOCATION")

    @property
    def hdr_server(self) -> Optional[str]:
        """The "SERVER" header, or None"""
        return self._get_str_header("SERVER")

    @property
    def is_sonos(self) -> bool:
        """True if the headers identify the sender as a Sonos player.

        Sonos players answer with ST set to the ZonePlayer URN and a SERVER header
        that names Sonos; either one is accepted.
        """
        if self.hdr_st == SONOS_SEARCH_TARGET:
            return True
        for value in (self.hdr_usn, self.hdr_server):
            if value is not None and ('Sonos' in value or SONOS_SEARCH_TARGET in value):
                return True
        return False

    def __setitem__(self, key: str, value: Optional[str]) -> None:
        self.set_header(key, value)

    def __getitem__(self, key: str) -> str:
        return self._headers[key]

    def __delitem__(self, key: str) -> None:
        if key not in self._headers:
            raise KeyError(key)
        self.del_header(key)

    def __iter__(self):
        return iter(self._headers)

    def __len__(self):
        return len(self._headers)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpMessage):
            return False
        return (self._statement_line == other._statement_line and
                self._headers == other._headers and
                self._body == other._body)

    def _rebuild_raw_data(self) -> None:
        """Rebuild the raw data from the statement line, headers, and body."""
        raw_data = self.statement_line.encode('utf-8') + b'\r\n'
        for k, v in self._headers.items():
            raw_data += encode_http_header(k, v)
        raw_data += b'\r\n'
        raw_data += self.body
        self._raw_data = raw_data

    def _set_header_no_rebuild(self, name: str, value: Optional[str]) -> None:
        if value is None:
            self._headers.pop(name, None)
        else:
            assert isinstance(value, str)
            # CaseInsensitiveDict keeps the position of an existing key but takes the new spelling
            self._headers[name] = value
