from __future__ import annotations

import pytest

from sonos_discovery import SearchRequestBuilder, SsdpMessage

EXPECTED_REQUEST = (
    b'M-SEARCH * HTTP/1.1\r\n'
    b'HOST: 239.255.255.250:1900\r\n'
    b'MAN: "ssdp:discover"\r\n'
    b'MX: 1\r\n'
    b'ST: urn:schemas-upnp-org:device:ZonePlayer:1\r\n'
    b'\r\n'
  )

def test_default_request_is_exact():
    assert SearchRequestBuilder().build() == EXPECTED_REQUEST

def test_build_is_deterministic():
    builder = SearchRequestBuilder()
    assert builder.build() == builder.build() == SearchRequestBuilder().build()

def test_request_has_each_header_exactly_once():
    lines = SearchRequestBuilder().build().decode('ascii').split('\r\n')
    assert lines[0] == 'M-SEARCH * HTTP/1.1'
    assert lines[-2:] == ['', '']
    header_lines = lines[1:-2]
    names = [line.split(':', 1)[0] for line in header_lines]
    assert sorted(names) == ['HOST', 'MAN', 'MX', 'ST']
    values = dict(line.split(': ', 1) for line in header_lines)
    assert values == {
        'HOST': '239.255.255.250:1900',
        'MAN': '"ssdp:discover"',
        'MX': '1',
        'ST': 'urn:schemas-upnp-org:device:ZonePlayer:1',
    }

def test_request_parses_as_ssdp_message():
    msg = SsdpMessage(raw_data=SearchRequestBuilder(mx=3).build())
    assert msg.statement_line == 'M-SEARCH * HTTP/1.1'
    assert not msg.is_response
    assert msg.hdr_host == '239.255.255.250:1900'
    assert msg.hdr_man == '"ssdp:discover"'
    assert msg.hdr_mx == 3
    assert msg.hdr_st == 'urn:schemas-upnp-org:device:ZonePlayer:1'

def test_custom_search_target():
    msg = SearchRequestBuilder(search_target='ssdp:all').build_message()
    assert msg.hdr_st == 'ssdp:all'
    assert msg.raw_data.endswith(b'ST: ssdp:all\r\n\r\n')

def test_negative_mx_rejected():
    with pytest.raises(ValueError):
        SearchRequestBuilder(mx=-1)
