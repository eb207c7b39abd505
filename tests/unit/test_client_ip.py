import pytest

from accessgate.app_shell.client_ip import client_ip, is_trusted_proxy, is_valid_proxy

PROXIES = ("10.0.0.0/8", "testclient")


@pytest.mark.parametrize(
    "headers,peer,expected",
    [
        ({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "10.0.0.2", "203.0.113.7"),
        ({"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "198.51.100.4"}, "10.0.0.2", "198.51.100.4"),
        ({"cf-connecting-ip": "2001:DB8::1", "x-real-ip": "198.51.100.4"}, "10.0.0.2", "2001:db8::1"),
        ({"x-real-ip": "198.51.100.4"}, "testclient", "198.51.100.4"),
        ({}, "10.0.0.2", "10.0.0.2"),
        ({}, None, "unknown"),
    ],
)
def test_client_ip_behind_trusted_proxy(headers, peer, expected):
    assert client_ip(headers, peer, PROXIES) == expected


@pytest.mark.parametrize(
    "headers",
    [
        {"x-forwarded-for": "127.0.0.1"},
        {"cf-connecting-ip": "127.0.0.1"},
        {"x-real-ip": "::1"},
    ],
)
def test_forwarding_headers_ignored_from_untrusted_peer(headers):
    assert client_ip(headers, "203.0.113.50", PROXIES) == "203.0.113.50"
    assert client_ip(headers, "203.0.113.50") == "203.0.113.50"


def test_no_peer_ignores_headers():
    assert client_ip({"x-forwarded-for": "127.0.0.1"}, None, PROXIES) == "unknown"


@pytest.mark.parametrize(
    "peer,trusted",
    [
        ("10.1.2.3", True),
        ("11.0.0.1", False),
        ("testclient", True),
        ("", False),
    ],
)
def test_is_trusted_proxy(peer, trusted):
    assert is_trusted_proxy(peer, PROXIES) is trusted


@pytest.mark.parametrize(
    "entry,valid",
    [("10.0.0.1", True), ("10.0.0.0/8", True), ("fd00::/8", True), ("proxy.local", False)],
)
def test_is_valid_proxy(entry, valid):
    assert is_valid_proxy(entry) is valid
