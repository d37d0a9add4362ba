# tests/test_identity.py
import pytest

from ratelimit.identity import (
    create_identity_key,
    hash_identifier,
    is_valid_ip_address,
    resolve_client_address,
    resolve_identity,
    sanitize_ip_for_logging,
)


class TestResolveClientAddress:

    def test_first_hop_of_forwarded_list(self):
        headers = {"x-forwarded-for": "203.0.113.5, 10.0.0.1, 10.0.0.2"}
        assert resolve_client_address(headers) == "203.0.113.5"

    def test_cdn_header_takes_priority(self):
        headers = {
            "x-forwarded-for": "203.0.113.5",
            "cf-connecting-ip": "198.51.100.7",
        }
        assert resolve_client_address(headers) == "198.51.100.7"

    def test_invalid_value_falls_through_to_next_header(self):
        headers = {"cf-connecting-ip": "not-an-ip", "x-real-ip": "2001:db8::1"}
        assert resolve_client_address(headers) == "2001:db8::1"

    def test_fallback_composite_when_no_address(self):
        headers = {"user-agent": "curl/8.0", "accept-language": "en-US"}
        assert resolve_client_address(headers) == "curl/8.0-en-US"

    def test_fallback_defaults_and_truncation(self):
        assert resolve_client_address({}) == "unknown-unknown"
        long_agent = {"user-agent": "x" * 300}
        assert len(resolve_client_address(long_agent)) == 100


class TestHashing:

    def test_hash_is_salted_sha256_hex(self):
        digest = hash_identifier("203.0.113.5", salt="pepper")
        assert len(digest) == 64
        assert digest != hash_identifier("203.0.113.5", salt="other")

    def test_identity_key_is_stable_prefix(self):
        key = create_identity_key("203.0.113.5", salt="pepper")
        assert len(key) == 16
        assert hash_identifier("203.0.113.5", salt="pepper").startswith(key)

    def test_resolve_identity_never_exposes_address(self):
        headers = {"x-forwarded-for": "203.0.113.5"}
        key = resolve_identity(headers, salt="pepper")
        assert key == create_identity_key("203.0.113.5", salt="pepper")
        assert "203.0.113.5" not in key
        assert key == resolve_identity(headers, salt="pepper")


@pytest.mark.parametrize("value,expected", [
    ("127.0.0.1", True),
    ("::1", True),
    ("256.1.1.1", False),
    ("hello", False),
])
def test_is_valid_ip_address(value, expected):
    assert is_valid_ip_address(value) is expected


@pytest.mark.parametrize("ip,expected", [
    ("", "unknown"),
    ("127.0.0.1", "localhost"),
    ("::1", "localhost"),
    ("203.0.113.5", "203.xxx.xxx.5"),
    ("2001:db8::1", "2001:xxxx:...:1"),
])
def test_sanitize_ip_for_logging(ip, expected):
    assert sanitize_ip_for_logging(ip) == expected
