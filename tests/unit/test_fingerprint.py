"""Tests for device fingerprinting."""

import hashlib

from tempshare.security.fingerprint import (
    FINGERPRINT_HEADERS,
    Fingerprinter,
    RequestTraits,
    generate_device_fingerprint,
    resolve_client_address,
)

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "DNT": "1",
}


class TestRequestTraits:
    """Tests for RequestTraits."""

    def test_header_names_are_lowercased(self) -> None:
        """Test header lookup is case insensitive."""
        traits = RequestTraits("10.0.0.1", {"User-Agent": "curl/8.0"})
        assert traits.header("user-agent") == "curl/8.0"

    def test_empty_header_reads_as_missing(self) -> None:
        """Test empty header values are treated as absent."""
        traits = RequestTraits("10.0.0.1", {"dnt": ""})
        assert traits.header("dnt") is None


class TestGenerateDeviceFingerprint:
    """Tests for generate_device_fingerprint."""

    def test_is_deterministic(self) -> None:
        """Test identical requests produce the same fingerprint."""
        a = RequestTraits("198.51.100.4", BROWSER_HEADERS)
        b = RequestTraits("198.51.100.4", dict(BROWSER_HEADERS))
        assert generate_device_fingerprint(a) == generate_device_fingerprint(b)

    def test_is_sha256_hex(self) -> None:
        """Test fingerprint is a 64 character hex digest."""
        fingerprint = generate_device_fingerprint(RequestTraits("198.51.100.4", BROWSER_HEADERS))
        assert len(fingerprint) == 64
        int(fingerprint, 16)

    def test_different_user_agent_changes_fingerprint(self) -> None:
        """Test a single header difference yields a different fingerprint."""
        other = dict(BROWSER_HEADERS, **{"User-Agent": "curl/8.0"})
        a = generate_device_fingerprint(RequestTraits("198.51.100.4", BROWSER_HEADERS))
        b = generate_device_fingerprint(RequestTraits("198.51.100.4", other))
        assert a != b

    def test_missing_components_use_unknown(self) -> None:
        """Test a request with nothing known still fingerprints."""
        expected = hashlib.sha256(
            "|".join(["unknown"] * (1 + len(FINGERPRINT_HEADERS))).encode()
        ).hexdigest()
        assert generate_device_fingerprint(RequestTraits(None, {})) == expected

    def test_unrelated_headers_are_ignored(self) -> None:
        """Test headers outside the fingerprint set do not matter."""
        a = generate_device_fingerprint(RequestTraits("198.51.100.4", BROWSER_HEADERS))
        b = generate_device_fingerprint(
            RequestTraits("198.51.100.4", dict(BROWSER_HEADERS, **{"X-Trace": "abc"}))
        )
        assert a == b


class TestResolveClientAddress:
    """Tests for resolve_client_address."""

    def test_first_forwarded_for_entry_wins(self) -> None:
        """Test the originating client is taken from X-Forwarded-For."""
        traits = RequestTraits(
            "10.0.0.2", {"X-Forwarded-For": "203.0.113.7, 10.0.0.9", "X-Real-IP": "192.0.2.1"}
        )
        assert resolve_client_address(traits) == "203.0.113.7"

    def test_falls_through_header_order(self) -> None:
        """Test later headers are used when earlier ones are absent."""
        traits = RequestTraits("10.0.0.2", {"CF-Connecting-IP": "192.0.2.44"})
        assert resolve_client_address(traits) == "192.0.2.44"

    def test_headers_ignored_when_not_trusted(self) -> None:
        """Test forwarding headers are ignored when proxies are not trusted."""
        traits = RequestTraits("10.0.0.2", {"X-Forwarded-For": "203.0.113.7"})
        assert resolve_client_address(traits, trust_proxy_headers=False) == "10.0.0.2"

    def test_headers_ignored_from_unlisted_peer(self) -> None:
        """Test only allowlisted peers may set the client address."""
        traits = RequestTraits("198.51.100.99", {"X-Forwarded-For": "203.0.113.7"})
        assert resolve_client_address(traits, trusted_proxies=["10.0.0.2"]) == "198.51.100.99"

    def test_headers_honoured_from_listed_peer(self) -> None:
        """Test an allowlisted proxy's header is used."""
        traits = RequestTraits("10.0.0.2", {"X-Forwarded-For": "203.0.113.7"})
        assert resolve_client_address(traits, trusted_proxies=["10.0.0.2"]) == "203.0.113.7"

    def test_unknown_without_any_address(self) -> None:
        """Test unknown is returned when nothing identifies the client."""
        assert resolve_client_address(RequestTraits(None, {})) == "unknown"


class TestFingerprinter:
    """Tests for Fingerprinter rate limit keys."""

    def test_key_combines_address_and_prefix(self) -> None:
        """Test the key format is address:12-char fingerprint prefix."""
        traits = RequestTraits("198.51.100.4", BROWSER_HEADERS)
        key = Fingerprinter().rate_limit_key(traits)
        address, prefix = key.rsplit(":", 1)
        assert address == "198.51.100.4"
        assert prefix == generate_device_fingerprint(traits)[:12]

    def test_devices_behind_same_address_differ(self) -> None:
        """Test two browsers on one NAT address get distinct keys."""
        fingerprinter = Fingerprinter()
        a = fingerprinter.rate_limit_key(RequestTraits("198.51.100.4", BROWSER_HEADERS))
        b = fingerprinter.rate_limit_key(
            RequestTraits("198.51.100.4", dict(BROWSER_HEADERS, **{"User-Agent": "Safari/17"}))
        )
        assert a != b
