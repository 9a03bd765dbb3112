"""
Unit tests for the egress policy.

Tests cover:
- Allow-list matching (exact and *.domain)
- Private, internal and metadata host blocking
- URL validation
- enforce() error classes
- The DNS rebinding guard with a fake resolver
"""

import socket

import pytest

from apitools.errors import (
    DnsResolutionError,
    HostNotAllowedError,
    InvalidUrlError,
    PrivateHostBlockedError,
)
from apitools.policy.egress import EgressPolicy, host_matches, is_private_host, is_private_ip


class TestHostMatches:
    """Tests for allow-list pattern matching."""

    @pytest.mark.parametrize(
        "hostname,pattern,expected",
        [
            ("api.example.com", "api.example.com", True),
            ("API.Example.com", "api.example.com", True),
            ("api.example.com.", "api.example.com", True),
            ("api.example.com", "*.example.com", True),
            ("a.b.example.com", "*.example.com", True),
            ("example.com", "*.example.com", True),
            ("evilexample.com", "*.example.com", False),
            ("example.com.evil.net", "*.example.com", False),
            ("other.com", "api.example.com", False),
            ("sub.api.example.com", "api.example.com", False),
        ],
    )
    def test_matching(self, hostname: str, pattern: str, expected: bool) -> None:
        assert host_matches(hostname, pattern) is expected


class TestPrivateHosts:
    """Tests for private host detection."""

    @pytest.mark.parametrize(
        "host",
        [
            "localhost",
            "LOCALHOST",
            "app.localhost",
            "127.0.0.1",
            "127.1.2.3",
            "10.0.0.1",
            "172.16.0.1",
            "172.31.255.255",
            "192.168.1.1",
            "169.254.169.254",
            "0.0.0.0",
            "printer.local",
            "db.internal",
            "metadata.google.internal",
            "metadata",
            "100.100.100.200",
            "100.64.0.1",
            "::1",
            "fd00:ec2::254",
            "fe80::1",
            "::ffff:127.0.0.1",
            "127.1",
            "2130706433",
            "0x7f.0.0.1",
            "",
        ],
    )
    def test_private(self, host: str) -> None:
        assert is_private_host(host) is True

    @pytest.mark.parametrize(
        "host",
        ["api.example.com", "8.8.8.8", "172.32.0.1", "192.169.0.1", "2606:4700:4700::1111", "local.example.com"],
    )
    def test_public(self, host: str) -> None:
        assert is_private_host(host) is False

    def test_is_private_ip_ignores_names(self) -> None:
        assert is_private_ip("example.com") is False


class TestEvaluate:
    """Tests for EgressPolicy.evaluate."""

    def test_allowed_exact(self) -> None:
        decision = EgressPolicy(["api.example.com"]).evaluate("https://api.example.com/v1/items?q=1")
        assert decision.allowed is True
        assert decision.hostname == "api.example.com"
        assert decision.rule_matched == "allowed_hosts[api.example.com]"

    def test_allowed_wildcard(self) -> None:
        decision = EgressPolicy(["*.slack.com"]).evaluate("https://hooks.slack.com/services/x")
        assert decision.allowed is True

    def test_port_does_not_affect_host(self) -> None:
        assert EgressPolicy(["api.example.com"]).evaluate("https://api.example.com:8443/x").allowed

    def test_not_in_allow_list(self) -> None:
        decision = EgressPolicy(["api.example.com"]).evaluate("https://evil.com/steal")
        assert decision.allowed is False
        assert decision.rule_matched == "allowed_hosts"
        assert "evil.com" in decision.reason
        assert "api.example.com" in decision.reason

    def test_private_host_denied_even_when_allowed(self) -> None:
        """Private hosts are blocked unconditionally."""
        decision = EgressPolicy(["localhost"]).evaluate("http://localhost:8080/admin")
        assert decision.allowed is False
        assert decision.rule_matched == "deny_private_hosts"
        assert decision.reason == "Blocked: requests to private/internal hosts not allowed (localhost)"

    def test_metadata_denied(self) -> None:
        decision = EgressPolicy(["169.254.169.254"]).evaluate("http://169.254.169.254/latest/meta-data")
        assert decision.rule_matched == "deny_private_hosts"

    def test_ipv6_literal_denied(self) -> None:
        decision = EgressPolicy(["api.example.com"]).evaluate("http://[::1]/")
        assert decision.rule_matched == "deny_private_hosts"

    @pytest.mark.parametrize(
        "url",
        ["not a url", "/relative/path", "ftp://api.example.com/file", "file:///etc/passwd", "http://", "http://999.1.1.1/"],
    )
    def test_invalid_urls(self, url: str) -> None:
        decision = EgressPolicy(["api.example.com"]).evaluate(url)
        assert decision.allowed is False
        assert decision.rule_matched == "invalid_url"


class TestEnforce:
    """Tests for EgressPolicy.enforce."""

    def test_returns_hostname(self) -> None:
        assert EgressPolicy(["api.example.com"]).enforce("https://API.example.com/x") == "api.example.com"

    def test_invalid_url_error(self) -> None:
        with pytest.raises(InvalidUrlError):
            EgressPolicy(["api.example.com"]).enforce("ftp://api.example.com")

    def test_private_host_error(self) -> None:
        with pytest.raises(PrivateHostBlockedError) as exc_info:
            EgressPolicy(["api.example.com"]).enforce("http://10.0.0.1/")
        assert exc_info.value.hostname == "10.0.0.1"
        assert exc_info.value.rule == "deny_private_hosts"

    def test_host_not_allowed_error(self) -> None:
        with pytest.raises(HostNotAllowedError) as exc_info:
            EgressPolicy(["api.example.com"]).enforce("https://evil.com/")
        assert exc_info.value.message == "Blocked: host 'evil.com' not in allowed_hosts [api.example.com]"
        assert exc_info.value.allowed_hosts == ["api.example.com"]


class TestVerifyResolution:
    """Tests for the DNS rebinding guard."""

    def test_public_addresses_pass(self) -> None:
        policy = EgressPolicy(["api.example.com"], resolver=lambda host: ["93.184.216.34"])
        assert policy.verify_resolution("https://api.example.com", "api.example.com") == ["93.184.216.34"]

    def test_private_address_blocked(self) -> None:
        policy = EgressPolicy(["api.example.com"], resolver=lambda host: ["93.184.216.34", "10.1.2.3"])
        with pytest.raises(PrivateHostBlockedError) as exc_info:
            policy.verify_resolution("https://api.example.com", "api.example.com")
        assert exc_info.value.rule == "dns_rebinding"
        assert "10.1.2.3" in exc_info.value.message

    def test_resolution_failure(self) -> None:
        def _fail(host: str) -> list[str]:
            raise socket.gaierror("Name or service not known")

        policy = EgressPolicy(["api.example.com"], resolver=_fail)
        with pytest.raises(DnsResolutionError) as exc_info:
            policy.verify_resolution("https://api.example.com", "api.example.com")
        assert "Name or service not known" in exc_info.value.message

    def test_no_addresses(self) -> None:
        policy = EgressPolicy(["api.example.com"], resolver=lambda host: [])
        with pytest.raises(DnsResolutionError):
            policy.verify_resolution("https://api.example.com", "api.example.com")
