"""
Egress policy for outbound tool requests.

Every URL an API tool is about to call passes through here after template
resolution and before any socket is opened.

Design Principles:
    - Fail-closed: anything unparseable or ambiguous is denied
    - Private/internal/metadata hosts are denied unconditionally, even when
      the definition lists them in allowed_hosts
    - Allow-list second: the host must match an exact name or *.domain
    - Parse with httpx.URL, the same parser that will send the request, so
      the host we check is the host we connect to

Security Note:
    This module is security-critical. Hostname checks alone cannot stop a
    public name that resolves to a private address; enable resolve_dns in
    ExecutorSettings to also check the resolved addresses.
"""

import ipaddress
import re
import socket
from collections.abc import Callable, Sequence

import httpx

from apitools.errors import (
    DnsResolutionError,
    HostNotAllowedError,
    InvalidUrlError,
    PrivateHostBlockedError,
)
from apitools.schema import EgressDecision


# Hostname patterns that always denote private or internal targets
PRIVATE_HOST_PATTERNS = [
    re.compile(r"^localhost$"),
    re.compile(r"\.localhost$"),
    re.compile(r"^127\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"^192\.168\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^0\.0\.0\.0$"),
    re.compile(r"\.local$"),
    re.compile(r"\.internal$"),
]

# Cloud metadata endpoints (AWS/GCP/Azure, AWS IPv6, Alibaba)
METADATA_HOSTS = frozenset({
    "169.254.169.254",
    "metadata.google.internal",
    "metadata",
    "fd00:ec2::254",
    "100.100.100.200",
})

PRIVATE_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local
    ipaddress.ip_network("100.64.0.0/10"),  # Carrier-grade NAT
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),  # IPv6 loopback
    ipaddress.ip_network("fc00::/7"),  # IPv6 private
    ipaddress.ip_network("fe80::/10"),  # IPv6 link-local
]

# Hosts made only of digits/hex/dots that are not canonical IPs ("127.1",
# "2130706433", "0x7f.0.0.1") are resolved to addresses by some stacks
_NUMERIC_HOST = re.compile(r"^(0x[0-9a-f]+|[0-9]+)(\.(0x[0-9a-f]+|[0-9]+))*$")


def normalize_hostname(hostname: str) -> str:
    """Lowercase and drop a trailing root dot."""
    return hostname.strip().lower().rstrip(".")


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, link-local or reserved.

    Returns False for anything that is not an IP address.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return is_private_ip(str(ip.ipv4_mapped))

    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_reserved
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_multicast
        or any(ip in network for network in PRIVATE_IP_RANGES)
    )


def is_private_host(hostname: str) -> bool:
    """
    Check whether a hostname targets private or internal infrastructure.

    Covers localhost names, RFC1918/loopback/link-local literals (v4 and v6),
    *.local and *.internal names, cloud metadata endpoints, and numeric
    host spellings that are not canonical IP addresses.
    """
    host = normalize_hostname(hostname)
    if not host:
        return True
    if host in METADATA_HOSTS:
        return True
    if any(pattern.search(host) for pattern in PRIVATE_HOST_PATTERNS):
        return True
    if is_private_ip(host):
        return True
    if _NUMERIC_HOST.match(host):
        try:
            ipaddress.IPv4Address(host)
        except ValueError:
            return True
    return False


def host_matches(hostname: str, pattern: str) -> bool:
    """
    Check if a hostname matches an allow-list entry.

    Examples:
        api.example.com matches api.example.com
        api.example.com matches *.example.com
        example.com matches *.example.com
        evilexample.com does not match *.example.com
    """
    host = normalize_hostname(hostname)
    pattern = normalize_hostname(pattern)

    if pattern.startswith("*."):
        suffix = pattern[1:]  # .example.com
        return host.endswith(suffix) or host == pattern[2:]
    return host == pattern


def resolve_hostname(hostname: str) -> list[str]:
    """
    Resolve a hostname to its unique IP addresses.

    Raises:
        socket.gaierror: If DNS resolution fails
    """
    addr_info = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    return list({info[4][0] for info in addr_info})


class EgressPolicy:
    """
    Evaluates outbound URLs for one tool definition.

    Usage:
        policy = EgressPolicy(definition.allowed_hosts)
        decision = policy.evaluate("https://api.example.com/v1/items")
        if not decision.allowed:
            ...

    Attributes:
        allowed_hosts: Exact hostnames or *.domain patterns
    """

    def __init__(
        self,
        allowed_hosts: Sequence[str],
        resolver: Callable[[str], list[str]] = resolve_hostname,
    ) -> None:
        self.allowed_hosts = list(allowed_hosts)
        self._resolver = resolver

    def evaluate(self, url: str) -> EgressDecision:
        """
        Evaluate a resolved URL.

        Checks, in order:
        1. URL is absolute http(s) with a host
        2. Host is not private/internal/metadata (unconditional)
        3. Host matches an allowed_hosts entry
        """
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            return EgressDecision.deny(f"Invalid URL: {url} ({e})", rule="invalid_url")

        if parsed.scheme not in ("http", "https") or not parsed.host:
            return EgressDecision.deny(f"Invalid URL: {url}", rule="invalid_url")

        hostname = normalize_hostname(parsed.host)

        if is_private_host(hostname):
            return EgressDecision.deny(
                f"Blocked: requests to private/internal hosts not allowed ({hostname})",
                rule="deny_private_hosts",
                hostname=hostname,
            )

        for pattern in self.allowed_hosts:
            if host_matches(hostname, pattern):
                return EgressDecision.allow(
                    f"Host allowed: {pattern}",
                    rule=f"allowed_hosts[{pattern}]",
                    hostname=hostname,
                )

        return EgressDecision.deny(
            f"Blocked: host '{hostname}' not in allowed_hosts [{', '.join(self.allowed_hosts)}]",
            rule="allowed_hosts",
            hostname=hostname,
        )

    def enforce(self, url: str) -> str:
        """
        Evaluate a URL and raise on denial.

        Returns:
            The normalized hostname

        Raises:
            InvalidUrlError, PrivateHostBlockedError, HostNotAllowedError
        """
        decision = self.evaluate(url)
        if decision.allowed:
            return decision.hostname

        if decision.rule_matched == "invalid_url":
            raise InvalidUrlError(url=url, rule=decision.rule_matched, message=decision.reason)
        if decision.rule_matched == "deny_private_hosts":
            raise PrivateHostBlockedError(
                url=url,
                hostname=decision.hostname,
                rule=decision.rule_matched,
                message=decision.reason,
            )
        raise HostNotAllowedError(
            url=url,
            hostname=decision.hostname,
            rule=decision.rule_matched,
            allowed_hosts=self.allowed_hosts,
            message=decision.reason,
        )

    def verify_resolution(self, url: str, hostname: str) -> list[str]:
        """
        Resolve the host and make sure no address is private.

        This is the DNS rebinding guard; it blocks the call, so async callers
        should run it in a worker thread.

        Raises:
            DnsResolutionError: If resolution fails or returns nothing
            PrivateHostBlockedError: If any resolved address is private
        """
        try:
            addresses = self._resolver(hostname)
        except (socket.gaierror, OSError) as e:
            raise DnsResolutionError(
                url=url,
                hostname=hostname,
                rule="dns_resolution",
                underlying_error=str(e),
            ) from e

        if not addresses:
            raise DnsResolutionError(
                url=url,
                hostname=hostname,
                rule="dns_resolution",
                underlying_error="no addresses returned",
            )

        for address in addresses:
            if is_private_ip(address):
                raise PrivateHostBlockedError(
                    url=url,
                    hostname=hostname,
                    rule="dns_rebinding",
                    message=(
                        f"Blocked: {hostname} resolves to private/internal address {address}"
                    ),
                )
        return addresses
