"""
Policy module for apitools.

Outbound requests are evaluated by EgressPolicy before any connection is
made. Private and metadata hosts are always refused; other hosts must be on
the definition's allow-list.
"""

from apitools.policy.egress import (
    EgressPolicy,
    host_matches,
    is_private_host,
    is_private_ip,
    resolve_hostname,
)

__all__ = [
    "EgressPolicy",
    "host_matches",
    "is_private_host",
    "is_private_ip",
    "resolve_hostname",
]
