"""Access decision for a resolved client address."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from ipaddress import ip_network

from .config import Mode
from .ipset import CidrSet, CompiledIpSet, parse_address

PRIVATE_NETWORKS = tuple(
    ip_network(n)
    for n in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
)


class Verdict(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Decision:
    verdict: Verdict
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.verdict is Verdict.ALLOW

    @classmethod
    def allow(cls, reason: str = "") -> Decision:
        return cls(Verdict.ALLOW, reason)

    @classmethod
    def deny(cls, reason: str = "") -> Decision:
        return cls(Verdict.DENY, reason)


def is_private(address: str) -> bool:
    """Check if *address* is in a reserved private, loopback or link-local range.

    Empty and unparseable addresses are never private.
    """
    addr = parse_address(address)
    if addr is None:
        return False
    return any(addr in net for net in PRIVATE_NETWORKS)


def _label(address: str) -> str:
    return address or "<unknown>"


def _decide_cidr(address: str, ip_set: CidrSet, mode: Mode, allow_private: bool) -> Decision:
    block = ip_set.find(address)
    ip = _label(address)
    if block is not None:
        if mode is Mode.ALLOW:
            return Decision.allow(f"ip {ip} in allowed block {block}")
        return Decision.deny(f"ip {ip} in denied block {block}")

    if mode is Mode.DENY:
        return Decision.allow(f"ip {ip} not in any denied block")
    if allow_private and is_private(address):
        return Decision.allow(f"private address {ip} allowed")
    return Decision.deny(f"ip {ip} not in any allowed block")


def _decide_membership(
    address: str, ip_set: CompiledIpSet, mode: Mode, allow_private: bool
) -> Decision:
    contained = ip_set.contains(address)
    ip = _label(address)

    if mode is Mode.ALLOW and contained:
        return Decision.allow(f"ip {ip} in allow list")
    if mode is Mode.DENY and not contained:
        return Decision.allow(f"ip {ip} not in deny list")
    # An explicitly denied private address stays denied
    if allow_private and is_private(address) and not (mode is Mode.DENY and contained):
        return Decision.allow(f"private address {ip} allowed")
    if mode is Mode.ALLOW:
        return Decision.deny(f"ip {ip} not in allow list")
    return Decision.deny(f"ip {ip} in deny list")


def decide(
    address: str,
    ip_set: CompiledIpSet,
    mode: Mode,
    allow_private: bool = False,
) -> Decision:
    """Decide whether *address* may proceed.

    Exact and range sets share one rule: allow members in allow mode,
    non-members in deny mode, and private addresses when *allow_private* is
    set unless they are explicitly denied. CIDR sets only consult the private
    carve-out for addresses outside every block.
    """
    mode = Mode.parse(mode)
    if isinstance(ip_set, CidrSet):
        return _decide_cidr(address, ip_set, mode, allow_private)
    return _decide_membership(address, ip_set, mode, allow_private)
