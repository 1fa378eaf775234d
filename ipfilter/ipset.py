"""Compile raw address entries into a queryable IP set.

Three mutually exclusive representations are supported:

* exact addresses (``["127.0.0.1", "10.0.0.5"]``)
* CIDR blocks (``["192.168.1.0/24"]``), host bits allowed
* IPv4 ranges (``[["10.0.0.1", "10.0.0.10"], "10.0.1.1"]``), where scalar
  entries are exact literals

Any malformed entry raises :class:`ConfigurationError`; nothing is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network, ip_address, ip_network
from typing import Iterable, Union

from .config import Representation
from .errors import ConfigurationError


def parse_address(value: str) -> IPv4Address | IPv6Address | None:
    """Parse *value* as an IP address, or return None.

    IPv4-mapped IPv6 addresses (e.g. ``::ffff:127.0.0.1``) are unwrapped.
    """
    if not value:
        return None
    try:
        addr = ip_address(value.strip())
    except ValueError:
        return None
    if isinstance(addr, IPv6Address) and addr.ipv4_mapped:
        addr = addr.ipv4_mapped
    return addr


def ip_to_long(value: str) -> int:
    """Dotted-quad to unsigned 32-bit integer. Raises ValueError."""
    return int(IPv4Address(value.strip()))


@dataclass(frozen=True)
class ExactSet:
    addresses: frozenset[str]

    def contains(self, address: str) -> bool:
        if not address:
            return False
        addr = parse_address(address)
        return (str(addr) if addr is not None else address) in self.addresses


@dataclass(frozen=True)
class CidrSet:
    blocks: tuple[IPv4Network | IPv6Network, ...]

    def contains(self, address: str) -> bool:
        return self.find(address) is not None

    def find(self, address: str) -> IPv4Network | IPv6Network | None:
        """Return the first block containing *address*, in configuration order."""
        addr = parse_address(address)
        if addr is None:
            return None
        for block in self.blocks:
            # Mismatched address families are never contained
            if addr in block:
                return block
        return None


@dataclass(frozen=True)
class RangeSet:
    ranges: tuple[tuple[int, int], ...]
    literals: frozenset[str]

    def contains(self, address: str) -> bool:
        addr = parse_address(address)
        if addr is None:
            return False
        if str(addr) in self.literals:
            return True
        if not isinstance(addr, IPv4Address):
            return False
        value = int(addr)
        return any(low <= value <= high for low, high in self.ranges)


CompiledIpSet = Union[ExactSet, CidrSet, RangeSet]


def _entry_text(entry) -> str:
    if not isinstance(entry, str) or not entry.strip():
        raise ConfigurationError(f"Invalid address entry: {entry!r}")
    return entry.strip()


def _compile_exact(entries: Iterable) -> ExactSet:
    addresses = set()
    for entry in entries:
        text = _entry_text(entry)
        addr = parse_address(text)
        if addr is None:
            raise ConfigurationError(f"Invalid IP address: {entry!r}")
        addresses.add(str(addr))
    return ExactSet(frozenset(addresses))


def _compile_cidr(entries: Iterable) -> CidrSet:
    blocks = []
    for entry in entries:
        text = _entry_text(entry)
        try:
            blocks.append(ip_network(text, strict=False))
        except ValueError:
            raise ConfigurationError(f"Invalid CIDR block: {entry!r}") from None
    return CidrSet(tuple(blocks))


def _ipv4(text: str) -> IPv4Address | None:
    addr = parse_address(text)
    return addr if isinstance(addr, IPv4Address) else None


def _range_endpoint(value, entry) -> int:
    try:
        addr = _ipv4(_entry_text(value))
    except ConfigurationError:
        addr = None
    if addr is None:
        raise ConfigurationError(f"Invalid range endpoint {value!r} in {entry!r}")
    return int(addr)


def _compile_ranges(entries: Iterable) -> RangeSet:
    ranges = []
    literals = set()
    for entry in entries:
        if isinstance(entry, (list, tuple)):
            if len(entry) > 1:
                if len(entry) > 2:
                    raise ConfigurationError(f"Range must be a [low, high] pair: {entry!r}")
                low = _range_endpoint(entry[0], entry)
                high = _range_endpoint(entry[1], entry)
                if low > high:
                    raise ConfigurationError(f"Range low bound exceeds high bound: {entry!r}")
                ranges.append((low, high))
                continue
            if not entry:
                raise ConfigurationError("Empty range entry")
            # A one-element sequence is a plain literal
            entry = entry[0]
        addr = _ipv4(_entry_text(entry))
        if addr is None:
            raise ConfigurationError(f"Invalid IP address in ranges: {entry!r}")
        literals.add(str(addr))
    return RangeSet(tuple(ranges), frozenset(literals))


_COMPILERS = {
    Representation.EXACT: _compile_exact,
    Representation.CIDR: _compile_cidr,
    Representation.RANGES: _compile_ranges,
}


def compile_ip_set(entries: Iterable, representation: Representation) -> CompiledIpSet:
    """Compile *entries* according to *representation*."""
    return _COMPILERS[Representation.parse(representation)](entries or ())
