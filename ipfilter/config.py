from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

from pydantic_settings import BaseSettings

from .errors import ConfigurationError


class Mode(str, Enum):
    """Meaning of membership in the configured IP set."""

    ALLOW = "allow"  # IP set is a whitelist
    DENY = "deny"  # IP set is a blacklist

    @classmethod
    def parse(cls, value: Mode | str) -> Mode:
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Invalid mode {value!r}, expected 'allow' or 'deny'"
            ) from None


class Representation(str, Enum):
    """How the raw address entries are interpreted."""

    EXACT = "exact"
    CIDR = "cidr"
    RANGES = "ranges"

    @classmethod
    def parse(cls, value: Representation | str) -> Representation:
        if isinstance(value, Representation):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Invalid representation {value!r}") from None

    @classmethod
    def from_flags(cls, *, cidr: bool = False, ranges: bool = False) -> Representation:
        if cidr and ranges:
            raise ConfigurationError("'cidr' and 'ranges' are mutually exclusive")
        if cidr:
            return cls.CIDR
        if ranges:
            return cls.RANGES
        return cls.EXACT


def _freeze_entries(ips: Any) -> tuple:
    if ips is None:
        return ()
    # A bare string is one address, not a list of them
    if isinstance(ips, (str, bytes)) or not isinstance(ips, Iterable):
        raise ConfigurationError(f"Address entries must be a list, got {ips!r}")
    return tuple(tuple(e) if isinstance(e, (list, tuple)) else e for e in ips)


@dataclass(frozen=True)
class FilterConfiguration:
    """Immutable configuration of one installed filter.

    The compiled derivatives (IP set, route patterns) are built from this
    value exactly once; to change the representation, build a new one.
    """

    entries: tuple = ()
    mode: Mode = Mode.DENY
    representation: Representation = Representation.EXACT
    allow_private: bool = False
    match: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    log: bool = True
    # Only used by the HTTP adapter when writing the deny response
    error_code: int = 401
    error_message: str = "Unauthorized"

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", Mode.parse(self.mode))
        object.__setattr__(self, "representation", Representation.parse(self.representation))
        object.__setattr__(self, "entries", _freeze_entries(self.entries))
        object.__setattr__(self, "match", tuple(self.match or ()))
        object.__setattr__(self, "exclude", tuple(self.exclude or ()))

    @classmethod
    def from_options(
        cls,
        ips: Sequence | None = None,
        *,
        mode: Mode | str = Mode.DENY,
        cidr: bool = False,
        ranges: bool = False,
        allow_private_ips: bool = False,
        match: Sequence[str] | None = None,
        excluding: Sequence[str] | None = None,
        log: bool = True,
        error_code: int = 401,
        error_message: str = "Unauthorized",
    ) -> FilterConfiguration:
        """Build a configuration from the flat option names used by the middleware."""
        return cls(
            entries=ips,
            mode=Mode.parse(mode),
            representation=Representation.from_flags(cidr=cidr, ranges=ranges),
            allow_private=allow_private_ips,
            match=tuple(match or ()),
            exclude=tuple(excluding or ()),
            log=log,
            error_code=error_code,
            error_message=error_message,
        )


class FilterSettings(BaseSettings):
    enabled: bool = True
    mode: str = "deny"
    log: bool = True
    error_code: int = 401
    error_message: str = "Unauthorized"
    allow_private_ips: bool = False

    # Representation flags, at most one may be set
    cidr: bool = False
    ranges: bool = False

    # Exact IPs, CIDR strings, or [low, high] pairs (JSON in the environment)
    ips: list[str | list[str]] = []

    # Route scope, regular expressions searched against the request path
    match: list[str] = []
    excluding: list[str] = []

    model_config = {"env_prefix": "IPFILTER_", "env_file": ".env", "extra": "ignore"}

    def to_filter_config(self) -> FilterConfiguration:
        return FilterConfiguration.from_options(
            self.ips,
            mode=self.mode,
            cidr=self.cidr,
            ranges=self.ranges,
            allow_private_ips=self.allow_private_ips,
            match=self.match,
            excluding=self.excluding,
            log=self.log,
            error_code=self.error_code,
            error_message=self.error_message,
        )


config = FilterSettings()
