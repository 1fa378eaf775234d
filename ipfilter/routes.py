from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .errors import ConfigurationError


@dataclass(frozen=True)
class CompiledRoutePatterns:
    match: tuple[re.Pattern, ...] = ()
    exclude: tuple[re.Pattern, ...] = ()


def _compile_all(sources: Iterable[str], kind: str) -> tuple[re.Pattern, ...]:
    patterns = []
    for source in sources or ():
        try:
            patterns.append(re.compile(source))
        except (re.error, TypeError) as exc:
            raise ConfigurationError(f"Invalid {kind} pattern {source!r}: {exc}") from None
    return tuple(patterns)


def compile_route_patterns(
    match: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
) -> CompiledRoutePatterns:
    return CompiledRoutePatterns(
        match=_compile_all(match, "match"),
        exclude=_compile_all(exclude, "exclude"),
    )


def _any_search(patterns: tuple[re.Pattern, ...], path: str) -> bool:
    return any(p.search(path) for p in patterns)


def is_in_scope(path: str, patterns: CompiledRoutePatterns) -> bool:
    """Return True if requests to *path* go through the IP check.

    An exclude hit always takes the path out of scope. Everything else is in
    scope, including paths that match none of a non-empty match list.
    """
    matching = _any_search(patterns.match, path)
    excluding = _any_search(patterns.exclude, path)

    if matching and not excluding:
        return True
    if excluding:
        return False
    # Not matched, not excluded: still filtered
    return True
