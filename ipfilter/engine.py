"""Filter engine: compile-once cache and per-request decision pipeline."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .client_ip import RequestDescriptor, resolve_client_ip
from .config import FilterConfiguration
from .decider import Decision, decide
from .ipset import CompiledIpSet, compile_ip_set
from .routes import CompiledRoutePatterns, compile_route_patterns, is_in_scope

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]


def _noop_sink(message: str) -> None:
    pass


class CompiledFilter:
    """Holds the compiled IP set and route patterns for one configuration.

    :meth:`compile` builds both at most once, even when several threads call
    it at the same time; later calls return the same objects.
    """

    __slots__ = ("config", "_lock", "_ip_set", "_routes")

    def __init__(self, config: FilterConfiguration) -> None:
        self.config = config
        self._lock = threading.Lock()
        self._ip_set: CompiledIpSet | None = None
        self._routes: CompiledRoutePatterns | None = None

    @property
    def compiled(self) -> bool:
        return self._routes is not None

    def compile(self) -> tuple[CompiledIpSet, CompiledRoutePatterns]:
        if self._routes is None:
            with self._lock:
                if self._routes is None:
                    ip_set = compile_ip_set(self.config.entries, self.config.representation)
                    routes = compile_route_patterns(self.config.match, self.config.exclude)
                    # Publish the IP set first; readers key off _routes
                    self._ip_set = ip_set
                    self._routes = routes
                    logger.debug(
                        "Compiled %s IP set with %d entries, %d match / %d exclude pattern(s)",
                        self.config.representation.value,
                        len(self.config.entries),
                        len(routes.match),
                        len(routes.exclude),
                    )
        return self._ip_set, self._routes

    @property
    def ip_set(self) -> CompiledIpSet:
        return self.compile()[0]

    @property
    def routes(self) -> CompiledRoutePatterns:
        return self.compile()[1]


class IpFilter:
    """An installed IP filter.

    The configuration is compiled in the constructor, so a malformed entry or
    pattern raises ``ConfigurationError`` here and no instance is produced.
    *log_sink* receives one human-readable line per decision when
    ``config.log`` is true.
    """

    def __init__(self, config: FilterConfiguration, log_sink: LogSink | None = None) -> None:
        self.config = config
        self._log_sink = log_sink or _noop_sink
        self._compiled = CompiledFilter(config)
        self._compiled.compile()

    @property
    def compiled(self) -> CompiledFilter:
        return self._compiled

    def _log(self, message: str) -> None:
        if self.config.log:
            self._log_sink(message)

    def check(self, request: RequestDescriptor) -> Decision:
        ip_set, routes = self._compiled.compile()

        if not is_in_scope(request.path, routes):
            self._log(f"Access granted for path: {request.path}")
            return Decision.allow(f"path {request.path} excluded from filtering")

        address = resolve_client_ip(request)
        decision = decide(address, ip_set, self.config.mode, self.config.allow_private)
        if decision.allowed:
            self._log(f"Access granted to IP address: {address}")
        else:
            self._log(f"Access denied to IP address: {address}")
        return decision

    def is_allowed(self, request: RequestDescriptor) -> bool:
        return self.check(request).allowed
