"""IP filtering decision engine with a Starlette middleware front-end."""

from __future__ import annotations

from .client_ip import RequestDescriptor, resolve_client_ip
from .config import FilterConfiguration, Mode, Representation
from .decider import Decision, Verdict, decide, is_private
from .engine import CompiledFilter, IpFilter
from .errors import ConfigurationError
from .ipset import compile_ip_set
from .routes import compile_route_patterns, is_in_scope

__all__ = [
    "CompiledFilter",
    "ConfigurationError",
    "Decision",
    "FilterConfiguration",
    "IpFilter",
    "Mode",
    "Representation",
    "RequestDescriptor",
    "Verdict",
    "compile_ip_set",
    "compile_route_patterns",
    "decide",
    "is_in_scope",
    "is_private",
    "resolve_client_ip",
]
