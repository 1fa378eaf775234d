"""IP filter middleware: gate requests on client address and route."""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from .client_ip import RequestDescriptor
from .config import FilterConfiguration, config
from .engine import IpFilter, LogSink

logger = logging.getLogger(__name__)


class IPFilterMiddleware(BaseHTTPMiddleware):
    """Reject requests the configured IP filter denies.

    Without an explicit *filter_config* the middleware reads ``IPFILTER_*``
    settings; when those disable filtering every request passes through.
    """

    def __init__(
        self,
        app,
        filter_config: FilterConfiguration | None = None,
        log_sink: LogSink | None = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self._enabled = filter_config is not None or config.enabled
        if filter_config is None:
            filter_config = config.to_filter_config()
        self._filter = IpFilter(filter_config, log_sink=log_sink or logger.info)
        self._config = filter_config
        logger.info(
            "IP filter %s in %s mode with %d %s entries",
            "enabled" if self._enabled else "disabled",
            filter_config.mode.value,
            len(filter_config.entries),
            filter_config.representation.value,
        )

    @property
    def ip_filter(self) -> IpFilter:
        return self._filter

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        descriptor = RequestDescriptor.from_request(request)
        decision = self._filter.check(descriptor)
        if not decision.allowed:
            logger.warning("Blocked request to %s: %s", descriptor.path, decision.reason)
            return PlainTextResponse(
                self._config.error_message,
                status_code=self._config.error_code,
            )

        return await call_next(request)
