import logging
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from orangerides.core.logging import LOGGER_NAME, latency_bucket_ms, request_id_ctx_var

# Incoming ids are echoed into logs and headers; keep them short and printable
_ACCEPTABLE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

logger = logging.getLogger(LOGGER_NAME)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of the request and log how it went."""

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    def _resolve_id(self, request) -> str:
        incoming = request.headers.get(self.header_name)
        if incoming and _ACCEPTABLE_ID.match(incoming):
            return incoming
        return uuid4().hex

    async def dispatch(self, request, call_next):
        rid = self._resolve_id(request)
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[self.header_name] = rid
            logger.info(
                "request.complete",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - started) * 1000),
                },
            )
            return response
        finally:
            request_id_ctx_var.reset(token)
