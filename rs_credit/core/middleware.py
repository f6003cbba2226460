"""Request correlation middleware."""
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rs_credit.core.config import settings
from rs_credit.core.logging import request_id_var, tenant_id_var

logger = logging.getLogger(__name__)

SKIP_LOG_PATHS = {"/health", "/readiness"}


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    - Reuses the caller's X-Request-ID or assigns a uuid4.
    - Puts request id and tenant id in context for the JSON log formatter.
    - Adds X-Request-ID and X-Process-Time to every response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(settings.request_id_header) or str(uuid.uuid4())
        request_token = request_id_var.set(request_id)
        tenant_token = tenant_id_var.set(request.headers.get(settings.tenant_header, ""))
        start_time = time.perf_counter()
        request.state.request_id = request_id

        try:
            response: Response = await call_next(request)

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            response.headers[settings.request_id_header] = request_id
            response.headers["X-Process-Time"] = str(duration_ms)

            if request.url.path not in SKIP_LOG_PATHS:
                logger.info(
                    "request completed",
                    extra={
                        "http_method": request.method,
                        "http_path": request.url.path,
                        "http_status": response.status_code,
                        "duration_ms": duration_ms,
                    },
                )
            return response
        finally:
            request_id_var.reset(request_token)
            tenant_id_var.reset(tenant_token)
