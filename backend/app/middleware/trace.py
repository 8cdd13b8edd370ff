import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from backend.app.core.logging import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
FALLBACK_HEADER = "X-Trace-ID"


def _request_correlation_id(request: Request) -> str:
    return (
        request.headers.get(CORRELATION_HEADER)
        or request.headers.get(FALLBACK_HEADER)
        or str(uuid.uuid4())
    )


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation ID and log its outcome.

    A caller-supplied ID is reused, otherwise a fresh uuid4 is minted. The ID
    is visible to every log line written while the request runs and is
    returned in the ``X-Correlation-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = _request_correlation_id(request)
        token = correlation_id_ctx.set(correlation_id)
        started = time.perf_counter()
        fields = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception as e:
            fields.update(status_code=500, duration_ms=_elapsed_ms(started), error=str(e))
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"extra_data": fields},
                exc_info=True,
            )
            raise
        else:
            fields.update(
                status_code=response.status_code,
                duration_ms=_elapsed_ms(started),
                client_ip=request.client.host if request.client else None,
            )
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"extra_data": fields},
            )
        finally:
            correlation_id_ctx.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
