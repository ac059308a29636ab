"""
Request-scoped middleware: request ids with access logging, and the global rate limit.
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .constants import SLOW_REQUEST_MS
from .logging_config import get_logger
from .rate_limit import RATE_LIMIT_MESSAGE, RateLimiter, rate_limit_headers, rate_limit_key
from .responses import error_response

_LOG = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = 'Internal server error'


def _internal_error(request: Request) -> Response:
    _LOG.exception(
        'Unhandled error',
        extra={'request_id': getattr(request.state, 'request_id', None)},
    )
    return error_response(INTERNAL_ERROR_MESSAGE, 500)


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_all_requests: bool = False) -> None:
        super().__init__(app)
        self.log_all_requests = log_all_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            response = _internal_error(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers['X-Request-ID'] = request_id
        if self.log_all_requests or duration_ms > SLOW_REQUEST_MS or response.status_code >= 400:
            _LOG.info(
                f'[{request_id}] {request.method} {request.url.path} {response.status_code} - {duration_ms}ms',
                extra={
                    'request_id': request_id,
                    'method': request.method,
                    'path': request.url.path,
                    'status': response.status_code,
                    'duration_ms': duration_ms,
                    'client': request.client.host if request.client else None,
                },
            )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: RateLimiter = request.app.state.resources.rate_limiter
        result = limiter.is_allowed(rate_limit_key(request))
        headers = rate_limit_headers(limiter, result)
        if not result.allowed:
            return error_response(RATE_LIMIT_MESSAGE, 429, headers=headers)
        try:
            response = await call_next(request)
        except Exception:
            response = _internal_error(request)
        # Route-level limiters write their own headers first.
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
