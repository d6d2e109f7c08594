"""Request middleware: request IDs and access logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.context import clear_context, set_request_id


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def route_template(request: Request) -> str:
    """Matched route path (``/v1/companies/{company_id}``), else the raw path.

    Logging the template keeps IDs out of the ``path`` field.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID per request and write one access log line.

    The ID comes from ``X-Request-ID`` when present and is echoed on the
    response. Requests slower than ``slow_request_ms`` are logged as
    warnings. Paths under ``exclude_paths`` (health checks) are not logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
        slow_request_ms: int = 1000,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])
        self.slow_request_ms = slow_request_ms

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=route_template(request),
                error_type=type(e).__name__,
                duration_ms=self._elapsed_ms(started),
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if self.log_requests and not request.url.path.startswith(self.exclude_paths):
                self._log_completed(request, response, self._elapsed_ms(started))
            return response
        finally:
            clear_context()

    def _log_completed(self, request: Request, response: Response, duration_ms: float) -> None:
        fields = {
            "method": request.method,
            "path": route_template(request),
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "client_ip": self._client_ip(request),
        }
        if response.status_code >= 500:
            logger.error("request_completed", **fields)
        elif response.status_code >= 400 or duration_ms >= self.slow_request_ms:
            logger.warning("request_completed", slow=duration_ms >= self.slow_request_ms, **fields)
        else:
            logger.info("request_completed", **fields)

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)

    @staticmethod
    def _client_ip(request: Request) -> str | None:
        """Client address, honouring the first ``X-Forwarded-For`` hop."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else None
