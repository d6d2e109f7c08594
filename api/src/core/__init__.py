# Core infrastructure
from src.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_identity,
    set_request_id,
    stripe_event_context,
)
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.errors import ServiceError, to_http_exception
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware, route_template


__all__ = [
    "RequestContextMiddleware",
    "ServiceError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "init_async_cassandra",
    "route_template",
    "set_identity",
    "set_request_id",
    "shutdown_async_cassandra",
    "stripe_event_context",
    "to_http_exception",
]
