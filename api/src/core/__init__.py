# Core infrastructure
from src.core.context import (
    bind_progression_context,
    clear_context,
    get_context,
    get_request_id,
    set_request_id,
    set_user_id,
)
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "bind_progression_context",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "init_async_cassandra",
    "set_request_id",
    "set_user_id",
    "shutdown_async_cassandra",
]
