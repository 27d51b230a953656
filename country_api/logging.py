import logging
import time
from logging.config import dictConfig

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from starlette.middleware.base import BaseHTTPMiddleware

from country_api.config import settings

LOG_FORMAT = "%(log_color)s[%(asctime)s] %(levelname)s [%(name)s] in %(module)s: %(message)s"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}
# Third-party loggers held back so request and refresh logs stay readable
QUIET_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")


def build_logging_config(level: str, console_level: str) -> dict:
    """dictConfig payload: one colored console handler shared by the app loggers.

    ``country_api.request`` and ``country_api.db`` propagate into ``country_api``.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "color": {
                "()": "colorlog.ColoredFormatter",
                "format": LOG_FORMAT,
                "log_colors": LOG_COLORS,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "color",
                "level": console_level.upper(),
            },
        },
        "loggers": {
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "country_api": {
                "level": level.upper(),
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": level.upper(),
            "handlers": ["console"],
        },
    }


def init_logging() -> None:
    dictConfig(build_logging_config(settings.LOG_LEVEL, settings.CONSOLE_LOG_LEVEL))


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One INFO line per request: method, path, status and wall time."""

    async def dispatch(self, request: Request, call_next):
        logger = logging.getLogger("country_api.request")
        started = time.perf_counter()

        response = await call_next(request)

        logger.info(
            "%s %s -> %s (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


def setup_query_logging(engine: Engine, slow_ms: float | None = None) -> None:
    """Time every statement on ``engine``; statements slower than ``slow_ms`` log a warning."""
    logger = logging.getLogger("country_api.db")
    threshold = settings.SLOW_QUERY_THRESHOLD_MS if slow_ms is None else slow_ms

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _log_query(conn, cursor, statement, parameters, context, executemany):
        elapsed = (time.perf_counter() - context._query_start_time) * 1000
        if elapsed > threshold:
            logger.warning("Slow query (%.2f ms): %s", elapsed, statement)
        else:
            logger.debug("Query (%.2f ms): %s", elapsed, statement)
