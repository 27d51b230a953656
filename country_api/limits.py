import logging

from fastapi import Depends, FastAPI, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.asyncio import Redis

from country_api.config import settings

logger = logging.getLogger("country_api")


def rate_limit(times: int, seconds: int):
    """Return a dependency that enforces a rate limit once the limiter is up; otherwise no-op."""
    limiter = RateLimiter(times=times, seconds=seconds)

    async def _limit(request: Request, response: Response):
        if getattr(request.app.state, "rate_limiting_enabled", False):
            await limiter(request, response)

    return Depends(_limit)


async def init_rate_limiting(app: FastAPI) -> None:
    if not settings.REDIS_URL:
        app.state.rate_limiting_enabled = False
        logger.info("Rate limiting not enabled; REDIS_URL not set")
        return
    try:
        redis = Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(redis)
        app.state.rate_limiting_enabled = True
        logger.info("Rate limiting enabled via Redis at %s", settings.REDIS_URL)
    except Exception:
        app.state.rate_limiting_enabled = False
        logger.warning("Failed to initialize Redis rate limiter; continuing without limits", exc_info=True)


async def close_rate_limiting(app: FastAPI) -> None:
    if getattr(app.state, "rate_limiting_enabled", False):
        await FastAPILimiter.close()
