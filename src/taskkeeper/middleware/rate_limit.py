"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each IP gets a counter key like "taskkeeper:rl:{ip}:{bucket}:{minute}".
Sign-up and session login get a stricter limit since they are the
endpoints worth brute-forcing.

Redis is optional. The client lives on app.state.redis (set in the
lifespan); when it is missing or a Redis call fails, the request goes
through unlimited and a warning is logged.
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

AUTH_PATHS = ("/auth/sign-up", "/auth/session-login")
KEY_PREFIX = "taskkeeper:rl"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    def _bucket(self, path: str) -> tuple[str, int]:
        if path.startswith(AUTH_PATHS):
            return "auth", self.auth_rpm
        return "api", self.default_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        redis = getattr(request.app.state, "redis", None)
        if redis is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket, rpm = self._bucket(request.url.path)
        window = int(time.time() // 60)
        key = f"{KEY_PREFIX}:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except RedisError as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"message": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
