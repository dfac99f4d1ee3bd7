"""Redis connection helpers.

Learn: One client (with its own connection pool) per app, created in the
lifespan and parked on app.state. Nothing imports a module-level global,
so tests can run several apps side by side without Redis at all.
"""

from typing import Optional

import redis.asyncio as aioredis


async def connect_redis(url: str) -> aioredis.Redis:
    """Create a client and verify the server answers."""
    client = aioredis.from_url(url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client


async def close_redis(client: Optional[aioredis.Redis]) -> None:
    if client is not None:
        await client.aclose()
