"""
Cliente Redis para el lock distribuido de pedidos.

Redis es opcional: sin REDIS_URL la serialización de transiciones queda
limitada al proceso actual.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Returns the shared Redis client, or None when Redis is not configured.

    Returns:
        Optional[redis.Redis]: Redis client instance
    """
    global _redis_client

    settings = get_settings()
    if not settings.REDIS_URL:
        return None

    if _redis_client is None:
        # La conexión real se establece en el primer comando
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        logger.debug("Redis client instance created")

    return _redis_client


async def test_redis_connection() -> bool:
    """
    Verifica la conectividad con Redis.

    Returns:
        bool: True si la conexión es exitosa, False en caso contrario
    """
    client = get_redis_client()
    if client is None:
        logger.warning("Redis URL not configured")
        return False

    try:
        return bool(await client.ping())
    except RedisError as e:
        logger.error(f"Redis connection test failed: {e}")
        return False


async def close_redis():
    """
    Cierra el cliente Redis si fue creado.
    """
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis client closed")
