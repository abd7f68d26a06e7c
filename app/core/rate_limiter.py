"""
Rate limiting de la creación de pedidos.

Ventana deslizante en memoria por IP de cliente. Se aplica como
dependencia de FastAPI sobre ``POST /api/v1/orders`` y lanza
RateLimitException, que el manejador central convierte en un 429.
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple

from fastapi import Request

from app.core.config import get_settings
from app.utils.error_handler import RateLimitException

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Limita a ``max_requests`` por clave dentro de ``window_seconds``.

    Las claves sin actividad reciente se purgan en cada llamada a ``hit``
    cuando pasa una ventana completa desde la última limpieza.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_cleanup = clock()

    def hit(self, key: str) -> Tuple[bool, int, float]:
        """
        Registra una petición.

        Returns:
            Tuple: (permitida, restantes, segundos hasta que se libere un hueco)
        """
        now = self._clock()
        self._cleanup(now)

        window_start = now - self.window_seconds
        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = hits[0] + self.window_seconds - now
            return False, 0, max(retry_after, 0.0)

        hits.append(now)
        return True, self.max_requests - len(hits), hits[0] + self.window_seconds - now

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self.window_seconds:
            return
        window_start = now - self.window_seconds
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]
        self._last_cleanup = now


def get_client_ip(request: Request) -> str:
    """
    Obtiene la IP real del cliente considerando proxies.

    Args:
        request: Request de FastAPI

    Returns:
        str: IP del cliente
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Tomar la primera IP en caso de múltiples proxies
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


_order_limiter: Optional[SlidingWindowRateLimiter] = None


def get_order_rate_limiter() -> SlidingWindowRateLimiter:
    """Limiter compartido para la creación de pedidos."""
    global _order_limiter
    if _order_limiter is None:
        settings = get_settings()
        _order_limiter = SlidingWindowRateLimiter(
            max_requests=settings.ORDER_RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.ORDER_RATE_LIMIT_WINDOW_SECONDS,
        )
    return _order_limiter


async def limit_order_placement(request: Request) -> None:
    """
    Dependencia de FastAPI para ``POST /orders``.

    Raises:
        RateLimitException: El cliente superó el límite de pedidos de la ventana
    """
    if not get_settings().ENABLE_RATE_LIMITING:
        return

    limiter = get_order_rate_limiter()
    client_ip = get_client_ip(request)
    allowed, remaining, reset_in = limiter.hit(client_ip)

    if not allowed:
        retry_after = max(1, math.ceil(reset_in))
        logger.warning(f"🚫 Order rate limit exceeded for {client_ip}")
        raise RateLimitException(
            message="Too many orders from this address, please try again later",
            limit=limiter.max_requests,
            reset_time=int(time.time() + retry_after),
            retry_after=retry_after,
        )

    request.state.rate_limit_remaining = remaining
