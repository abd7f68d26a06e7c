"""
Sistema de health checks para monitoreo de servicios.

Este módulo verifica la base de datos (crítica), Redis (opcional) y los
recursos del host donde corre la API.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Tuple

import psutil

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

HEALTH_CHECK_INDIVIDUAL_TIMEOUT = 3.0
HEALTH_CHECK_TIMEOUT = 5.0
MEMORY_USAGE_LIMIT_PERCENT = 95.0
DISK_USAGE_LIMIT_PERCENT = 95.0

# Servicios sin los cuales la API no puede atender pedidos
CRITICAL_SERVICES = ("database",)

_app_start_time = datetime.now(timezone.utc)

HealthCheck = Callable[[], Awaitable[bool]]


async def check_database_health() -> bool:
    """
    Verifica la conectividad con la base de datos.

    Returns:
        bool: True si la base de datos responde
    """
    try:
        from app.db.connection import get_db_connection

        health_info = await get_db_connection().health_check()
        return health_info.get("test_passed", False) and health_info.get("connection_initialized", False)

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def check_redis_health() -> bool:
    """
    Verifica la conectividad con Redis.

    Returns:
        bool: True si Redis está disponible o no está configurado
    """
    if not settings.REDIS_URL:
        return True  # Redis es opcional

    from app.core.redis_client import test_redis_connection

    return await test_redis_connection()


async def check_memory_usage() -> bool:
    return psutil.virtual_memory().percent < MEMORY_USAGE_LIMIT_PERCENT


async def check_disk_space() -> bool:
    disk = psutil.disk_usage("/")
    return disk.percent < DISK_USAGE_LIMIT_PERCENT


def _health_checks() -> List[Tuple[str, HealthCheck]]:
    return [
        ("database", check_database_health),
        ("redis", check_redis_health),
        ("memory", check_memory_usage),
        ("disk_space", check_disk_space),
    ]


async def run_health_check_with_timeout(service_name: str, check_func: HealthCheck, timeout: float) -> Dict[str, Any]:
    """
    Ejecuta una verificación de salud individual con timeout.

    Args:
        service_name: Nombre del servicio
        check_func: Función de verificación
        timeout: Timeout en segundos

    Returns:
        Dict: Resultado de la verificación
    """
    start_time = time.time()

    try:
        result = await asyncio.wait_for(check_func(), timeout=timeout)
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy" if result else "unhealthy",
            "latency_ms": round(latency_ms, 2),
        }

    except asyncio.TimeoutError:
        latency_ms = (time.time() - start_time) * 1000
        logger.warning(f"Health check timeout for {service_name} after {timeout}s")

        return {
            "status": "timeout",
            "error": f"Health check timeout after {timeout}s",
            "latency_ms": round(latency_ms, 2),
        }

    except Exception as e:
        latency_ms = (time.time() - start_time) * 1000
        logger.error(f"Health check failed for {service_name}: {e}")

        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": round(latency_ms, 2),
        }


async def get_health_status() -> Dict[str, Any]:
    """
    Obtiene el estado de salud de todos los servicios.

    Solo los servicios críticos determinan ``overall``; Redis, memoria y
    disco se reportan pero no tumban la API.

    Returns:
        Dict: Estado de salud del sistema
    """
    health_checks = _health_checks()

    results = await asyncio.wait_for(
        asyncio.gather(
            *(
                run_health_check_with_timeout(name, check, HEALTH_CHECK_INDIVIDUAL_TIMEOUT)
                for name, check in health_checks
            )
        ),
        timeout=HEALTH_CHECK_TIMEOUT,
    )
    services = {name: result for (name, _), result in zip(health_checks, results)}

    overall_healthy = all(services[name]["status"] == "healthy" for name in CRITICAL_SERVICES)

    return {
        "overall": overall_healthy,
        "services": services,
        "uptime": get_uptime_info(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def get_uptime_info() -> Dict[str, Any]:
    """
    Obtiene información de uptime de la aplicación.

    Returns:
        Dict: Información de uptime
    """
    current_time = datetime.now(timezone.utc)
    uptime_delta = current_time - _app_start_time

    return {
        "start_time": _app_start_time.isoformat(),
        "uptime_seconds": int(uptime_delta.total_seconds()),
        "uptime_human": format_uptime(uptime_delta),
    }


def get_system_info() -> Dict[str, Any]:
    """
    Obtiene información del host (CPU, memoria y disco).
    """
    try:
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage("/")
        return {
            "cpu_count": psutil.cpu_count(),
            "memory_total_gb": round(memory.total / (1024**3), 2),
            "memory_usage_percent": memory.percent,
            "disk_free_gb": round(disk.free / (1024**3), 2),
            "disk_usage_percent": disk.percent,
        }
    except OSError as e:
        logger.error(f"Error getting system info: {e}")
        return {"error": "Unable to retrieve system information"}


def format_uptime(uptime_delta: timedelta) -> str:
    """
    Formatea el uptime en formato legible.

    Args:
        uptime_delta: Delta de tiempo de uptime

    Returns:
        str: Uptime formateado (ej: "1d 2h 5s")
    """
    days = uptime_delta.days
    hours, remainder = divmod(uptime_delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")

    return " ".join(parts)
