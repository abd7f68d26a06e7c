"""
Configuración centralizada de routers para la aplicación FastAPI.

Este módulo se encarga de registrar todos los routers de la API,
configurar endpoints base y organizar las rutas de manera estructurada.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api.v1.endpoints.dashboard import router as dashboard_router
from app.api.v1.endpoints.orders import router as orders_router
from app.api.v1.endpoints.products import router as products_router
from app.api.v1.endpoints.shipping_regions import router as shipping_regions_router
from app.core.config import get_settings
from app.core.health import get_health_status, get_system_info
from app.core.lifespan import get_startup_info
from app.version import version_info

settings = get_settings()
logger = logging.getLogger(__name__)

API_V1_PREFIX = "/api/v1"


def create_root_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints raíz de la aplicación.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/", tags=["Root"], summary="API Info")
    async def root():
        """
        Endpoint raíz que proporciona información básica de la API.
        """
        return {
            "message": f"{settings.APP_NAME} API",
            "description": "Backend de pedidos de la tienda: catálogo, pedidos y envíos",
            "version": settings.APP_VERSION,
            "status": "running",
            "documentation": "/docs" if (settings.DEBUG or settings.ENABLE_DOCS) else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": get_router_info()["base_paths"],
        }

    @app.get("/ping", tags=["Root"], summary="Simple Ping")
    async def ping():
        return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_health_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints de health check.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/health", tags=["Health"], summary="Health Check")
    async def health_check():
        """
        Estado de la base de datos (crítica), Redis y el host.
        Responde 503 si un servicio crítico no está disponible.
        """
        try:
            health_status = await get_health_status()

            return JSONResponse(
                status_code=200 if health_status["overall"] else 503,
                content={
                    "status": "healthy" if health_status["overall"] else "unhealthy",
                    "version": settings.APP_VERSION,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "uptime": health_status.get("uptime"),
                    "services": health_status["services"],
                    "environment": settings.ENVIRONMENT,
                },
            )

        except Exception as e:
            logger.error(f"Error en health check: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "error": str(e),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "version": settings.APP_VERSION,
                },
            )

    @app.get("/health/liveness", tags=["Health"], summary="Liveness Check")
    async def liveness():
        return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


def create_info_endpoints(app: FastAPI) -> None:
    """
    Crea endpoints informativos adicionales.

    Args:
        app: Instancia de FastAPI
    """

    @app.get("/version", tags=["Info"], summary="Version Info")
    async def version():
        return {"name": settings.APP_NAME, "environment": settings.ENVIRONMENT, **version_info()}

    @app.get("/config", tags=["Info"], summary="Configuration Info")
    async def config_info():
        """
        Configuración activa sin secretos (solo en modo debug).
        """
        if not settings.DEBUG:
            return JSONResponse(
                status_code=404,
                content={"message": "Config endpoint only available in debug mode"},
            )

        return {
            "config": {
                **get_startup_info(),
                "free_shipping_threshold": settings.FREE_SHIPPING_THRESHOLD,
                "currency": settings.CURRENCY,
                "store_timezone": settings.STORE_TIMEZONE,
                "order_rate_limit": {
                    "max_requests": settings.ORDER_RATE_LIMIT_MAX_REQUESTS,
                    "window_seconds": settings.ORDER_RATE_LIMIT_WINDOW_SECONDS,
                },
            },
            "system": get_system_info(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def configure_api_v1_routers(app: FastAPI) -> None:
    """
    Configura todos los routers de la API v1.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando routers de API v1...")

    app.include_router(
        orders_router,
        prefix=f"{API_V1_PREFIX}/orders",
        tags=["Orders"],
        responses={
            404: {"description": "Order not found"},
            429: {"description": "Too many orders from this client"},
        },
    )
    logger.info("✅ Router de pedidos configurado")

    app.include_router(
        products_router,
        prefix=f"{API_V1_PREFIX}/products",
        tags=["Products"],
        responses={404: {"description": "Product not found"}},
    )
    logger.info("✅ Router de productos configurado")

    app.include_router(
        shipping_regions_router,
        prefix=f"{API_V1_PREFIX}/shipping-regions",
        tags=["Shipping Regions"],
    )
    logger.info("✅ Router de regiones de envío configurado")

    app.include_router(
        dashboard_router,
        prefix=f"{API_V1_PREFIX}/dashboard",
        tags=["Dashboard"],
    )
    logger.info("✅ Router de dashboard configurado")


def configure_all_routers(app: FastAPI) -> None:
    """
    Configura todos los routers de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando todos los routers...")

    create_root_endpoints(app)
    create_health_endpoints(app)
    create_info_endpoints(app)

    configure_api_v1_routers(app)

    logger.info("✅ Todos los routers configurados correctamente")


def get_router_info() -> Dict[str, Any]:
    """
    Obtiene información sobre los routers configurados.

    Returns:
        Dict con información de routers
    """
    return {
        "api_version": "v1",
        "base_paths": {
            "health": "/health",
            "orders": f"{API_V1_PREFIX}/orders",
            "products": f"{API_V1_PREFIX}/products",
            "shipping_regions": f"{API_V1_PREFIX}/shipping-regions",
            "dashboard": f"{API_V1_PREFIX}/dashboard/summary",
        },
    }
