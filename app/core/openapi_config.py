"""
Configuración personalizada de OpenAPI/Swagger para la aplicación FastAPI.

Agrega tags descriptivos, servidores y el esquema común de error a la
documentación generada.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def get_custom_openapi_schema(app: FastAPI) -> Dict[str, Any]:
    """
    Genera esquema OpenAPI personalizado con información adicional.

    Args:
        app: Instancia de FastAPI

    Returns:
        Dict: Esquema OpenAPI personalizado
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["servers"] = get_server_configuration()
    openapi_schema["tags"] = get_custom_tags()
    openapi_schema.setdefault("components", {}).setdefault("schemas", {}).update(get_custom_schemas())

    openapi_schema["x-app-info"] = {
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "features": {
            "rate_limiting": settings.ENABLE_RATE_LIMITING,
            "email_notifications": settings.EMAIL_ENABLED,
            "distributed_locks": bool(settings.REDIS_URL),
        },
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def get_server_configuration() -> list:
    """
    Configura los servidores disponibles para la API.
    """
    servers = []

    if settings.DEBUG:
        servers.append({"url": f"http://localhost:{settings.PORT}", "description": "Servidor de Desarrollo"})

    return servers


def get_custom_tags() -> list:
    """
    Define tags personalizados para organizar los endpoints.

    Returns:
        List: Lista de tags con descripciones
    """
    return [
        {"name": "Root", "description": "Endpoints básicos de información y estado"},
        {"name": "Health", "description": "Endpoints de salud del sistema"},
        {
            "name": "Orders",
            "description": (
                "Creación de pedidos y ciclo de vida: pending -> confirmed -> shipped -> delivered, "
                "con cancelación desde cualquier estado abierto"
            ),
        },
        {"name": "Products", "description": "Catálogo de productos y variantes"},
        {"name": "Shipping Regions", "description": "Tarifas de envío por región"},
        {"name": "Dashboard", "description": "Resumen de ventas para el back-office"},
        {"name": "Info", "description": "Información del sistema y configuración"},
    ]


def get_custom_schemas() -> Dict[str, Any]:
    """
    Esquema del cuerpo de error que devuelven los manejadores de excepciones.
    """
    return {
        "ErrorResponse": {
            "type": "object",
            "properties": {
                "error": {"type": "boolean", "example": True},
                "error_type": {"type": "string", "example": "application_error"},
                "error_code": {"type": "string", "example": "INSUFFICIENT_STOCK"},
                "message": {"type": "string"},
                "details": {"type": "object", "nullable": True},
                "path": {"type": "string", "example": "/api/v1/orders/abc/status"},
                "timestamp": {"type": "string", "format": "date-time"},
                "request_id": {"type": "string", "nullable": True},
            },
            "required": ["error", "error_type", "message", "path", "timestamp"],
        }
    }


def configure_openapi(app: FastAPI) -> None:
    """
    Configura OpenAPI personalizado para la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando documentación OpenAPI...")

    def custom_openapi():
        return get_custom_openapi_schema(app)

    if settings.DEBUG or settings.ENABLE_DOCS:
        app.openapi = custom_openapi
        logger.info("✅ Documentación OpenAPI configurada y habilitada")
    else:
        logger.info("🔒 Documentación OpenAPI deshabilitada (producción)")
