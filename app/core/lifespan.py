"""
Gestión del ciclo de vida de la aplicación FastAPI.

Este módulo maneja los eventos de startup y shutdown de la aplicación:
logging, base de datos, Redis y el despachador de notificaciones.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.logging_config import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)

NOTIFICATION_DRAIN_TIMEOUT_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestión del ciclo de vida de la aplicación.
    Maneja eventos de startup y shutdown de manera ordenada.

    Args:
        app: Instancia de FastAPI
    """
    # === STARTUP ===
    logger.info(f"🚀 Iniciando {settings.APP_NAME}...")

    try:
        # 1. Configurar logging
        await startup_configure_logging()

        # 2. Inicializar base de datos (crea el esquema si está habilitado)
        await startup_initialize_database()

        # 3. Verificar Redis (opcional)
        await startup_verify_redis()

        # 4. Inicializar notificaciones
        await startup_initialize_notifications()

        # 5. Verificaciones finales
        await startup_final_checks()

        logger.info("🎉 Aplicación iniciada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el startup: {e}")
        await cleanup_on_startup_failure()
        sys.exit(1)

    # === YIELD (aplicación corriendo) ===
    yield

    # === SHUTDOWN ===
    logger.info(f"🛑 Cerrando {settings.APP_NAME}...")

    try:
        # 1. Esperar notificaciones pendientes
        await shutdown_drain_notifications()

        # 2. Cerrar conexiones
        await shutdown_close_connections()

        # 3. Finalizar logging
        await shutdown_finalize_logging()

        logger.info("👋 Aplicación cerrada correctamente")

    except Exception as e:
        logger.error(f"❌ Error durante el shutdown: {e}")


# === FUNCIONES DE STARTUP ===


async def startup_configure_logging():
    """Configura el sistema de logging."""
    try:
        setup_logging()
        logger.info("✅ Sistema de logging configurado")
    except Exception as e:
        print(f"Error configurando logging: {e}")
        raise


async def startup_initialize_database():
    """Inicializa la conexión a la base de datos. Es un servicio crítico."""
    from app.db.connection import get_db_connection

    conn_db = get_db_connection()
    if not conn_db.is_initialized():
        logger.info("Inicializando conexión a base de datos...")
        await conn_db.initialize()

    health_info = await conn_db.health_check()
    if not health_info["test_passed"]:
        raise ConnectionError("Base de datos no disponible")

    logger.info(f"✅ Base de datos verificada: {health_info.get('response_time_ms')}ms")


async def startup_verify_redis():
    """Verifica Redis si está configurado. Sin Redis los locks son solo locales."""
    if not settings.REDIS_URL:
        logger.info("ℹ️ Redis no configurado - locks de pedidos en memoria")
        return

    try:
        from app.core.redis_client import test_redis_connection

        if await test_redis_connection():
            logger.info("✅ Conexión a Redis verificada")
        else:
            logger.warning("⚠️ Conexión a Redis falló (no crítico)")
    except Exception as e:
        logger.warning(f"⚠️ Error conectando a Redis: {e} (no crítico)")


async def startup_initialize_notifications():
    """Crea el despachador de notificaciones compartido."""
    from app.utils.notifications import get_notification_dispatcher

    dispatcher = get_notification_dispatcher()
    logger.info(f"✅ Notificaciones configuradas ({type(dispatcher.sender).__name__})")


async def startup_final_checks():
    """Log de la configuración activa."""
    logger.info("🔧 Configuración activa:")
    logger.info(f"   - Entorno: {settings.ENVIRONMENT}")
    logger.info(f"   - Debug: {settings.DEBUG}")
    logger.info(f"   - Base de datos: {'sqlite' if settings.is_sqlite else 'server'}")
    logger.info(f"   - Rate Limiting: {settings.ENABLE_RATE_LIMITING}")
    logger.info(f"   - Email: {settings.EMAIL_ENABLED}")
    logger.info(f"   - Zona horaria: {settings.STORE_TIMEZONE}")


async def cleanup_on_startup_failure():
    """Limpia recursos en caso de fallo durante startup."""
    try:
        logger.info("🧹 Limpiando recursos tras fallo en startup...")
        await shutdown_close_connections()
    except Exception as e:
        logger.error(f"Error durante limpieza de startup: {e}")


# === FUNCIONES DE SHUTDOWN ===


async def shutdown_drain_notifications():
    """Espera a que terminen los emails en curso."""
    try:
        from app.utils.notifications import get_notification_dispatcher

        dispatcher = get_notification_dispatcher()
        if dispatcher.pending:
            logger.info(f"⏳ Esperando {dispatcher.pending} notificaciones pendientes...")
        await dispatcher.drain(timeout=NOTIFICATION_DRAIN_TIMEOUT_SECONDS)
        logger.info("✅ Notificaciones finalizadas")
    except Exception as e:
        logger.error(f"Error finalizando notificaciones: {e}")


async def shutdown_close_connections():
    """Cierra conexiones de manera limpia."""
    try:
        from app.db.connection import close_database

        await close_database()
        logger.info("✅ Conexión a base de datos cerrada")
    except Exception as e:
        logger.error(f"Error cerrando base de datos: {e}")

    if settings.REDIS_URL:
        try:
            from app.core.redis_client import close_redis

            await close_redis()
            logger.info("✅ Cliente Redis cerrado")
        except Exception as e:
            logger.error(f"Error cerrando Redis: {e}")


async def shutdown_finalize_logging():
    """Hace flush de los handlers de logging."""
    try:
        for handler in logging.getLogger().handlers:
            handler.flush()
        logger.info("✅ Sistema de logging finalizado")
    except Exception as e:
        print(f"Error finalizando logging: {e}")


def get_startup_info() -> Dict[str, Any]:
    """
    Obtiene información sobre la configuración de arranque.

    Returns:
        Dict: Información del startup
    """
    return {
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "features": {
            "rate_limiting": settings.ENABLE_RATE_LIMITING,
            "email_notifications": settings.EMAIL_ENABLED,
        },
        "services": {
            "redis_enabled": bool(settings.REDIS_URL),
            "database": "sqlite" if settings.is_sqlite else "server",
        },
    }
