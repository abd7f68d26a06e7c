# app/db/connection.py
"""
Clase ConnDB para gestión exclusiva de conexiones a la base de datos.

Esta clase maneja únicamente la conexión, configuración del pool,
creación del esquema y ciclo de vida de las conexiones a la base de
datos de la tienda.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.db.schema import metadata
from app.utils.error_handler import PersistenceException

logger = logging.getLogger(__name__)


class ConnDB:
    """
    Clase para gestión de conexiones a la base de datos.

    Se usa como instancia única a través de ``get_db_connection()``; los
    tests crean instancias propias apuntando a una base temporal.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Inicializa la clase ConnDB.

        Args:
            database_url: URL async de SQLAlchemy. Por defecto DATABASE_URL.
            echo: Log de queries SQL. Por defecto DATABASE_ECHO.
        """
        settings = get_settings()
        self.database_url = database_url or settings.DATABASE_URL
        self.echo = settings.DATABASE_ECHO if echo is None else echo
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._connection_tested = False
        logger.info("ConnDB instance created")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    async def initialize(self, create_schema: Optional[bool] = None):
        """
        Inicializa el engine de base de datos y el pool de conexiones.

        Args:
            create_schema: Crear las tablas si no existen. Por defecto
                DATABASE_CREATE_SCHEMA.

        Raises:
            PersistenceException: Si falla la inicialización
        """
        settings = get_settings()
        if create_schema is None:
            create_schema = settings.DATABASE_CREATE_SCHEMA

        try:
            if self.engine is not None:
                logger.info("Database connection already initialized")
                return

            logger.info("Initializing database connection...")

            engine_options = {
                "echo": self.echo,
                "pool_pre_ping": True,
            }
            if not self.is_sqlite:
                engine_options.update(
                    pool_size=settings.DATABASE_POOL_SIZE,
                    max_overflow=20,
                    pool_recycle=3600,  # Reciclar conexiones cada hora
                    pool_timeout=30,
                )

            self.engine = create_async_engine(self.database_url, **engine_options)

            self.session_factory = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=True
            )

            if create_schema:
                await self.create_schema()

            await self._test_connection()

            logger.info("Database connection initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            await self._cleanup_failed_initialization()
            raise PersistenceException(
                message=f"Failed to initialize database connection: {str(e)}",
                operation="initialization",
            ) from e

    async def create_schema(self):
        """Crea las tablas que no existan todavía."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database schema ensured")

    async def _test_connection(self):
        """
        Prueba la conexión a la base de datos.

        Raises:
            PersistenceException: Si la prueba de conexión falla
        """
        logger.info("Testing database connection...")

        async with self.session_factory() as session:
            result = await session.execute(text("SELECT 1 AS test_connection"))
            test_value = result.scalar()

        if test_value != 1:
            raise PersistenceException(
                message="Connection test returned unexpected value",
                operation="test",
            )

        self._connection_tested = True
        logger.info("Connection test successful")

    async def _cleanup_failed_initialization(self):
        """Limpia recursos en caso de fallo de inicialización."""
        try:
            if self.engine:
                await self.engine.dispose()
        except SQLAlchemyError as e:
            logger.error(f"Error during cleanup of failed initialization: {e}")
        finally:
            self.engine = None
            self.session_factory = None
            self._connection_tested = False

    def get_session(self) -> AsyncSession:
        """
        Obtiene una nueva sesión de base de datos.

        Returns:
            AsyncSession: Sesión asíncrona de SQLAlchemy

        Raises:
            PersistenceException: Si no hay conexión inicializada
        """
        if not self.is_initialized():
            raise PersistenceException(
                message="Database connection not initialized. Call initialize() first.",
                operation="session_creation",
            )

        return self.session_factory()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Sesión transaccional: commit al salir, rollback ante cualquier error.

        Los errores de SQLAlchemy se traducen a PersistenceException; las
        excepciones de negocio se propagan tal cual después del rollback.
        """
        session = self.get_session()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise PersistenceException(
                message=f"Transaction failed: {str(e)}",
                operation="transaction",
            ) from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    def is_initialized(self) -> bool:
        """
        Verifica si la conexión está inicializada.

        Returns:
            bool: True si está inicializada y probada
        """
        return self.engine is not None and self.session_factory is not None and self._connection_tested

    async def test_connection(self) -> bool:
        """
        Prueba la conexión a la base de datos de forma no destructiva.

        Returns:
            bool: True si la conexión funciona correctamente
        """
        if not self.is_initialized():
            return False

        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        except SQLAlchemyError as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def close(self):
        """
        Cierra la conexión y limpia todos los recursos.
        """
        try:
            logger.info("Closing database connection...")

            if self.engine:
                await self.engine.dispose()
                logger.info("Database engine disposed")

            logger.info("Database connection closed successfully")

        except SQLAlchemyError as e:
            logger.error(f"Error closing database connection: {e}")
            raise PersistenceException(
                message=f"Error closing database connection: {str(e)}",
                operation="close",
            ) from e
        finally:
            self.engine = None
            self.session_factory = None
            self._connection_tested = False

    def get_engine_info(self) -> dict:
        """
        Obtiene información sobre el engine de base de datos.

        Returns:
            dict: Información del engine y pool de conexiones
        """
        if not self.engine:
            return {"status": "not_initialized"}

        pool = self.engine.pool

        return {
            "status": "initialized",
            "dialect": self.engine.dialect.name,
            "pool_class": pool.__class__.__name__,
            "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            "is_tested": self._connection_tested,
        }

    async def health_check(self) -> dict:
        """
        Realiza un health check completo de la conexión.

        Returns:
            dict: Estado de salud de la conexión
        """
        start_time = time.time()
        test_passed = await self.test_connection()

        return {
            "connection_initialized": self.is_initialized(),
            "engine_info": self.get_engine_info(),
            "test_passed": test_passed,
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    def __repr__(self) -> str:
        """Representación detallada de la conexión."""
        return (
            f"ConnDB(initialized={self.is_initialized()}, "
            f"engine={self.engine is not None}, "
            f"session_factory={self.session_factory is not None})"
        )


# Instancia global
_conn_db_instance: Optional[ConnDB] = None


def get_db_connection() -> ConnDB:
    """
    Obtiene la instancia global de ConnDB.

    Returns:
        ConnDB: Instancia de conexión a base de datos
    """
    global _conn_db_instance

    if _conn_db_instance is None:
        _conn_db_instance = ConnDB()

    return _conn_db_instance


def set_db_connection(conn_db: Optional[ConnDB]) -> None:
    """Reemplaza la instancia global (usado por los tests de la API)."""
    global _conn_db_instance
    _conn_db_instance = conn_db


async def initialize_database():
    """
    Función de conveniencia para inicializar la base de datos.
    """
    conn_db = get_db_connection()
    await conn_db.initialize()


async def close_database():
    """
    Función de conveniencia para cerrar la base de datos.
    """
    conn_db = get_db_connection()
    await conn_db.close()
