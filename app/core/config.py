"""
Configuración centralizada de la aplicación.

Este módulo maneja todas las variables de entorno y configuraciones
de la aplicación usando Pydantic Settings para validación automática.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Configuración de la aplicación usando Pydantic Settings.

    Todas las configuraciones se cargan desde variables de entorno
    con valores por defecto apropiados para desarrollo.
    """

    # === CONFIGURACIÓN BÁSICA DE LA APP ===
    APP_NAME: str = "Storefront Orders"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=True, env="DEBUG")

    # === CONFIGURACIÓN DEL SERVIDOR ===
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8080, env="PORT")
    WORKERS: int = Field(default=1, env="WORKERS")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # === CONFIGURACIÓN DE SEGURIDAD ===
    ALLOWED_HOSTS: Optional[List[str]] = Field(default=None, env="ALLOWED_HOSTS")

    # === CONFIGURACIÓN DE BASE DE DATOS ===
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./storefront.db", env="DATABASE_URL")
    DATABASE_ECHO: bool = Field(default=False, env="DATABASE_ECHO")
    DATABASE_POOL_SIZE: int = Field(default=10, env="DATABASE_POOL_SIZE")
    DATABASE_CREATE_SCHEMA: bool = Field(default=True, env="DATABASE_CREATE_SCHEMA")

    # === CONFIGURACIÓN DE REDIS ===
    REDIS_URL: Optional[str] = Field(default=None, env="REDIS_URL")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, env="REDIS_SOCKET_TIMEOUT")

    # === REGLAS DE PEDIDOS ===
    CURRENCY: str = Field(default="DZD", env="CURRENCY")
    # Subtotal a partir del cual el envío es gratuito
    FREE_SHIPPING_THRESHOLD: int = Field(default=20000, env="FREE_SHIPPING_THRESHOLD")
    ORDER_LOCK_TIMEOUT_SECONDS: int = Field(default=30, env="ORDER_LOCK_TIMEOUT_SECONDS")
    ORDER_LOCK_WAIT_SECONDS: float = Field(default=10.0, env="ORDER_LOCK_WAIT_SECONDS")
    STORE_TIMEZONE: str = Field(default="Africa/Algiers", env="STORE_TIMEZONE")
    DEFAULT_PAGE_SIZE_ORDERS: int = Field(default=10, env="DEFAULT_PAGE_SIZE_ORDERS")
    DEFAULT_PAGE_SIZE_PRODUCTS: int = Field(default=12, env="DEFAULT_PAGE_SIZE_PRODUCTS")

    # === CONFIGURACIÓN DE RATE LIMITING ===
    ENABLE_RATE_LIMITING: bool = Field(default=True, env="ENABLE_RATE_LIMITING")
    ORDER_RATE_LIMIT_MAX_REQUESTS: int = Field(default=5, env="ORDER_RATE_LIMIT_MAX_REQUESTS")
    ORDER_RATE_LIMIT_WINDOW_SECONDS: int = Field(default=15 * 60, env="ORDER_RATE_LIMIT_WINDOW_SECONDS")

    # === CONFIGURACIÓN DE LOGGING ===
    LOG_FILE_PATH: Optional[str] = Field(default="logs/app.log", env="LOG_FILE_PATH")
    LOG_MAX_SIZE_MB: int = Field(default=10, env="LOG_MAX_SIZE_MB")
    LOG_BACKUP_COUNT: int = Field(default=5, env="LOG_BACKUP_COUNT")
    SLOW_REQUEST_THRESHOLD: float = Field(default=5.0, env="SLOW_REQUEST_THRESHOLD")

    # === CONFIGURACIÓN DE EMAIL ===
    EMAIL_ENABLED: bool = Field(default=False, env="EMAIL_ENABLED")
    EMAIL_SMTP_HOST: Optional[str] = Field(default=None, env="EMAIL_SMTP_HOST")
    EMAIL_SMTP_PORT: int = Field(default=587, env="EMAIL_SMTP_PORT")
    EMAIL_FROM: str = Field(default="no-reply@storefront.local", env="EMAIL_FROM")
    EMAIL_USERNAME: Optional[str] = Field(default=None, env="EMAIL_USERNAME")
    EMAIL_PASSWORD: Optional[str] = Field(default=None, env="EMAIL_PASSWORD")
    EMAIL_USE_TLS: bool = Field(default=True, env="EMAIL_USE_TLS")
    EMAIL_TIMEOUT_SECONDS: int = Field(default=10, env="EMAIL_TIMEOUT_SECONDS")
    STORE_NAME: str = Field(default="Storefront", env="STORE_NAME")

    # === CONFIGURACIÓN DE DOCUMENTACIÓN ===
    ENABLE_DOCS: bool = Field(default=True, env="ENABLE_DOCS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "allow",
    }

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parsea ALLOWED_HOSTS como lista separada por comas."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Valida que el entorno sea válido."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT debe ser uno de: {valid_envs}")
        return v.lower()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        """Valida que el puerto esté en rango válido."""
        if not 1 <= v <= 65535:
            raise ValueError("PORT debe estar entre 1 y 65535")
        return v

    @field_validator("CURRENCY")
    @classmethod
    def validate_currency(cls, v):
        """Valida que la moneda sea un código ISO de 3 letras."""
        if not v or len(v) != 3:
            raise ValueError("CURRENCY debe ser un código de 3 letras")
        return v.upper()

    @field_validator("FREE_SHIPPING_THRESHOLD", "ORDER_RATE_LIMIT_MAX_REQUESTS", "ORDER_RATE_LIMIT_WINDOW_SECONDS")
    @classmethod
    def validate_positive(cls, v):
        """Valida que los límites numéricos sean positivos."""
        if v <= 0:
            raise ValueError("El valor debe ser mayor que 0")
        return v

    @property
    def is_production(self) -> bool:
        """Verifica si está en entorno de producción."""
        return self.ENVIRONMENT == "production"

    @property
    def is_sqlite(self) -> bool:
        """Verifica si la base de datos configurada es SQLite."""
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """
    Obtiene instancia singleton de configuración.

    Usa LRU cache para evitar recrear la configuración
    múltiples veces durante la ejecución.

    Returns:
        Settings: Instancia de configuración
    """
    return Settings()
