"""
Sistema de manejo de errores personalizado.

Este módulo define todas las excepciones personalizadas de la aplicación
y los códigos de error que viajan en las respuestas de la API.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """
    Códigos de error estandardizados para la aplicación.
    """

    # Errores generales
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Errores de referencia
    NOT_FOUND = "NOT_FOUND"
    INVALID_VARIANT = "INVALID_VARIANT"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNKNOWN_REGION = "UNKNOWN_REGION"
    INVALID_PHONE = "INVALID_PHONE"

    # Errores de reglas de negocio
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    DUPLICATE_PRODUCT = "DUPLICATE_PRODUCT"
    ORDER_LOCKED = "ORDER_LOCKED"

    # Errores de persistencia
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    DATABASE_CONNECTION_FAILED = "DATABASE_CONNECTION_FAILED"

    # Errores de API
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class ErrorSeverity(Enum):
    """
    Niveles de severidad para errores.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AppException(Exception):
    """
    Excepción base para todas las excepciones personalizadas de la aplicación.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
        is_critical: bool = False,
    ):
        """
        Inicializa la excepción.

        Args:
            message: Mensaje de error
            error_code: Código de error estandardizado
            details: Información adicional del error
            status_code: Código HTTP asociado
            severity: Severidad del error
            is_retryable: Si la operación puede reintentarse
            is_critical: Si requiere alerta inmediata
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.is_critical = is_critical
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convierte la excepción a diccionario.

        Returns:
            Dict: Representación de la excepción
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "is_critical": self.is_critical,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation del error."""
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Excepción para errores de validación de datos.
    """

    def __init__(
        self,
        message: str,
        field: str,
        invalid_value: Any = None,
        expected_format: Optional[str] = None,
        missing_fields: Optional[List[str]] = None,
        **kwargs,
    ):
        """
        Inicializa la excepción de validación.

        Args:
            message: Mensaje de error
            field: Campo que falló la validación
            invalid_value: Valor que causó el error
            expected_format: Formato esperado
            missing_fields: Campos obligatorios ausentes
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value
        self.expected_format = expected_format
        self.missing_fields = missing_fields or []

        self.details.update(
            {
                "field": field,
                "invalid_value": str(invalid_value) if invalid_value is not None else None,
                "expected_format": expected_format,
                "missing_fields": self.missing_fields,
            }
        )


class NotFoundException(AppException):
    """
    Excepción para entidades referenciadas que no existen.
    """

    def __init__(self, message: str, resource: str, resource_id: Any = None, **kwargs):
        """
        Inicializa la excepción de entidad no encontrada.

        Args:
            message: Mensaje de error
            resource: Tipo de recurso (product, order, ...)
            resource_id: Identificador buscado
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.resource = resource
        self.resource_id = resource_id

        self.details.update({"resource": resource, "resource_id": str(resource_id) if resource_id else None})


class InvalidVariantException(AppException):
    """
    Excepción cuando un SKU no existe en la lista de variantes del producto.
    """

    def __init__(self, message: str, product_id: Any, variant_sku: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_VARIANT,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.product_id = product_id
        self.variant_sku = variant_sku

        self.details.update({"product_id": str(product_id), "variant_sku": variant_sku})


class InvalidStatusException(AppException):
    """
    Excepción para estados desconocidos o transiciones no permitidas.
    """

    def __init__(
        self,
        message: str,
        requested_status: Any,
        current_status: Optional[str] = None,
        allowed: Optional[List[str]] = None,
        is_transition: bool = False,
        **kwargs,
    ):
        """
        Inicializa la excepción de estado inválido.

        Args:
            message: Mensaje de error
            requested_status: Estado solicitado
            current_status: Estado actual del pedido (solo para transiciones)
            allowed: Valores aceptados desde el estado actual
            is_transition: True si el estado existe pero la transición no está permitida
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_TRANSITION if is_transition else ErrorCode.INVALID_STATUS,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.requested_status = requested_status
        self.current_status = current_status
        self.allowed = allowed or []

        self.details.update(
            {
                "requested_status": str(requested_status),
                "current_status": current_status,
                "allowed": self.allowed,
            }
        )


class UnknownRegionException(AppException):
    """
    Excepción cuando la región de envío no tiene tarifa configurada.
    """

    def __init__(self, message: str, region: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNKNOWN_REGION,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.region = region
        self.details.update({"region": region})


class InvalidPhoneException(AppException):
    """
    Excepción para números de teléfono fuera del formato regional.
    """

    def __init__(self, message: str, phone: str, expected_format: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_PHONE,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.phone = phone
        self.expected_format = expected_format
        self.details.update({"phone": phone, "expected_format": expected_format})


class InsufficientStockException(AppException):
    """
    Excepción cuando la variante no tiene stock suficiente para confirmar un pedido.
    """

    def __init__(
        self,
        message: str,
        product_id: Any,
        variant_sku: str,
        available: Optional[int],
        requested: int,
        **kwargs,
    ):
        """
        Inicializa la excepción de stock insuficiente.

        Args:
            message: Mensaje de error
            product_id: Producto afectado
            variant_sku: SKU de la variante
            available: Stock disponible al momento de la verificación
            requested: Cantidad solicitada
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.INSUFFICIENT_STOCK,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.product_id = product_id
        self.variant_sku = variant_sku
        self.available = available
        self.requested = requested

        self.details.update(
            {
                "product_id": str(product_id),
                "variant_sku": variant_sku,
                "available": available,
                "requested": requested,
            }
        )


class DuplicateProductException(AppException):
    """
    Excepción cuando un producto choca con otro por nombre o slug.
    """

    def __init__(self, message: str, field: str, value: Any = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.DUPLICATE_PRODUCT,
            status_code=409,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.value = value
        self.details.update({"field": field, "value": value})


class PersistenceException(AppException):
    """
    Excepción para errores del almacenamiento subyacente.
    """

    def __init__(self, message: str, operation: str, connection_type: str = "database", **kwargs):
        """
        Inicializa la excepción de persistencia.

        Args:
            message: Mensaje de error
            operation: Operación que falló
            connection_type: Tipo de conexión
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.PERSISTENCE_FAILURE,
            status_code=503,
            severity=ErrorSeverity.HIGH,
            is_retryable=True,
            **kwargs,
        )
        self.operation = operation
        self.connection_type = connection_type

        self.details.update({"operation": operation, "connection_type": connection_type})


class RateLimitException(AppException):
    """
    Excepción para errores de rate limiting.
    """

    def __init__(self, message: str, limit: int, reset_time: int, retry_after: int, **kwargs):
        """
        Inicializa la excepción de rate limiting.

        Args:
            message: Mensaje de error
            limit: Límite de requests
            reset_time: Timestamp de reset
            retry_after: Segundos para reintentar
            **kwargs: Argumentos adicionales para AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            status_code=429,
            severity=ErrorSeverity.LOW,
            is_retryable=True,
            **kwargs,
        )

        self.limit = limit
        self.reset_time = reset_time
        self.retry_after = retry_after

        self.details.update({"limit": limit, "reset_time": reset_time, "retry_after": retry_after})


class LockAcquisitionError(AppException):
    """
    Excepción cuando no se puede obtener el lock de un pedido a tiempo.
    """

    def __init__(self, message: str, lock_key: str, waited_seconds: float = 0.0, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.ORDER_LOCKED,
            status_code=409,
            severity=ErrorSeverity.MEDIUM,
            is_retryable=True,
            **kwargs,
        )
        self.lock_key = lock_key
        self.waited_seconds = waited_seconds
        self.details.update({"lock_key": lock_key, "waited_seconds": round(waited_seconds, 3)})
