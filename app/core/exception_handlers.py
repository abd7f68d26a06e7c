"""
Manejadores de excepciones centralizados para la aplicación FastAPI.

Este módulo define todos los manejadores de excepciones personalizados y globales,
proporcionando respuestas consistentes y logging apropiado para diferentes tipos de errores.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.logging_config import request_id_var
from app.utils.error_handler import (
    AppException,
    ErrorCode,
    LockAcquisitionError,
    PersistenceException,
    RateLimitException,
    ValidationException,
)

settings = get_settings()
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_body(request: Request, error_type: str, **fields: Any) -> Dict[str, Any]:
    return {
        "error": True,
        "error_type": error_type,
        **fields,
        "path": str(request.url.path),
        "timestamp": _now(),
        "request_id": request_id_var.get() or request.headers.get("X-Request-ID"),
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Manejador para excepciones de negocio de la aplicación.

    Los errores 4xx exponen sus detalles (campos, stock disponible...) porque
    el cliente los necesita para corregir la petición.

    Args:
        request: Request de FastAPI
        exc: Excepción personalizada de la app

    Returns:
        JSONResponse: Respuesta JSON con error formateado
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"App Exception: {exc.message} - "
        f"Code: {exc.error_code} - "
        f"URL: {request.url} - "
        f"Details: {exc.details}"
    )

    show_details = exc.status_code < 500 or settings.DEBUG

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(
            _error_body(
                request,
                "application_error",
                error_code=exc.error_code.value,
                message=exc.message,
                details=exc.details if show_details else None,
            )
        ),
    )


async def validation_exception_handler(request: Request, exc: ValidationException) -> JSONResponse:
    """
    Manejador para errores de validación de datos.

    Args:
        request: Request de FastAPI
        exc: Excepción de validación

    Returns:
        JSONResponse: Respuesta JSON con detalles de validación
    """
    logger.warning(
        f"Validation Exception: {exc.message} - "
        f"Field: {exc.field} - "
        f"Missing: {exc.missing_fields} - "
        f"URL: {request.url}"
    )

    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            _error_body(
                request,
                "validation_error",
                error_code=exc.error_code.value,
                message=exc.message,
                field=exc.field,
                missing_fields=exc.missing_fields,
                invalid_value=exc.invalid_value if settings.DEBUG else None,
                expected_format=exc.expected_format,
            )
        ),
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Manejador para errores de validación de FastAPI (cuerpo, query, path).

    Devuelve el mismo formato que ValidationException.
    """
    errors = exc.errors()
    fields = [".".join(str(part) for part in error.get("loc", ()) if part != "body") for error in errors]
    missing = [field for field, error in zip(fields, errors) if error.get("type") == "missing"]

    logger.warning(f"Request Validation Error: {fields} - URL: {request.url}")

    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            _error_body(
                request,
                "validation_error",
                error_code=ErrorCode.VALIDATION_ERROR.value,
                message="; ".join(f"{field}: {error.get('msg')}" for field, error in zip(fields, errors)),
                field=fields[0] if fields else None,
                missing_fields=missing,
                errors=[{"field": field, "message": error.get("msg")} for field, error in zip(fields, errors)],
            )
        ),
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitException) -> JSONResponse:
    """
    Manejador para errores de rate limiting.

    Args:
        request: Request de FastAPI
        exc: Excepción de rate limiting

    Returns:
        JSONResponse: Respuesta JSON con información de rate limit
    """
    logger.warning(
        f"Rate Limit Exception: {exc.message} - "
        f"Limit: {exc.limit} - "
        f"Reset Time: {exc.reset_time} - "
        f"URL: {request.url}"
    )

    headers = {
        "Retry-After": str(exc.retry_after),
        "X-Rate-Limit-Limit": str(exc.limit),
        "X-Rate-Limit-Reset": str(exc.reset_time),
    }

    return JSONResponse(
        status_code=429,
        content=_error_body(
            request,
            "rate_limit_error",
            error_code=exc.error_code.value,
            message=exc.message,
            limit=exc.limit,
            retry_after=exc.retry_after,
            reset_time=exc.reset_time,
        ),
        headers=headers,
    )


async def lock_exception_handler(request: Request, exc: LockAcquisitionError) -> JSONResponse:
    """
    Manejador para pedidos bloqueados por otra actualización en curso.
    """
    logger.warning(f"Order Lock Busy: {exc.message} - Key: {exc.lock_key} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            request,
            "conflict_error",
            error_code=exc.error_code.value,
            message=exc.message,
            retry_suggested=True,
        ),
        headers={"Retry-After": "1"},
    )


async def persistence_exception_handler(request: Request, exc: PersistenceException) -> JSONResponse:
    """
    Manejador específico para fallos de la base de datos.

    Args:
        request: Request de FastAPI
        exc: Excepción de persistencia

    Returns:
        JSONResponse: Respuesta JSON con información del error
    """
    logger.error(
        f"Persistence Exception: {exc.message} - "
        f"Operation: {exc.operation} - "
        f"Connection Type: {exc.connection_type} - "
        f"URL: {request.url}"
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(
            request,
            "persistence_error",
            error_code=exc.error_code.value,
            message=exc.message if settings.DEBUG else "Storage temporarily unavailable",
            operation=exc.operation,
            retry_suggested=exc.is_retryable,
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Manejador para HTTPException estándar de FastAPI.

    Args:
        request: Request de FastAPI
        exc: HTTPException

    Returns:
        JSONResponse: Respuesta JSON estandarizada
    """
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, "http_error", status_code=exc.status_code, message=exc.detail),
    )


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Manejador para HTTPException de Starlette (nivel más bajo).

    Args:
        request: Request de FastAPI
        exc: StarletteHTTPException

    Returns:
        JSONResponse: Respuesta JSON estandarizada
    """
    logger.warning(f"Starlette HTTP Exception: {exc.status_code} - {exc.detail} - URL: {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, "http_error", status_code=exc.status_code, message=exc.detail),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Manejador global para excepciones no capturadas.

    Args:
        request: Request de FastAPI
        exc: Excepción no manejada

    Returns:
        JSONResponse: Respuesta JSON de error interno
    """
    logger.error(
        f"Unhandled Exception: {str(exc)} - "
        f"Type: {type(exc).__name__} - "
        f"URL: {request.url} - "
        f"Traceback: {traceback.format_exc()}"
    )

    # Respuesta genérica (sin exponer detalles internos)
    error_message = "Internal server error occurred"
    if settings.DEBUG:
        error_message = f"{type(exc).__name__}: {str(exc)}"

    return JSONResponse(
        status_code=500,
        content=_error_body(
            request,
            "internal_server_error",
            message=error_message,
            traceback=traceback.format_exc() if settings.DEBUG else None,
        ),
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configura todos los manejadores de excepciones de la aplicación.

    Args:
        app: Instancia de FastAPI
    """
    logger.info("🔧 Configurando manejadores de excepciones...")

    # Manejadores específicos (orden de especificidad)
    app.add_exception_handler(ValidationException, validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(RateLimitException, rate_limit_exception_handler)
    app.add_exception_handler(LockAcquisitionError, lock_exception_handler)
    app.add_exception_handler(PersistenceException, persistence_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)

    # Manejadores HTTP estándar
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)

    # Manejador global (debe ser el último)
    app.add_exception_handler(Exception, global_exception_handler)

    logger.info("✅ Manejadores de excepciones configurados correctamente")
