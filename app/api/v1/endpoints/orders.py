"""
Endpoints de pedidos.

- POST /orders: compra desde la tienda (con rate limiting por IP)
- GET /orders: listado paginado para el back-office
- GET /orders/{order_id}: detalle
- PUT /orders/{order_id}/status: transición de estado
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.api.v1.schemas.order_schemas import (
    OrderListResponse,
    OrderPlacementRequest,
    OrderPlacementResponse,
    OrderResponse,
    OrderStatusUpdateRequest,
)
from app.core.config import get_settings
from app.core.rate_limiter import limit_order_placement
from app.db.connection import get_db_connection
from app.db.repositories import OrderRepository
from app.domain.value_objects import OrderStatus
from app.services.orders import create_lifecycle_engine, create_placement_service
from app.utils.error_handler import NotFoundException, ValidationException

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()

ALL_STATUSES = "all"


@router.post(
    "",
    response_model=OrderPlacementResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_order_placement)],
)
async def place_order(payload: OrderPlacementRequest, request: Request, response: Response):
    """
    Crea un pedido pendiente.

    El stock no se descuenta hasta que el pedido se confirma.

    Args:
        payload: Datos del pedido enviados por el cliente

    Returns:
        OrderPlacementResponse: Pedido creado
    """
    service = create_placement_service(get_db_connection())
    order = await service.place_order(payload.to_payload())

    remaining = getattr(request.state, "rate_limit_remaining", None)
    if remaining is not None:
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)

    return {"success": True, "message": "Order placed successfully", "order": order.to_dict()}


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[str] = Query(
        None, alias="status", description=f"Estado ({' | '.join(OrderStatus.values())}) o 'all'"
    ),
    search: Optional[str] = Query(None, max_length=100, description="Busca en nombre, teléfono y email"),
    page: int = Query(1, ge=1, description="Página (desde 1)"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE_ORDERS, ge=1, le=100, description="Pedidos por página"),
):
    """
    Lista pedidos, más recientes primero.
    """
    if status_filter and status_filter != ALL_STATUSES and OrderStatus.parse(status_filter) is None:
        raise ValidationException(
            message=f"Unknown order status '{status_filter}'",
            field="status",
            invalid_value=status_filter,
            expected_format=" | ".join([*OrderStatus.values(), ALL_STATUSES]),
        )

    normalized = OrderStatus.parse(status_filter).value if status_filter and status_filter != ALL_STATUSES else None

    result = await OrderRepository(get_db_connection()).list_orders(
        status=normalized,
        search=search,
        page=page,
        limit=limit,
    )
    return {"orders": [order.to_dict() for order in result.items], "pagination": result.pagination()}


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str):
    """
    Detalle de un pedido.
    """
    order = await OrderRepository(get_db_connection()).get_order(order_id)
    if order is None:
        raise NotFoundException(message=f"Order {order_id} not found", resource="order", resource_id=order_id)
    return order.to_dict()


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, payload: OrderStatusUpdateRequest):
    """
    Cambia el estado de un pedido.

    Confirmar descuenta stock; cancelar un pedido confirmado o enviado lo
    devuelve. Pedir el estado actual, o cualquier cambio sobre un pedido
    entregado o cancelado, no modifica nada.
    """
    engine = create_lifecycle_engine(get_db_connection())
    order = await engine.update_status(order_id, payload.status)
    return order.to_dict()
