"""
Modelos Pydantic para la API de pedidos.

Los campos de la petición de compra son opcionales a propósito: el
OrderValidator reporta todos los campos faltantes en un único error.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.domain.value_objects import DeliveryMethod, OrderStatus


class OrderPlacementRequest(BaseModel):
    """Petición de compra enviada por el cliente desde la tienda."""

    product_id: Optional[str] = Field(None, description="ID del producto")
    variant_sku: Optional[str] = Field(None, max_length=64, description="SKU de la variante elegida")
    quantity: Optional[Any] = Field(None, description="Unidades (entero >= 1)")

    customer_name: Optional[str] = Field(None, max_length=120, description="Nombre del cliente")
    customer_phone: Optional[str] = Field(None, max_length=32, description="Teléfono móvil (0XXXXXXXXX o +213XXXXXXXXX)")
    customer_email: Optional[str] = Field(None, max_length=254, description="Email para notificaciones (opcional)")

    region: Optional[str] = Field(None, max_length=80, description="Región de envío")
    delivery_method: Optional[str] = Field(
        None, description=f"Método de entrega: {' | '.join(DeliveryMethod.values())}"
    )
    address: Optional[str] = Field(None, max_length=500, description="Dirección de entrega")
    note: Optional[str] = Field(None, max_length=1000, description="Nota libre del cliente")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class OrderStatusUpdateRequest(BaseModel):
    """Cambio de estado solicitado desde el back-office."""

    status: str = Field(..., description=f"Nuevo estado: {' | '.join(OrderStatus.values())}")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        """Normaliza espacios y mayúsculas; el motor valida el valor."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class OrderResponse(BaseModel):
    """Pedido tal como lo devuelve la API."""

    id: str
    product_id: str
    variant_sku: str
    quantity: int
    unit_price: int
    subtotal: int
    shipping_fee: int
    total_price: int
    currency: str
    customer_name: str
    customer_phone: str
    customer_email: str = ""
    region: str
    delivery_method: str
    address: str
    note: str = ""
    status: str
    stock_reserved: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class OrderPagination(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next_page: bool
    has_prev_page: bool


class OrderListResponse(BaseModel):
    orders: List[OrderResponse] = Field(default_factory=list)
    pagination: OrderPagination


class OrderPlacementResponse(BaseModel):
    success: bool = True
    message: str
    order: OrderResponse
