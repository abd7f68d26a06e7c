"""
Endpoints del catálogo de productos.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from app.api.v1.schemas.catalog_schemas import (
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from app.core.config import get_settings
from app.db.connection import get_db_connection
from app.db.repositories import ProductFilters
from app.services.catalog import create_product_service
from app.utils.error_handler import ValidationException

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ProductListResponse)
async def list_products(
    brand: Optional[str] = Query(None, description="Marca exacta"),
    min_price: Optional[int] = Query(None, ge=0, description="Precio base mínimo"),
    max_price: Optional[int] = Query(None, ge=0, description="Precio base máximo"),
    in_stock: Optional[bool] = Query(None, description="Solo productos con alguna variante en stock"),
    search: Optional[str] = Query(None, max_length=100, description="Busca en nombre y slug"),
    is_featured: Optional[bool] = Query(None, description="Solo destacados"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE_PRODUCTS, ge=1, le=100),
):
    """
    Lista productos con filtros y paginación, más recientes primero.
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationException(
            message="min_price cannot be greater than max_price",
            field="min_price",
            invalid_value=min_price,
        )

    filters = ProductFilters(
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        search=search,
        is_featured=is_featured,
        page=page,
        limit=limit,
    )
    result = await create_product_service(get_db_connection()).list_products(filters)
    return {"products": [product.to_dict() for product in result.items], "pagination": result.pagination()}


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str):
    product = await create_product_service(get_db_connection()).get_product(product_id)
    return product.to_dict()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreateRequest):
    """
    Crea un producto con sus variantes. El slug se genera a partir del nombre.
    """
    product = await create_product_service(get_db_connection()).create_product(payload.to_data())
    return product.to_dict()


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: str, payload: ProductUpdateRequest):
    """
    Edición parcial. Si se envían variantes, reemplazan a las actuales.
    """
    product = await create_product_service(get_db_connection()).update_product(product_id, payload.to_data())
    return product.to_dict()


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: str) -> None:
    await create_product_service(get_db_connection()).delete_product(product_id)
