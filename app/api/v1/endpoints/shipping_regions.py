"""
Endpoints de regiones de envío (datos de referencia para el precio del envío).
"""

import logging
from typing import List

from fastapi import APIRouter, Path

from app.api.v1.schemas.catalog_schemas import ShippingRegionInput, ShippingRegionResponse
from app.core.config import get_settings
from app.db.connection import get_db_connection
from app.db.repositories import ShippingRegionRepository
from app.domain.models import ShippingRegionDomain
from app.domain.value_objects import Money

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ShippingRegionResponse])
async def list_shipping_regions():
    regions = await ShippingRegionRepository(get_db_connection()).list_regions()
    return [region.to_dict() for region in regions]


@router.put("/{name}", response_model=ShippingRegionResponse)
async def upsert_shipping_region(
    payload: ShippingRegionInput,
    name: str = Path(..., min_length=1, max_length=80, description="Nombre de la región"),
):
    """
    Crea o actualiza las tarifas de una región. La búsqueda del nombre no
    distingue mayúsculas; una región existente conserva su nombre original.
    """
    currency = get_settings().CURRENCY
    region = ShippingRegionDomain(
        name=name.strip(),
        home_fee=Money.of(payload.home_fee, currency=currency),
        pickup_fee=Money.of(payload.pickup_fee, currency=currency),
    )
    stored = await ShippingRegionRepository(get_db_connection()).upsert_region(region)
    return stored.to_dict()
