"""
Endpoint del resumen de ventas para el back-office.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter

from app.db.connection import get_db_connection
from app.services.dashboard_service import create_dashboard_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary")
async def get_dashboard_summary() -> Dict[str, Any]:
    """
    Totales de pedidos, ingresos (confirmados y entregados), pedidos de hoy,
    tasa de cancelación y la actividad de los últimos 30 días.
    """
    return await create_dashboard_service(get_db_connection()).get_summary()
