"""
Módulo de acceso a base de datos de la tienda.

- ConnDB: Gestión exclusiva de conexiones y del esquema
- repositories: Operaciones de persistencia por agregado
"""

from app.db.connection import (
    ConnDB,
    close_database,
    get_db_connection,
    initialize_database,
    set_db_connection,
)

__all__ = [
    "ConnDB",
    "get_db_connection",
    "set_db_connection",
    "initialize_database",
    "close_database",
]
