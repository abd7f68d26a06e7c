"""
Definición de tablas de la base de datos (SQLAlchemy Core).

Las variantes viven en su propia tabla pero solo se acceden a través del
producto dueño; los pedidos referencian producto y variante por valor.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
)

metadata = MetaData()

products_table = Table(
    "products",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("slug", String(220), nullable=False, unique=True),
    Column("description", Text, nullable=False, default=""),
    Column("brand", String(120), nullable=False, default=""),
    Column("tags", JSON, nullable=False, default=list),
    Column("images", JSON, nullable=False, default=list),
    Column("is_featured", Boolean, nullable=False, default=False),
    Column("base_price", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("base_price >= 0", name="ck_products_base_price"),
)

product_variants_table = Table(
    "product_variants",
    metadata,
    Column("product_id", String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("sku", String(120), nullable=False),
    Column("position", Integer, nullable=False),
    Column("name", String(200), nullable=False),
    Column("price", Integer, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("images", JSON, nullable=False, default=list),
    Column("is_default", Boolean, nullable=False, default=False),
    PrimaryKeyConstraint("product_id", "sku", name="pk_product_variants"),
    CheckConstraint("stock >= 0", name="ck_product_variants_stock"),
    CheckConstraint("price >= 0", name="ck_product_variants_price"),
)

orders_table = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    # Referencia por valor: el producto puede borrarse sin tocar el pedido
    Column("product_id", String(36), nullable=False),
    Column("variant_sku", String(120), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price", Integer, nullable=False),
    Column("shipping_fee", Integer, nullable=False),
    Column("total_price", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("customer_name", String(200), nullable=False),
    Column("customer_phone", String(30), nullable=False),
    Column("customer_email", String(254), nullable=False, default=""),
    Column("region", String(120), nullable=False),
    Column("delivery_method", String(20), nullable=False),
    Column("address", Text, nullable=False, default=""),
    Column("note", Text, nullable=False, default=""),
    Column("status", String(20), nullable=False, default="pending"),
    Column("stock_reserved", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("quantity >= 1", name="ck_orders_quantity"),
    Index("ix_orders_status", "status"),
    Index("ix_orders_created_at", "created_at"),
)

shipping_regions_table = Table(
    "shipping_regions",
    metadata,
    Column("name", String(120), primary_key=True),
    # Nombre normalizado para búsqueda sin distinguir mayúsculas
    Column("name_key", String(120), nullable=False, unique=True),
    Column("home_fee", Integer, nullable=False),
    Column("pickup_fee", Integer, nullable=False),
    CheckConstraint("home_fee >= 0", name="ck_shipping_regions_home_fee"),
    CheckConstraint("pickup_fee >= 0", name="ck_shipping_regions_pickup_fee"),
)
