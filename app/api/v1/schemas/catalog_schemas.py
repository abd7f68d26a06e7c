"""
Modelos Pydantic para el catálogo (productos y variantes) y las regiones
de envío.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.domain.models import MAX_VARIANT_PRICE, MAX_VARIANT_STOCK


class VariantInput(BaseModel):
    """Variante enviada al crear o editar un producto."""

    sku: str = Field(..., min_length=1, max_length=64, description="SKU único dentro del producto")
    name: str = Field(..., min_length=1, max_length=120, description="Nombre visible (talla, color...)")
    price: int = Field(
        ..., ge=0, le=MAX_VARIANT_PRICE, description="Precio en unidades enteras de la moneda de la tienda"
    )
    stock: int = Field(default=0, ge=0, le=MAX_VARIANT_STOCK, description="Unidades disponibles")
    images: List[str] = Field(default_factory=list)
    is_default: bool = Field(default=False, description="Variante mostrada por defecto")

    @field_validator("sku", "name", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ProductCreateRequest(BaseModel):
    """Alta de producto. Debe tener al menos una variante."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    brand: str = Field(default="", max_length=120)
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_featured: bool = False
    variants: List[VariantInput] = Field(..., min_length=1)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        """Acepta tags como lista o string separado por comas."""
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    def to_data(self) -> Dict[str, Any]:
        return self.model_dump()


class ProductUpdateRequest(BaseModel):
    """Edición parcial: solo cambian los campos enviados."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    brand: Optional[str] = Field(None, max_length=120)
    tags: Optional[List[str]] = None
    images: Optional[List[str]] = None
    is_featured: Optional[bool] = None
    variants: Optional[List[VariantInput]] = Field(None, min_length=1)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    def to_data(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class VariantResponse(BaseModel):
    sku: str
    name: str
    price: int
    stock: int
    images: List[str] = Field(default_factory=list)
    is_default: bool


class ProductResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str = ""
    brand: str = ""
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    is_featured: bool = False
    base_price: Optional[int] = None
    variants: List[VariantResponse] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProductPagination(BaseModel):
    current_page: int
    total_pages: int
    total_products: int
    has_next_page: bool
    has_prev_page: bool


class ProductListResponse(BaseModel):
    products: List[ProductResponse] = Field(default_factory=list)
    pagination: ProductPagination


class ShippingRegionInput(BaseModel):
    """Tarifas de envío de una región."""

    home_fee: int = Field(..., ge=0, le=MAX_VARIANT_PRICE, description="Tarifa de envío a domicilio")
    pickup_fee: int = Field(..., ge=0, le=MAX_VARIANT_PRICE, description="Tarifa de envío a punto de recogida")


class ShippingRegionResponse(BaseModel):
    name: str
    home_fee: int
    pickup_fee: int
