"""
Product domain model (Aggregate Root).

A product exclusively owns its ordered list of variants. Variants carry
their own price and stock and are only reachable through the product.
"""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.domain.value_objects.money import DEFAULT_CURRENCY, Money

# Upper bounds keep every stored amount (price x quantity + fee) inside a
# 64-bit integer column.
MAX_VARIANT_PRICE = 100_000_000
MAX_VARIANT_STOCK = 1_000_000


def slugify(name: str) -> str:
    """
    Derive a URL slug from a product name.

    Lowercases, turns whitespace into dashes, drops every character that is
    not a word character or a dash, and collapses repeated dashes.
    """
    slug = name.strip().lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w\-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


@dataclass
class VariantDomain:
    """
    A purchasable configuration of a product (size, color, edition...).

    Attributes:
        sku: Identifier unique within the owning product
        name: Display name (e.g. "Black Cap")
        price: Unit price
        stock: Units available, never negative
        images: Image references
        is_default: Whether this is the product's default variant
    """

    sku: str
    name: str
    price: Money
    stock: int = 0
    images: list[str] = field(default_factory=list)
    is_default: bool = False

    def __post_init__(self) -> None:
        if not self.sku or not self.sku.strip():
            raise ValueError("Variant SKU is required")
        if not self.name or not self.name.strip():
            raise ValueError(f"Variant name is required (sku={self.sku})")
        if isinstance(self.stock, bool) or not isinstance(self.stock, int):
            raise ValueError(f"Variant stock must be an integer: {self.stock!r}")
        if self.stock < 0:
            raise ValueError(f"Variant stock cannot be negative: {self.stock}")

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "price": int(self.price.amount),
            "stock": self.stock,
            "images": list(self.images),
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], currency: str = DEFAULT_CURRENCY) -> "VariantDomain":
        """Build a variant from submitted data, enforcing the catalog limits."""
        price = Money.of(data["price"], currency=currency)
        stock = int(data.get("stock", 0))
        if price.amount > MAX_VARIANT_PRICE:
            raise ValueError(f"Variant price cannot exceed {MAX_VARIANT_PRICE}: {price.amount}")
        if stock > MAX_VARIANT_STOCK:
            raise ValueError(f"Variant stock cannot exceed {MAX_VARIANT_STOCK}: {stock}")
        return cls(
            sku=data["sku"],
            name=data["name"],
            price=price,
            stock=stock,
            images=list(data.get("images") or []),
            is_default=bool(data.get("is_default", False)),
        )


@dataclass
class ProductDomain:
    """
    Domain model representing a catalog product.

    Invariants (restored by ``normalize_variants`` on every save):
    - at least one variant, SKUs unique within the product
    - exactly one variant has ``is_default = True``
    - ``base_price`` equals the default variant's price

    Attributes:
        name: Product name
        slug: URL-safe identifier derived from the name
        description: Long description
        variants: Ordered variant list
        brand: Brand name
        tags: Free-form tags ("street", "sport", ...)
        images: Product-level image references
        is_featured: Highlighted on the storefront
        base_price: Price of the default variant (derived)
        id: Product ID (None until persisted)
    """

    name: str
    slug: str
    description: str
    variants: list[VariantDomain]
    brand: str = ""
    tags: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    is_featured: bool = False
    base_price: Money | None = None
    id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Product name is required")
        self.normalize_variants()

    @property
    def default_variant(self) -> VariantDomain:
        for variant in self.variants:
            if variant.is_default:
                return variant
        return self.variants[0]

    @property
    def total_stock(self) -> int:
        return sum(variant.stock for variant in self.variants)

    def find_variant(self, sku: str) -> VariantDomain | None:
        """Resolve a variant by SKU (exact match)."""
        for variant in self.variants:
            if variant.sku == sku:
                return variant
        return None

    def normalize_variants(self) -> None:
        """
        Enforce the default-variant invariant and recompute ``base_price``.

        The first variant flagged as default keeps the flag; any other flag is
        cleared. When no variant is flagged, the first one is promoted.

        Raises:
            ValueError: If the product has no variants or duplicate SKUs
        """
        if not self.variants:
            raise ValueError(f"Product '{self.name}' must have at least one variant")

        seen: set[str] = set()
        for variant in self.variants:
            if variant.sku in seen:
                raise ValueError(f"Duplicate variant SKU '{variant.sku}' in product '{self.name}'")
            seen.add(variant.sku)

        default_found = False
        for variant in self.variants:
            if variant.is_default and not default_found:
                default_found = True
            else:
                variant.is_default = False

        if not default_found:
            self.variants[0].is_default = True

        self.base_price = self.default_variant.price

    def rename(self, new_name: str, new_slug: str) -> None:
        """Change the name; the slug only moves together with the name."""
        if not new_name or not new_name.strip():
            raise ValueError("Product name is required")
        self.name = new_name
        self.slug = new_slug

    def to_dict(self) -> dict[str, Any]:
        """Convert product to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "brand": self.brand,
            "tags": list(self.tags),
            "images": list(self.images),
            "is_featured": self.is_featured,
            "base_price": int(self.base_price.amount) if self.base_price else None,
            "variants": [variant.to_dict() for variant in self.variants],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
