from typing import List, Optional
from sqlalchemy import (
    JSON,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ecommerce.core.db.base import BaseModel


class ProductVariant(BaseModel):
    """
    A purchasable combination of option values of a product.

    Exactly one variant per product carries is_default. ``stock`` is optional:
    NULL means the seller does not track inventory for the variant.
    """

    __tablename__ = "product_variant"

    __table_args__ = (
        Index("uq_product_variant_sku", "sku", unique=True),
        Index("idx_product_variant_product_id", "product_id"),
        Index("idx_product_variant_product_default", "product_id", "is_default"),
    )

    product_id: Mapped[int] = mapped_column(
        ForeignKey("product.id", ondelete="CASCADE"), nullable=False
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    price: Mapped[float] = mapped_column(Float, nullable=False)

    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    allow_purchase: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="1"
    )

    stock: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)

    is_popular: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    @property
    def in_stock(self) -> bool:
        """Purchasable and, when stock is tracked, with units left."""
        return bool(self.allow_purchase) and (self.stock is None or self.stock > 0)

    def __repr__(self) -> str:
        return f"<ProductVariant(id={self.id}, product_id={self.product_id}, sku='{self.sku}')>"


class VariantOptionValue(BaseModel):
    """
    Join row binding a variant to the chosen value of one option.
    A variant has exactly one row per option of its product.
    """

    __tablename__ = "variant_option_value"

    __table_args__ = (
        UniqueConstraint("variant_id", "option_id", name="uq_variant_option_value_variant_option"),
        Index("idx_variant_option_value_variant_id", "variant_id"),
        Index("idx_variant_option_value_option_value_id", "option_value_id"),
        Index("idx_variant_option_value_option_id", "option_id"),
    )

    variant_id: Mapped[int] = mapped_column(
        ForeignKey("product_variant.id", ondelete="CASCADE"), nullable=False
    )

    option_id: Mapped[int] = mapped_column(
        ForeignKey("product_option.id", ondelete="CASCADE"), nullable=False
    )

    option_value_id: Mapped[int] = mapped_column(
        ForeignKey("product_option_value.id", ondelete="CASCADE"), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<VariantOptionValue(variant_id={self.variant_id}, option_id={self.option_id}, "
            f"option_value_id={self.option_value_id})>"
        )
