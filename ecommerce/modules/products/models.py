from typing import List, Optional
from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ecommerce.core.db.base import BaseModel


class Product(BaseModel):
    """
    Product model - root of the variant aggregate.

    Options, option values, variants and their option links all hang off a
    product and are removed with it (ON DELETE CASCADE plus an explicit
    bottom-up delete in the service).
    """

    __tablename__ = "product"

    __table_args__ = (
        Index("uq_product_base_sku", "base_sku", unique=True),
        Index("idx_product_seller_id", "seller_id"),
        Index("idx_product_category_id", "category_id"),
    )

    seller_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    brand: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Nullable: products created without auto-generation may skip it
    base_sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    category_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    short_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    long_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', base_sku='{self.base_sku}')>"
