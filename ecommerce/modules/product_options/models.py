from typing import List, Optional
from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ecommerce.core.db.base import BaseModel


class ProductOption(BaseModel):
    """
    A variation dimension of a product (color, size, ...).
    The name is a lowercase snake_case key, unique per product.
    """

    __tablename__ = "product_option"

    __table_args__ = (
        UniqueConstraint("product_id", "name", name="uq_product_option_product_name"),
        Index("idx_product_option_product_id", "product_id"),
    )

    product_id: Mapped[int] = mapped_column(
        ForeignKey("product.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)

    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    values: Mapped[List["ProductOptionValue"]] = relationship(
        "ProductOptionValue",
        back_populates="option",
        order_by="ProductOptionValue.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<ProductOption(id={self.id}, product_id={self.product_id}, name='{self.name}')>"


class ProductOptionValue(BaseModel):
    """
    One allowed value of an option. The value is lowercase-trimmed and unique
    per option; it cannot change once created.
    """

    __tablename__ = "product_option_value"

    __table_args__ = (
        UniqueConstraint("option_id", "value", name="uq_product_option_value_option_value"),
        Index("idx_product_option_value_option_id", "option_id"),
    )

    option_id: Mapped[int] = mapped_column(
        ForeignKey("product_option.id", ondelete="CASCADE"), nullable=False
    )

    value: Mapped[str] = mapped_column(String(100), nullable=False)

    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    color_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    option: Mapped["ProductOption"] = relationship(
        "ProductOption", back_populates="values"
    )

    def __repr__(self) -> str:
        return f"<ProductOptionValue(id={self.id}, option_id={self.option_id}, value='{self.value}')>"
