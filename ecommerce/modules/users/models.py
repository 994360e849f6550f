import enum
from sqlalchemy import Boolean, String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from typing import Optional

from ecommerce.core.db.base import BaseModel


class Role(str, enum.Enum):
    """
    Catalog roles.

    SELLER owns products, ADMIN acts on any seller's catalog and CUSTOMER
    only reads.
    """

    ADMIN = "ADMIN"
    SELLER = "SELLER"
    CUSTOMER = "CUSTOMER"


class User(BaseModel):
    """
    Account of an admin, seller or customer.

    A seller's user id is the ``seller_id`` stored on its products, so
    accounts are deactivated rather than deleted.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )

    password: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[Role] = mapped_column(
        SQLEnum(Role, name="users_role_enum", native_enum=False),
        nullable=False,
        default=Role.CUSTOMER,
        server_default=Role.CUSTOMER.value,
    )

    # Storefront name shown to customers; sellers only
    store_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="1"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role={self.role.value})>"
