"""Ownership rules for products."""

from typing import Optional

from ecommerce.core.exceptions import PRODUCT_NOT_FOUND, NotFoundError
from .models import Product


def validate_ownership(product: Product, seller_id: Optional[int]) -> None:
    """
    Check that the caller may act on the product.

    ``seller_id=None`` is the admin bypass. A seller asking for someone else's
    product gets the same answer as for a missing one, so product ids of other
    tenants are not disclosed.

    Raises:
        NotFoundError: If the product belongs to another seller
    """
    if seller_id is None:
        return
    if product.seller_id != seller_id:
        raise NotFoundError("Product", product.id, error_code=PRODUCT_NOT_FOUND)
