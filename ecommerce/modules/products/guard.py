from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product
from .repository import ProductRepository
from .validator import validate_ownership


async def get_owned_product(
    db: AsyncSession, product_id: int, seller_id: Optional[int]
) -> Product:
    """
    Load a product and apply the seller scope in one place.

    Raises:
        NotFoundError: If the product is missing or owned by another seller
    """
    product = await ProductRepository.find_product_by_id(db, product_id)
    validate_ownership(product, seller_id)
    return product
