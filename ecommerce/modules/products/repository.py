"""
ProductRepository - all SQL touching the product table.
"""

from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.exceptions import PRODUCT_NOT_FOUND, NotFoundError
from ecommerce.core.pagination import paginate_query
from .models import Product


class ProductRepository:
    """Data access for products."""

    @staticmethod
    async def create_product(db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.flush()
        return product

    @staticmethod
    async def update_product(
        db: AsyncSession, product: Product, changes: Dict[str, Any]
    ) -> Product:
        for key, value in changes.items():
            setattr(product, key, value)
        await db.flush()
        return product

    @staticmethod
    async def delete_product(db: AsyncSession, product_id: int) -> None:
        await db.execute(delete(Product).where(Product.id == product_id))

    @staticmethod
    async def find_product_by_id(db: AsyncSession, product_id: int) -> Product:
        """
        Fetch a product by id.

        Raises:
            NotFoundError: If the product does not exist
        """
        product = await db.scalar(select(Product).where(Product.id == product_id))
        if not product:
            raise NotFoundError("Product", product_id, error_code=PRODUCT_NOT_FOUND)
        return product

    @staticmethod
    async def lock_product(db: AsyncSession, product_id: int) -> Product:
        """
        Take a row lock on the product for the rest of the transaction.

        Every variant mutation starts with this call so that count, default and
        combination checks see a stable picture. SQLite ignores FOR UPDATE and
        serializes writers on its database lock instead.

        Raises:
            NotFoundError: If the product was deleted meanwhile
        """
        product = await db.scalar(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if not product:
            raise NotFoundError("Product", product_id, error_code=PRODUCT_NOT_FOUND)
        return product

    @staticmethod
    async def find_products(
        db: AsyncSession,
        page: int,
        page_size: int,
        seller_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Product], int]:
        """
        Paginated product listing, newest first.
        Optimized: one COUNT plus one page SELECT.
        """
        query = select(Product)
        if seller_id is not None:
            query = query.where(Product.seller_id == seller_id)
        if category_id is not None:
            query = query.where(Product.category_id == category_id)
        if search:
            query = query.where(Product.name.icontains(search, autoescape=True))
        query = query.order_by(Product.created_at.desc(), Product.id.desc())

        return await paginate_query(db, query, page, page_size)
