"""
Products Router - product lifecycle endpoints.
Protected with role-based access control; sellers are scoped to their own products.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.engine import get_db_util
from ecommerce.core.response_interceptor import skip_interceptor
from ecommerce.modules.users.auth import (
    TokenData,
    require_admin_or_seller,
    require_any_role,
    seller_scope,
)
from .service import ProductService
from .schemas import (
    CreateProductRequest,
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
    UpdateProductRequest,
)

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductDetailResponse, status_code=201)
async def create_product(
    dto: CreateProductRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Create a product with options and variants (Admin/Seller only)"""
    return await ProductService.create_product(db, seller_scope(current_user), dto)


@router.get("", response_model=ProductListResponse)
async def get_all_products(
    page: Optional[int] = Query(None),
    pageSize: Optional[int] = Query(None),
    categoryId: Optional[int] = Query(None),
    sellerId: Optional[int] = Query(None, description="Admins/customers: filter by seller"),
    search: Optional[str] = Query(None, description="Search by product name"),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role)
):
    """
    List products with their variant summary.
    Sellers only ever see their own products.
    """
    scope = seller_scope(current_user)
    return await ProductService.list_products(
        db,
        scope if scope is not None else sellerId,
        page=page,
        page_size=pageSize,
        category_id=categoryId,
        search=search,
    )


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product_by_id(
    product_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role)
):
    """Get product with options, variants and variant summary"""
    return await ProductService.get_product(db, product_id, seller_scope(current_user))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    dto: UpdateProductRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Update product information (Admin/owning Seller only)"""
    return await ProductService.update_product(
        db, product_id, seller_scope(current_user), dto
    )


@router.delete("/{product_id}")
@skip_interceptor
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Delete product with all options and variants (Admin/owning Seller only)"""
    await ProductService.delete_product(db, product_id, seller_scope(current_user))
    return {"success": True, "message": "Product deleted successfully"}
