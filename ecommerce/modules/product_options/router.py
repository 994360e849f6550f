"""
Product Options Router - options and option values of a product.
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.engine import get_db_util
from ecommerce.core.response_interceptor import skip_interceptor
from ecommerce.modules.users.auth import (
    TokenData,
    require_admin_or_seller,
    require_any_role,
    seller_scope,
)
from .service import ProductOptionService
from .schemas import (
    AvailableOptionsResponse,
    BulkAddOptionValuesRequest,
    BulkUpdateOptionValuesRequest,
    BulkUpdateOptionsRequest,
    CreateOptionRequest,
    OptionResponse,
    OptionValueInput,
    OptionValueResponse,
    UpdateOptionRequest,
    UpdateOptionValueRequest,
)

router = APIRouter(prefix="/products/{product_id}/options", tags=["product-options"])


@router.get("", response_model=AvailableOptionsResponse)
async def get_available_options(
    product_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role)
):
    """Options with their values and how many variants use each value"""
    return await ProductOptionService.get_available_options(
        db, product_id, seller_scope(current_user)
    )


@router.post("", response_model=OptionResponse, status_code=201)
async def add_option(
    product_id: int,
    dto: CreateOptionRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Add an option (and its initial values) to a product"""
    return await ProductOptionService.add_option(db, product_id, seller_scope(current_user), dto)


@router.put("/bulk", response_model=List[OptionResponse])
async def bulk_update_options(
    product_id: int,
    dto: BulkUpdateOptionsRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Update display names/positions of several options"""
    return await ProductOptionService.bulk_update_options(
        db, product_id, seller_scope(current_user), dto
    )


@router.patch("/{option_id}", response_model=OptionResponse)
async def update_option(
    product_id: int,
    option_id: int,
    dto: UpdateOptionRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Update an option's display name or position"""
    return await ProductOptionService.update_option(
        db, product_id, option_id, seller_scope(current_user), dto
    )


@router.delete("/{option_id}")
@skip_interceptor
async def delete_option(
    product_id: int,
    option_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Delete an option that no variant uses"""
    await ProductOptionService.delete_option(db, product_id, option_id, seller_scope(current_user))
    return {"success": True, "message": "Option deleted successfully"}


@router.post("/{option_id}/values", response_model=OptionValueResponse, status_code=201)
async def add_option_value(
    product_id: int,
    option_id: int,
    dto: OptionValueInput,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Add a value to an option"""
    return await ProductOptionService.add_value(
        db, product_id, option_id, seller_scope(current_user), dto
    )


@router.post("/{option_id}/values/bulk", response_model=List[OptionValueResponse], status_code=201)
async def bulk_add_option_values(
    product_id: int,
    option_id: int,
    dto: BulkAddOptionValuesRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Add several values to an option"""
    return await ProductOptionService.add_values(
        db, product_id, option_id, seller_scope(current_user), dto
    )


@router.put("/{option_id}/values/bulk", response_model=List[OptionValueResponse])
async def bulk_update_option_values(
    product_id: int,
    option_id: int,
    dto: BulkUpdateOptionValuesRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Update several values of an option"""
    return await ProductOptionService.bulk_update_values(
        db, product_id, option_id, seller_scope(current_user), dto
    )


@router.patch("/{option_id}/values/{value_id}", response_model=OptionValueResponse)
async def update_option_value(
    product_id: int,
    option_id: int,
    value_id: int,
    dto: UpdateOptionValueRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Update a value's display name, color code or position"""
    return await ProductOptionService.update_value(
        db, product_id, option_id, value_id, seller_scope(current_user), dto
    )


@router.delete("/{option_id}/values/{value_id}")
@skip_interceptor
async def delete_option_value(
    product_id: int,
    option_id: int,
    value_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller)
):
    """Delete a value that no variant uses"""
    await ProductOptionService.delete_value(
        db, product_id, option_id, value_id, seller_scope(current_user)
    )
    return {"success": True, "message": "Option value deleted successfully"}
