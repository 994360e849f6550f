"""
Variants Router - variant commands, bulk operations and queries.
Mutations are restricted to admins and the owning seller.
"""

from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.engine import get_db_util
from ecommerce.core.response_interceptor import skip_interceptor
from ecommerce.modules.users.auth import (
    TokenData,
    require_admin_or_seller,
    require_any_role,
    seller_scope,
)
from .bulk_service import VariantBulkService
from .query_service import VariantQueryService
from .service import VariantService
from .schemas import (
    BulkCreateVariantsRequest,
    BulkCreateVariantsResponse,
    BulkUpdateVariantsRequest,
    BulkUpdateVariantsResponse,
    CreateVariantRequest,
    ListVariantsQuery,
    UpdateStockRequest,
    UpdateStockResponse,
    UpdateVariantRequest,
    VariantAggregationResponse,
    VariantDetailResponse,
    VariantListResponse,
    VariantResponse,
)

OPTION_FILTER_PREFIX = "opt_"

router = APIRouter(prefix="/products/{product_id}/variants", tags=["variants"])
listing_router = APIRouter(prefix="/variants", tags=["variants"])


def list_variants_params(
    page: Optional[int] = Query(None, description="Page number, 1-indexed"),
    pageSize: Optional[int] = Query(None, description="Items per page (max 100)"),
    sortBy: Literal["price", "created_at", "updated_at"] = Query("created_at"),
    sortOrder: Literal["asc", "desc"] = Query("desc"),
    ids: Optional[List[int]] = Query(None),
    productIds: Optional[List[int]] = Query(None),
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    allowPurchase: Optional[bool] = Query(None),
    isPopular: Optional[bool] = Query(None),
    isDefault: Optional[bool] = Query(None),
    sku: Optional[str] = Query(None, description="Partial, case-insensitive SKU match"),
) -> ListVariantsQuery:
    return ListVariantsQuery(
        page=page,
        pageSize=pageSize,
        sortBy=sortBy,
        sortOrder=sortOrder,
        ids=ids,
        productIds=productIds,
        minPrice=minPrice,
        maxPrice=maxPrice,
        allowPurchase=allowPurchase,
        isPopular=isPopular,
        isDefault=isDefault,
        sku=sku,
    )


@listing_router.get("", response_model=VariantListResponse)
async def list_variants(
    request: Request,
    params: ListVariantsQuery = Depends(list_variants_params),
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """
    List variants with filters and pagination.
    Option filters are passed as opt_<name>=<value>, e.g. ?opt_color=red&opt_size=m
    """
    option_filters = {
        key[len(OPTION_FILTER_PREFIX):]: value
        for key, value in request.query_params.items()
        if key.startswith(OPTION_FILTER_PREFIX) and key != OPTION_FILTER_PREFIX
    }
    return await VariantQueryService.list_variants(
        db, params, seller_scope(current_user), option_filters
    )


@router.get("", response_model=List[VariantResponse])
async def get_product_variants(
    product_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """All variants of a product with their selected options"""
    return await VariantQueryService.get_product_variants_with_options(
        db, product_id, seller_scope(current_user)
    )


@router.get("/aggregation", response_model=VariantAggregationResponse)
async def get_variant_aggregation(
    product_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Price range, stock and option summary of a product's variants"""
    return await VariantQueryService.get_product_variant_aggregation(
        db, product_id, seller_scope(current_user)
    )


@router.get("/find", response_model=VariantDetailResponse)
async def find_variant_by_options(
    product_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Find the variant for a selection given as query params, e.g. ?color=red&size=m"""
    return await VariantQueryService.find_variant_by_options(
        db, product_id, dict(request.query_params), seller_scope(current_user)
    )


@router.post("", response_model=VariantResponse, status_code=201)
async def create_variant(
    product_id: int,
    dto: CreateVariantRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Create a variant (Admin/owning Seller only)"""
    return await VariantService.create_variant(
        db, product_id, seller_scope(current_user), dto
    )


@router.post("/bulk", response_model=BulkCreateVariantsResponse, status_code=201)
async def bulk_create_variants(
    product_id: int,
    dto: BulkCreateVariantsRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Create several variants atomically (Admin/owning Seller only)"""
    return await VariantBulkService.bulk_create_variants(
        db, product_id, seller_scope(current_user), dto.variants
    )


@router.put("/bulk", response_model=BulkUpdateVariantsResponse)
async def bulk_update_variants(
    product_id: int,
    dto: BulkUpdateVariantsRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Patch several variants atomically; the last isDefault=true wins"""
    return await VariantBulkService.bulk_update_variants(
        db, product_id, seller_scope(current_user), dto.variants
    )


@router.get("/{variant_id}", response_model=VariantDetailResponse)
async def get_variant(
    product_id: int,
    variant_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_any_role),
):
    """Variant detail with selected options"""
    return await VariantQueryService.get_variant_by_id(
        db, product_id, variant_id, seller_scope(current_user)
    )


@router.patch("/{variant_id}", response_model=VariantResponse)
async def update_variant(
    product_id: int,
    variant_id: int,
    dto: UpdateVariantRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Update a variant (Admin/owning Seller only)"""
    return await VariantService.update_variant(
        db, product_id, variant_id, seller_scope(current_user), dto
    )


@router.patch("/{variant_id}/stock", response_model=UpdateStockResponse)
async def update_variant_stock(
    product_id: int,
    variant_id: int,
    dto: UpdateStockRequest,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Set, add to or subtract from a variant's stock"""
    return await VariantService.update_variant_stock(
        db, product_id, variant_id, seller_scope(current_user), dto
    )


@router.delete("/{variant_id}")
@skip_interceptor
async def delete_variant(
    product_id: int,
    variant_id: int,
    db: AsyncSession = Depends(get_db_util),
    current_user: TokenData = Depends(require_admin_or_seller),
):
    """Delete a variant; the product's last variant cannot be deleted"""
    await VariantService.delete_variant(db, product_id, variant_id, seller_scope(current_user))
    return {"success": True, "message": "Variant deleted successfully"}
