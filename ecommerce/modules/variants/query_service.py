"""
VariantQueryService - read side of the variant model.
"""

import logging
from typing import Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.exceptions import (
    PRODUCT_OPTION_NOT_FOUND,
    VARIANT_NOT_FOUND,
    NotFoundError,
    ValidationError,
)
from ecommerce.core.pagination import normalize_page_params
from ecommerce.core.utils import normalize_to_snake_case, to_lower_trimmed
from ecommerce.modules.product_options.repository import ProductOptionRepository
from ecommerce.modules.products.guard import get_owned_product
from . import factory, validator
from .repository import VariantAggregation, VariantFilters, VariantRepository
from .schemas import (
    ListVariantsQuery,
    ProductBasicResponse,
    VariantAggregationResponse,
    VariantDetailResponse,
    VariantListResponse,
    VariantResponse,
)

logger = logging.getLogger(__name__)


def to_aggregation_response(aggregation: VariantAggregation) -> VariantAggregationResponse:
    return VariantAggregationResponse(
        hasVariants=aggregation.has_variants,
        totalVariants=aggregation.total_variants,
        minPrice=aggregation.min_price,
        maxPrice=aggregation.max_price,
        mainImage=aggregation.main_image,
        allowPurchase=aggregation.allow_purchase,
        inStock=aggregation.in_stock,
        totalStock=aggregation.total_stock,
        optionNames=list(aggregation.option_names),
        optionValues={name: list(values) for name, values in aggregation.option_values.items()},
    )


def normalize_option_filters(options: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {
        normalize_to_snake_case(name): to_lower_trimmed(value)
        for name, value in (options or {}).items()
    }


class VariantQueryService:
    """Lookups, aggregations and listings of variants."""

    @staticmethod
    async def get_variant_by_id(
        db: AsyncSession, product_id: int, variant_id: int, seller_id: Optional[int]
    ) -> VariantDetailResponse:
        """
        Variant detail with selected options and the product's basics.

        Raises:
            NotFoundError: Unknown product or variant, or a foreign product
        """
        product = await get_owned_product(db, product_id, seller_id)
        variant = await VariantRepository.find_variant_by_id(db, product_id, variant_id)
        selected = await VariantRepository.load_selected_options(db, [variant.id])

        base = factory.to_variant_response(variant, selected[variant.id])
        return VariantDetailResponse(
            **base.model_dump(),
            product=ProductBasicResponse(id=product.id, name=product.name, brand=product.brand),
        )

    @staticmethod
    async def find_variant_by_options(
        db: AsyncSession,
        product_id: int,
        options: Dict[str, str],
        seller_id: Optional[int] = None,
    ) -> VariantDetailResponse:
        """
        Resolve a selection like {"color": "red", "size": "m"} to its variant.

        Args:
            options: Option name -> value, normalized before matching

        Raises:
            ValidationError: Empty selection, blank entries, or a product without options
            NotFoundError: PRODUCT_OPTION_NOT_FOUND for unknown names,
                VARIANT_NOT_FOUND (with requested and available options) when
                nothing matches
        """
        product = await get_owned_product(db, product_id, seller_id)
        validator.validate_variant_options_structure(options)
        selection = normalize_option_filters(options)

        product_options = await ProductOptionRepository.find_options_by_product(db, product_id)
        if not product_options:
            raise ValidationError("Product has no options")
        known = {option.name for option in product_options}
        unknown = [name for name in selection if name not in known]
        if unknown:
            raise NotFoundError(
                "Product option",
                unknown,
                error_code=PRODUCT_OPTION_NOT_FOUND,
                message=f"Option '{unknown[0]}' not found for this product",
            )

        variant = await VariantRepository.find_variant_by_options(db, product_id, selection)
        if variant is None:
            raise NotFoundError(
                "Variant",
                None,
                error_code=VARIANT_NOT_FOUND,
                message="No variant matches the selected options",
                details={
                    "requestedOptions": selection,
                    "availableOptions": {
                        option.name: [value.value for value in option.values]
                        for option in product_options
                    },
                },
            )

        selected = await VariantRepository.load_selected_options(db, [variant.id])
        base = factory.to_variant_response(variant, selected[variant.id])
        return VariantDetailResponse(
            **base.model_dump(),
            product=ProductBasicResponse(id=product.id, name=product.name, brand=product.brand),
        )

    @staticmethod
    async def get_product_variants_with_options(
        db: AsyncSession, product_id: int, seller_id: Optional[int] = None
    ) -> List[VariantResponse]:
        """All variants of a product, each with its selected options."""
        await get_owned_product(db, product_id, seller_id)
        items = await VariantRepository.get_product_variants_with_options(db, product_id)
        return [factory.variant_with_options_response(item) for item in items]

    @staticmethod
    async def get_product_variant_aggregation(
        db: AsyncSession, product_id: int, seller_id: Optional[int] = None
    ) -> VariantAggregationResponse:
        await get_owned_product(db, product_id, seller_id)
        aggregation = await VariantRepository.get_variant_aggregation(db, product_id)
        return to_aggregation_response(aggregation)

    @staticmethod
    async def get_products_variant_aggregations(
        db: AsyncSession, product_ids: Sequence[int]
    ) -> Dict[int, VariantAggregationResponse]:
        """
        Aggregations for many products at once (listing pages).
        Optimized: constant number of queries for any number of products.
        """
        aggregations = await VariantRepository.get_variants_aggregations(db, product_ids)
        return {pid: to_aggregation_response(agg) for pid, agg in aggregations.items()}

    @staticmethod
    async def list_variants(
        db: AsyncSession,
        query: ListVariantsQuery,
        seller_id: Optional[int] = None,
        option_filters: Optional[Dict[str, str]] = None,
    ) -> VariantListResponse:
        """
        Filtered and paginated variant listing.

        Defaults: page 1, pageSize 20, newest first. Page sizes above 100 are
        clamped to 100.

        Raises:
            ValidationError: page or pageSize below 1, or minPrice > maxPrice
        """
        page, page_size = normalize_page_params(query.page, query.pageSize)
        if (
            query.minPrice is not None
            and query.maxPrice is not None
            and query.minPrice > query.maxPrice
        ):
            raise ValidationError("minPrice cannot be greater than maxPrice")

        filters = VariantFilters(
            seller_id=seller_id,
            ids=query.ids,
            product_ids=query.productIds,
            min_price=query.minPrice,
            max_price=query.maxPrice,
            allow_purchase=query.allowPurchase,
            is_popular=query.isPopular,
            is_default=query.isDefault,
            sku=query.sku.strip() if query.sku else None,
            options=normalize_option_filters(option_filters),
        )
        items, total = await VariantRepository.list_variants_with_filters(
            db, filters, page, page_size, query.sortBy, query.sortOrder
        )
        return VariantListResponse(
            variants=[factory.variant_with_options_response(item) for item in items],
            total=total,
            page=page,
            pageSize=page_size,
        )
