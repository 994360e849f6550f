"""
ProductService - product lifecycle around the variant model.

A product is created together with its options and at least one variant, in
one transaction. Deletion removes everything bottom-up: option links,
variants, option values, options, then the product.
"""

import logging
from typing import Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.transaction import atomic
from ecommerce.core.exceptions import ValidationError
from ecommerce.core.pagination import build_paginated_response, normalize_page_params
from ecommerce.modules.product_options.repository import ProductOptionRepository
from ecommerce.modules.product_options.service import ProductOptionService
from ecommerce.modules.variants import factory
from ecommerce.modules.variants.bulk_service import VariantBulkService
from ecommerce.modules.variants.query_service import (
    VariantQueryService,
    to_aggregation_response,
)
from ecommerce.modules.variants.repository import VariantRepository
from .guard import get_owned_product
from .models import Product
from .repository import ProductRepository
from .schemas import (
    CreateProductRequest,
    ProductDetailResponse,
    ProductListItemResponse,
    ProductListResponse,
    ProductResponse,
    UpdateProductRequest,
)

logger = logging.getLogger(__name__)

# Request field -> column
_UPDATABLE_FIELDS = {
    "name": "name",
    "brand": "brand",
    "categoryId": "category_id",
    "shortDescription": "short_description",
    "longDescription": "long_description",
    "tags": "tags",
}


def to_product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        sellerId=product.seller_id,
        name=product.name,
        brand=product.brand,
        baseSku=product.base_sku,
        categoryId=product.category_id,
        shortDescription=product.short_description,
        longDescription=product.long_description,
        tags=list(product.tags or []),
        createdAt=product.created_at,
        updatedAt=product.updated_at,
    )


class ProductService:
    """Create, read, update and delete products with their variant model."""

    @staticmethod
    def _resolve_owner(seller_id: Optional[int], dto: CreateProductRequest) -> int:
        if seller_id is not None:
            return seller_id
        if dto.sellerId is None:
            raise ValidationError("sellerId is required when an admin creates a product")
        return dto.sellerId

    @staticmethod
    def _validate_variant_source(dto: CreateProductRequest) -> None:
        """
        Raises:
            ValidationError: When neither (or both) explicit variants and
                auto-generation are requested, or auto-generation lacks its inputs
        """
        if dto.autoGenerateVariants:
            if dto.variants:
                raise ValidationError(
                    "Provide either variants or autoGenerateVariants, not both"
                )
            if not dto.baseSku:
                raise ValidationError("baseSku is required to auto-generate variants")
            if dto.defaultVariantSettings is None:
                raise ValidationError(
                    "defaultVariantSettings is required to auto-generate variants"
                )
            for option in dto.options:
                if not option.values:
                    raise ValidationError(
                        f"Option '{option.name}' needs at least one value to generate variants"
                    )
        elif not dto.variants:
            raise ValidationError("A product needs at least one variant")

    @staticmethod
    async def create_product(
        db: AsyncSession, seller_id: Optional[int], dto: CreateProductRequest
    ) -> ProductDetailResponse:
        """
        Create a product with options, values and variants atomically.

        Args:
            seller_id: Caller's seller scope; None for admins, who must pass
                dto.sellerId
            dto: Product fields, options and explicit or generated variants

        Returns:
            Product detail including options, variants and variant summary

        Raises:
            ValidationError: Missing owner, no variants, or bad auto-generation input
            ConflictError: Duplicate base SKU, variant SKU, option or combination
        """
        owner_id = ProductService._resolve_owner(seller_id, dto)
        ProductService._validate_variant_source(dto)

        async with atomic(db):
            product = await ProductRepository.create_product(
                db,
                Product(
                    seller_id=owner_id,
                    name=dto.name.strip(),
                    brand=dto.brand,
                    base_sku=dto.baseSku.strip() if dto.baseSku else None,
                    category_id=dto.categoryId,
                    short_description=dto.shortDescription,
                    long_description=dto.longDescription,
                    tags=list(dto.tags),
                ),
            )
            await ProductOptionService.create_options_bulk(db, product.id, dto.options)
            product_options = await ProductOptionRepository.find_options_by_product(
                db, product.id
            )

            if dto.autoGenerateVariants:
                requests = factory.generate_variant_requests(
                    product.base_sku,
                    [(option.name, [value.value for value in option.values]) for option in product_options],
                    dto.defaultVariantSettings,
                )
            else:
                requests = dto.variants

            created = await VariantBulkService.create_variants_in_transaction(
                db, product.id, product_options, requests
            )

        logger.info(
            "Created product %s (%s) for seller %s with %d options and %d variants",
            product.id, product.name, owner_id, len(product_options), len(created),
        )
        return await ProductService._detail(db, product)

    @staticmethod
    async def _detail(db: AsyncSession, product: Product) -> ProductDetailResponse:
        options = await ProductOptionRepository.get_options_with_variant_counts(db, product.id)
        variants = await VariantRepository.get_product_variants_with_options(db, product.id)
        aggregation = await VariantRepository.get_variant_aggregation(db, product.id)

        return ProductDetailResponse(
            **to_product_response(product).model_dump(),
            options=ProductOptionService.to_available_options(product.id, options).options,
            variants=[factory.variant_with_options_response(item) for item in variants],
            variantSummary=to_aggregation_response(aggregation),
        )

    @staticmethod
    async def get_product(
        db: AsyncSession, product_id: int, seller_id: Optional[int]
    ) -> ProductDetailResponse:
        """
        Product detail: options with per-value variant counts, variants with
        their selected options, and the variant summary.

        Raises:
            NotFoundError: If the product is missing or owned by another seller
        """
        product = await get_owned_product(db, product_id, seller_id)
        return await ProductService._detail(db, product)

    @staticmethod
    async def list_products(
        db: AsyncSession,
        seller_id: Optional[int],
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> ProductListResponse:
        """
        Paginated products, each with its variant summary.
        Optimized: COUNT + page SELECT + two aggregate queries for the whole page.
        """
        page, page_size = normalize_page_params(page, page_size)
        products, total = await ProductRepository.find_products(
            db, page, page_size, seller_id=seller_id, category_id=category_id, search=search
        )
        summaries = await VariantQueryService.get_products_variant_aggregations(
            db, [product.id for product in products]
        )
        items = [
            ProductListItemResponse(
                **to_product_response(product).model_dump(),
                variantSummary=summaries[product.id],
            )
            for product in products
        ]
        return ProductListResponse(**build_paginated_response(items, total, page, page_size))

    @staticmethod
    async def update_product(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        dto: UpdateProductRequest,
    ) -> ProductResponse:
        """
        Update product fields. The base SKU and owner cannot change.

        Raises:
            NotFoundError: If the product is missing or owned by another seller
        """
        product = await get_owned_product(db, product_id, seller_id)

        changes: Dict[str, object] = {
            _UPDATABLE_FIELDS[key]: value
            for key, value in dto.model_dump(exclude_unset=True).items()
            if key in _UPDATABLE_FIELDS and value is not None
        }
        if changes:
            async with atomic(db):
                await ProductRepository.update_product(db, product, changes)

        return to_product_response(product)

    @staticmethod
    async def delete_product(
        db: AsyncSession, product_id: int, seller_id: Optional[int]
    ) -> None:
        """
        Delete a product with all of its options and variants.

        Raises:
            NotFoundError: If the product is missing or owned by another seller
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            await VariantBulkService.delete_variants_by_product_id(db, product_id)
            await ProductOptionService.delete_options_by_product_id(db, product_id)
            await ProductRepository.delete_product(db, product_id)

        logger.info("Deleted product %s", product_id)
