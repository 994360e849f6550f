"""
VariantService - single-variant commands.

Each mutation runs in one transaction that starts by locking the product row,
so the combination, count and default checks below cannot race with another
writer on the same product.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.transaction import atomic
from ecommerce.core.exceptions import ValidationError
from ecommerce.modules.product_options.repository import ProductOptionRepository
from ecommerce.modules.products.guard import get_owned_product
from ecommerce.modules.products.repository import ProductRepository
from . import factory, validator
from .repository import VariantRepository
from .schemas import (
    CreateVariantRequest,
    UpdateStockRequest,
    UpdateStockResponse,
    UpdateVariantRequest,
    VariantResponse,
)

logger = logging.getLogger(__name__)


async def ensure_product_has_default(db: AsyncSession, product_id: int) -> None:
    """
    Raises:
        ValidationError: If the pending changes leave the product without a default
    """
    variants = await VariantRepository.find_variants_by_product(db, product_id)
    if variants and not any(variant.is_default for variant in variants):
        raise ValidationError(
            "A product must keep exactly one default variant; mark another variant as default instead"
        )


class VariantService:
    """Create, update and delete single variants."""

    @staticmethod
    async def create_variant(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        dto: CreateVariantRequest,
    ) -> VariantResponse:
        """
        Create a variant for a given option combination.

        Args:
            product_id: Owning product
            seller_id: Caller's seller scope (None for admins)
            dto: SKU, pricing, flags and one value per product option

        Returns:
            The created variant with its selected options

        Raises:
            NotFoundError: Unknown product, option or value
            ValidationError: An option missing or repeated
            ConflictError: Combination or SKU already taken
        """
        await get_owned_product(db, product_id, seller_id)
        product_options = await ProductOptionRepository.find_options_by_product(db, product_id)
        selection = validator.resolve_option_selection(product_options, dto.options)
        combination = {option.name: value.value for option, value in selection}

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)

            existing = await VariantRepository.find_variant_by_options(
                db, product_id, combination
            )
            validator.validate_combination_unique(existing, combination)

            # A product that lost all its variants gets its first one back as default
            has_variants = await VariantRepository.count_variants_by_product(db, product_id) > 0
            is_default = dto.isDefault or not has_variants
            if is_default and has_variants:
                await VariantRepository.unset_all_defaults_for_product(db, product_id)

            variant = await VariantRepository.create_variant(
                db, factory.build_variant(product_id, dto, is_default)
            )
            await VariantRepository.create_variant_option_values(
                db, factory.build_option_links(variant.id, selection)
            )

        logger.info(
            "Created variant %s (%s) for product %s%s",
            variant.id, variant.sku, product_id, " as default" if is_default else "",
        )
        return factory.to_variant_response(
            variant, factory.selected_from_selection(selection)
        )

    @staticmethod
    async def update_variant(
        db: AsyncSession,
        product_id: int,
        variant_id: int,
        seller_id: Optional[int],
        dto: UpdateVariantRequest,
    ) -> VariantResponse:
        """
        Update a variant's own fields. Option values cannot change here.

        Setting isDefault=true moves the default flag to this variant; clearing
        it on the current default is rejected because the product would be
        left without one.

        Raises:
            NotFoundError: Unknown product or variant
            ValidationError: The update would leave no default variant
            ConflictError: The new SKU is taken
        """
        await get_owned_product(db, product_id, seller_id)
        await VariantRepository.find_variant_by_id(db, product_id, variant_id)
        changes = factory.variant_changes(dto)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            if changes.get("is_default") is True:
                await VariantRepository.unset_all_defaults_for_product(db, product_id)

            variant = await VariantRepository.find_variant_by_id(db, product_id, variant_id)
            await VariantRepository.update_variant(db, variant, changes)
            if changes.get("is_default") is False:
                await ensure_product_has_default(db, product_id)

        selected = await VariantRepository.load_selected_options(db, [variant.id])
        return factory.to_variant_response(variant, selected[variant.id])

    @staticmethod
    async def delete_variant(
        db: AsyncSession, product_id: int, variant_id: int, seller_id: Optional[int]
    ) -> None:
        """
        Delete a variant and its option links.

        If the deleted variant was the default, the remaining variant with the
        lowest id becomes the default.

        Raises:
            NotFoundError: Unknown product or variant
            ConflictError: (400) It is the product's last variant
        """
        await get_owned_product(db, product_id, seller_id)
        await VariantRepository.find_variant_by_id(db, product_id, variant_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            variant = await VariantRepository.find_variant_by_id(db, product_id, variant_id)
            was_default = variant.is_default

            count = await VariantRepository.count_variants_by_product(db, product_id)
            if count <= 1:
                logger.warning(
                    "Refusing to delete last variant %s of product %s", variant_id, product_id
                )
            validator.validate_can_delete(count)

            await VariantRepository.delete_variant_option_values_by_variant_ids(
                db, [variant_id]
            )
            await VariantRepository.delete_variant(db, variant_id)

            if was_default:
                successor = await VariantRepository.first_variant_for_product(db, product_id)
                if successor is not None:
                    await VariantRepository.update_variant(db, successor, {"is_default": True})
                    logger.info(
                        "Default of product %s moved to variant %s", product_id, successor.id
                    )

        logger.info("Deleted variant %s of product %s", variant_id, product_id)

    @staticmethod
    async def update_variant_stock(
        db: AsyncSession,
        product_id: int,
        variant_id: int,
        seller_id: Optional[int],
        dto: UpdateStockRequest,
    ) -> UpdateStockResponse:
        """
        Set, add to or subtract from a variant's stock.

        Untracked stock counts as zero; after this call the stock is tracked.

        Raises:
            ConflictError: (400) VARIANT_OUT_OF_STOCK / INSUFFICIENT_STOCK on subtract
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            variant = await VariantRepository.find_variant_by_id(db, product_id, variant_id)
            current = variant.stock or 0
            validator.validate_stock_change(current, dto.stock, dto.operation)
            new_stock = factory.compute_new_stock(variant.stock, dto.stock, dto.operation)
            await VariantRepository.update_variant(db, variant, {"stock": new_stock})

        logger.info(
            "Stock of variant %s: %s %d -> %d", variant_id, dto.operation, dto.stock, new_stock
        )
        return UpdateStockResponse(
            variantId=variant.id,
            sku=variant.sku,
            stock=new_stock,
            inStock=variant.in_stock,
        )
