"""
VariantBulkService - batch variant operations.

Batches are validated completely before the first write and then applied in a
single transaction, so a failing item leaves the product untouched.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.transaction import atomic
from ecommerce.core.exceptions import VARIANT_COMBINATION_EXISTS, ConflictError
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from ecommerce.modules.product_options.repository import ProductOptionRepository
from ecommerce.modules.products.guard import get_owned_product
from ecommerce.modules.products.repository import ProductRepository
from . import factory, validator
from .models import ProductVariant
from .repository import VariantRepository
from .schemas import (
    BulkCreateVariantsResponse,
    BulkUpdatedVariant,
    BulkUpdateVariantItem,
    BulkUpdateVariantsResponse,
    CreateVariantRequest,
)
from .service import ensure_product_has_default

logger = logging.getLogger(__name__)

Selection = List[Tuple[ProductOption, ProductOptionValue]]


class VariantBulkService:
    """Bulk create, bulk update and delete-all for a product's variants."""

    @staticmethod
    def _prepare_batch(
        product_options: Sequence[ProductOption],
        requests: Sequence[CreateVariantRequest],
    ) -> List[Tuple[CreateVariantRequest, Selection, str]]:
        """
        Resolve every request to option rows and a combination key.

        Raises:
            NotFoundError / ValidationError: On a bad selection
            ConflictError: If two requests select the same combination
        """
        prepared = []
        seen: Dict[str, int] = {}
        for index, request in enumerate(requests):
            selection = validator.resolve_option_selection(product_options, request.options)
            key = factory.build_combination_key(
                {option.name: value.value for option, value in selection}
            )
            if key in seen:
                raise ConflictError(
                    f"Duplicate option combination in request: {key}",
                    VARIANT_COMBINATION_EXISTS,
                    details={"combination": key, "indexes": [seen[key], index]},
                )
            seen[key] = index
            prepared.append((request, selection, key))
        return prepared

    @staticmethod
    async def create_variants_in_transaction(
        db: AsyncSession,
        product_id: int,
        product_options: Sequence[ProductOption],
        requests: Sequence[CreateVariantRequest],
    ) -> List[Tuple[ProductVariant, Selection]]:
        """
        Insert a validated batch of variants; the caller owns the transaction
        and the product lock.

        The last request with isDefault=true becomes the default. Without one,
        the first created variant becomes default when the product had no
        variant before; otherwise the current default is kept.

        Raises:
            ConflictError: If a combination already exists on the product
        """
        validator.validate_bulk_create_not_empty(requests)
        prepared = VariantBulkService._prepare_batch(product_options, requests)

        existing = await VariantRepository.get_combination_keys(db, product_id)
        existing_keys = {
            factory.build_combination_key(selection): variant_id
            for variant_id, selection in existing.items()
        }
        had_variants = await VariantRepository.count_variants_by_product(db, product_id) > 0
        if not product_options and had_variants:
            # Without options a product has exactly one possible combination
            existing_keys.setdefault("", 0)
        for _, _, key in prepared:
            if key in existing_keys:
                raise ConflictError(
                    f"A variant with this option combination already exists: {key}",
                    VARIANT_COMBINATION_EXISTS,
                    details={"combination": key},
                )

        last_default_index = -1
        for index, (request, _, _) in enumerate(prepared):
            if request.isDefault:
                last_default_index = index
        if last_default_index < 0 and not had_variants:
            last_default_index = 0

        if last_default_index >= 0 and had_variants:
            await VariantRepository.unset_all_defaults_for_product(db, product_id)

        variants = await VariantRepository.bulk_create_variants(
            db,
            [
                factory.build_variant(product_id, request, index == last_default_index)
                for index, (request, _, _) in enumerate(prepared)
            ],
        )

        links = []
        for variant, (_, selection, _) in zip(variants, prepared):
            links.extend(factory.build_option_links(variant.id, selection))
        await VariantRepository.create_variant_option_values(db, links)

        return [(variant, selection) for variant, (_, selection, _) in zip(variants, prepared)]

    @staticmethod
    async def bulk_create_variants(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        requests: Sequence[CreateVariantRequest],
    ) -> BulkCreateVariantsResponse:
        """
        Create many variants of one product atomically.

        Optimized: one batched INSERT for the variants and one for all their
        option links.

        Raises:
            ValidationError: Empty batch, or a request not covering every option
            NotFoundError: Unknown product, option or value
            ConflictError: Duplicate combination within the batch or on the product
        """
        validator.validate_bulk_create_not_empty(requests)
        await get_owned_product(db, product_id, seller_id)
        product_options = await ProductOptionRepository.find_options_by_product(db, product_id)
        # Fail fast on malformed requests before taking the lock
        VariantBulkService._prepare_batch(product_options, requests)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            created = await VariantBulkService.create_variants_in_transaction(
                db, product_id, product_options, requests
            )

        logger.info("Bulk created %d variants for product %s", len(created), product_id)
        return BulkCreateVariantsResponse(
            createdCount=len(created),
            variants=[
                factory.to_variant_response(variant, factory.selected_from_selection(selection))
                for variant, selection in created
            ],
        )

    @staticmethod
    async def bulk_update_variants(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        items: Sequence[BulkUpdateVariantItem],
    ) -> BulkUpdateVariantsResponse:
        """
        Patch many variants of one product atomically.

        Only the fields present on an item change. If several items ask for
        isDefault=true, the last one wins and the earlier ones are written as
        false.

        Raises:
            ValidationError: Empty batch, or the batch leaves no default variant
            NotFoundError: BULK_UPDATE_VARIANT_NOT_FOUND for unknown or foreign ids
            ConflictError: A new SKU is taken
        """
        validator.validate_bulk_update_not_empty(items)
        await get_owned_product(db, product_id, seller_id)

        items, last_default_id = factory.apply_last_default_wins(items)
        requested_ids = [item.id for item in items]

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            fetched = await VariantRepository.find_variants_by_ids(db, requested_ids)
            validator.validate_bulk_variants_exist(product_id, requested_ids, fetched)

            if last_default_id is not None:
                await VariantRepository.unset_all_defaults_for_product(db, product_id)

            by_id = {variant.id: variant for variant in fetched}
            await VariantRepository.bulk_update_variants(
                db, [(by_id[item.id], factory.variant_changes(item)) for item in items]
            )
            await ensure_product_has_default(db, product_id)

        updated = [by_id[vid] for vid in dict.fromkeys(requested_ids)]
        logger.info("Bulk updated %d variants of product %s", len(updated), product_id)
        return BulkUpdateVariantsResponse(
            updatedCount=len(updated),
            variants=[
                BulkUpdatedVariant(
                    id=variant.id,
                    sku=variant.sku,
                    price=variant.price,
                    stock=variant.stock,
                    inStock=variant.in_stock,
                    allowPurchase=variant.allow_purchase,
                    isDefault=variant.is_default,
                )
                for variant in updated
            ],
        )

    @staticmethod
    async def delete_variants_by_product_id(db: AsyncSession, product_id: int) -> None:
        """
        Remove every variant of a product with its option links.

        Used by product deletion; runs in the caller's transaction when there
        is one.
        """
        await VariantRepository.delete_variants_by_product(db, product_id)
        logger.info("Deleted all variants of product %s", product_id)
