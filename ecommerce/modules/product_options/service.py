"""
ProductOptionService - the option catalog of a product.

Option names are normalized to snake_case keys and values to lowercase-trimmed
strings at the edge; after creation both are immutable, only display names,
color codes and positions can change. Every mutation checks seller ownership
and runs inside one transaction holding the product row lock.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.db.transaction import atomic
from ecommerce.core.exceptions import (
    PRODUCT_OPTION_NOT_FOUND,
    PRODUCT_OPTION_VALUE_NOT_FOUND,
    NotFoundError,
    ValidationError,
)
from ecommerce.core.utils import (
    display_name_or_default,
    normalize_to_snake_case,
    to_lower_trimmed,
)
from ecommerce.modules.products.guard import get_owned_product
from ecommerce.modules.products.repository import ProductRepository
from ecommerce.modules.variants.models import VariantOptionValue
from ecommerce.modules.variants.repository import VariantRepository
from . import validator
from .models import ProductOption, ProductOptionValue
from .repository import OptionWithValues, ProductOptionRepository
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

logger = logging.getLogger(__name__)


def to_value_response(value: ProductOptionValue, variant_count: int = 0) -> OptionValueResponse:
    return OptionValueResponse(
        id=value.id,
        optionId=value.option_id,
        value=value.value,
        displayName=display_name_or_default(value.display_name, value.value),
        colorCode=value.color_code,
        position=value.position,
        variantCount=variant_count,
    )


def to_option_response(
    option: ProductOption, values: Sequence[ProductOptionValue]
) -> OptionResponse:
    return OptionResponse(
        id=option.id,
        productId=option.product_id,
        name=option.name,
        displayName=display_name_or_default(option.display_name, option.name),
        position=option.position,
        values=[to_value_response(value) for value in values],
    )


def _option_changes(dto) -> Dict[str, object]:
    # Empty display names keep the current one
    changes: Dict[str, object] = {}
    if dto.displayName is not None and dto.displayName.strip():
        changes["display_name"] = dto.displayName.strip()
    if dto.position is not None:
        changes["position"] = dto.position
    return changes


def _value_changes(dto) -> Dict[str, object]:
    changes: Dict[str, object] = {}
    if dto.displayName is not None and dto.displayName.strip():
        changes["display_name"] = dto.displayName.strip()
    if dto.colorCode is not None:
        validator.validate_color_code(dto.colorCode)
        changes["color_code"] = dto.colorCode
    if dto.position is not None:
        changes["position"] = dto.position
    return changes


class ProductOptionService:
    """Options and option values under a product."""

    @staticmethod
    def _build_values(
        option_id: int,
        inputs: Sequence[OptionValueInput],
        existing_values: Sequence[str] = (),
        start_position: int = 0,
    ) -> List[ProductOptionValue]:
        """
        Normalize and validate value inputs and build (unsaved) rows.

        Raises:
            ValidationError: On an empty value or a bad color code
            ConflictError: On a duplicate against existing values or within the batch
        """
        normalized = [to_lower_trimmed(item.value) for item in inputs]
        for value, item in zip(normalized, inputs):
            validator.validate_option_value(value)
            validator.validate_color_code(item.colorCode)
        validator.validate_values_unique(normalized, existing_values)

        return [
            ProductOptionValue(
                option_id=option_id,
                value=value,
                display_name=display_name_or_default(item.displayName, value),
                color_code=item.colorCode,
                position=item.position if item.position is not None else start_position + index,
            )
            for index, (value, item) in enumerate(zip(normalized, inputs))
        ]

    @staticmethod
    def _normalize_option_name(raw_name: str) -> str:
        name = normalize_to_snake_case(raw_name)
        validator.validate_option_key(name)
        return name

    @staticmethod
    async def create_options_bulk(
        db: AsyncSession,
        product_id: int,
        requests: Sequence[CreateOptionRequest],
    ) -> List[Tuple[ProductOption, List[ProductOptionValue]]]:
        """
        Create several options with their values for a product.

        Expects to run inside the caller's transaction (product creation).
        Optimized: one INSERT batch for the options, one for all their values.

        Raises:
            ConflictError: If a name exists already or repeats within the batch,
                or values repeat within one option
            ValidationError: On malformed names or values
        """
        if not requests:
            return []

        existing = await ProductOptionRepository.find_options_by_product(
            db, product_id, with_values=False
        )
        taken = {option.name for option in existing}

        names: List[str] = []
        for request in requests:
            name = ProductOptionService._normalize_option_name(request.name)
            validator.validate_option_name_unique(name, taken)
            taken.add(name)
            names.append(name)

        options = [
            ProductOption(
                product_id=product_id,
                name=name,
                display_name=display_name_or_default(request.displayName, name),
                position=request.position if request.position is not None else len(existing) + index,
            )
            for index, (name, request) in enumerate(zip(names, requests))
        ]
        # Validate every value batch before the first INSERT
        value_batches = [
            ProductOptionService._build_values(0, request.values) for request in requests
        ]
        await ProductOptionRepository.bulk_create_options(db, options)

        all_values: List[ProductOptionValue] = []
        for option, values in zip(options, value_batches):
            for value in values:
                value.option_id = option.id
            all_values.extend(values)
        await ProductOptionRepository.bulk_create_values(db, all_values)

        return list(zip(options, value_batches))

    @staticmethod
    async def add_option(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        dto: CreateOptionRequest,
    ) -> OptionResponse:
        """
        Add an option with its initial values to an existing product.

        When the product already has variants, each of them is bound to the
        first value of the new option so every variant keeps exactly one value
        per option. Such an option must therefore come with at least one value.

        Raises:
            NotFoundError: If the product is missing or not owned by the seller
            ConflictError: If the option name is taken or values repeat
            ValidationError: If values are missing for a product with variants
        """
        await get_owned_product(db, product_id, seller_id)
        name = ProductOptionService._normalize_option_name(dto.name)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)

            existing = await ProductOptionRepository.find_options_by_product(
                db, product_id, with_values=False
            )
            validator.validate_option_name_unique(name, [o.name for o in existing])
            values = ProductOptionService._build_values(0, dto.values)

            variants = await VariantRepository.find_variants_by_product(db, product_id)
            if variants and not values:
                raise ValidationError(
                    "An option added to a product with variants needs at least one value"
                )

            option = await ProductOptionRepository.create_option(
                db,
                ProductOption(
                    product_id=product_id,
                    name=name,
                    display_name=display_name_or_default(dto.displayName, name),
                    position=dto.position if dto.position is not None else len(existing),
                ),
            )
            for value in values:
                value.option_id = option.id
            await ProductOptionRepository.bulk_create_values(db, values)

            if variants:
                first_value = min(values, key=lambda v: (v.position, v.id))
                await VariantRepository.create_variant_option_values(
                    db,
                    [
                        VariantOptionValue(
                            variant_id=variant.id,
                            option_id=option.id,
                            option_value_id=first_value.id,
                        )
                        for variant in variants
                    ],
                )

        logger.info(
            "Added option %s to product %s (%d values, %d variants bound)",
            name, product_id, len(values), len(variants),
        )
        return to_option_response(option, values)

    @staticmethod
    async def update_option(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        seller_id: Optional[int],
        dto: UpdateOptionRequest,
    ) -> OptionResponse:
        """
        Update an option's display name and/or position.

        Raises:
            NotFoundError: If the product or option does not exist
            ValidationError: If the option belongs to another product
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            option = await ProductOptionRepository.find_option_by_id(db, option_id)
            validator.validate_option_belongs_to_product(option, product_id)
            await ProductOptionRepository.update_option(db, option, _option_changes(dto))
            values = await ProductOptionRepository.find_values_by_option(db, option_id)

        return to_option_response(option, values)

    @staticmethod
    async def bulk_update_options(
        db: AsyncSession,
        product_id: int,
        seller_id: Optional[int],
        dto: BulkUpdateOptionsRequest,
    ) -> List[OptionResponse]:
        """
        Update several options of one product in one transaction.

        Raises:
            NotFoundError: If any option id is not an option of this product
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            options = await ProductOptionRepository.find_options_by_product(db, product_id)
            by_id = {option.id: option for option in options}

            patches = []
            for item in dto.options:
                option = by_id.get(item.id)
                if option is None:
                    raise NotFoundError(
                        "Product option", item.id, error_code=PRODUCT_OPTION_NOT_FOUND
                    )
                patches.append((option, _option_changes(item)))
            await ProductOptionRepository.bulk_update_options(db, patches)

        updated_ids = [item.id for item in dto.options]
        return [to_option_response(by_id[oid], by_id[oid].values) for oid in updated_ids]

    @staticmethod
    async def delete_option(
        db: AsyncSession, product_id: int, option_id: int, seller_id: Optional[int]
    ) -> None:
        """
        Delete an option and its values.

        Raises:
            ConflictError: (400) If any variant uses the option
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            option = await ProductOptionRepository.find_option_by_id(db, option_id)
            validator.validate_option_belongs_to_product(option, product_id)

            variant_ids = await ProductOptionRepository.find_variant_ids_using_option(
                db, option_id
            )
            if variant_ids:
                logger.warning(
                    "Refusing to delete option %s of product %s: used by %d variants",
                    option_id, product_id, len(variant_ids),
                )
            validator.validate_option_not_in_use(variant_ids)
            await ProductOptionRepository.delete_option(db, option_id)

        logger.info("Deleted option %s of product %s", option_id, product_id)

    @staticmethod
    async def _load_option(
        db: AsyncSession, product_id: int, option_id: int
    ) -> ProductOption:
        option = await ProductOptionRepository.find_option_by_id(db, option_id)
        validator.validate_option_belongs_to_product(option, product_id)
        return option

    @staticmethod
    async def add_values(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        seller_id: Optional[int],
        dto: BulkAddOptionValuesRequest,
    ) -> List[OptionValueResponse]:
        """
        Add several values to an option.

        Raises:
            ConflictError: If a value exists already or repeats within the batch
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            await ProductOptionService._load_option(db, product_id, option_id)
            existing = await ProductOptionRepository.find_values_by_option(db, option_id)
            values = ProductOptionService._build_values(
                option_id,
                dto.values,
                existing_values=[v.value for v in existing],
                start_position=len(existing),
            )
            await ProductOptionRepository.bulk_create_values(db, values)

        return [to_value_response(value) for value in values]

    @staticmethod
    async def add_value(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        seller_id: Optional[int],
        dto: OptionValueInput,
    ) -> OptionValueResponse:
        """Add a single value to an option."""
        created = await ProductOptionService.add_values(
            db, product_id, option_id, seller_id, BulkAddOptionValuesRequest(values=[dto])
        )
        return created[0]

    @staticmethod
    async def update_value(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        value_id: int,
        seller_id: Optional[int],
        dto: UpdateOptionValueRequest,
    ) -> OptionValueResponse:
        """
        Update display name, color code or position of a value.

        Raises:
            NotFoundError: If the option or value does not exist
            ValidationError: If the value belongs to another option
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            await ProductOptionService._load_option(db, product_id, option_id)
            value = await ProductOptionRepository.find_value_by_id(db, value_id)
            validator.validate_value_belongs_to_option(value, option_id)
            await ProductOptionRepository.update_value(db, value, _value_changes(dto))

        return to_value_response(value)

    @staticmethod
    async def bulk_update_values(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        seller_id: Optional[int],
        dto: BulkUpdateOptionValuesRequest,
    ) -> List[OptionValueResponse]:
        """
        Update several values of one option in one transaction.

        Raises:
            NotFoundError: If any value id is not a value of this option
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            await ProductOptionService._load_option(db, product_id, option_id)
            values = await ProductOptionRepository.find_values_by_option(db, option_id)
            by_id = {value.id: value for value in values}

            patches = []
            for item in dto.values:
                value = by_id.get(item.id)
                if value is None:
                    raise NotFoundError(
                        "Product option value",
                        item.id,
                        error_code=PRODUCT_OPTION_VALUE_NOT_FOUND,
                    )
                patches.append((value, _value_changes(item)))
            await ProductOptionRepository.bulk_update_values(db, patches)

        return [to_value_response(by_id[item.id]) for item in dto.values]

    @staticmethod
    async def delete_value(
        db: AsyncSession,
        product_id: int,
        option_id: int,
        value_id: int,
        seller_id: Optional[int],
    ) -> None:
        """
        Delete an option value that no variant uses.

        Raises:
            ConflictError: (400) If any variant references the value
        """
        await get_owned_product(db, product_id, seller_id)

        async with atomic(db):
            await ProductRepository.lock_product(db, product_id)
            await ProductOptionService._load_option(db, product_id, option_id)
            value = await ProductOptionRepository.find_value_by_id(db, value_id)
            validator.validate_value_belongs_to_option(value, option_id)

            variant_ids = await ProductOptionRepository.find_variant_ids_using_value(
                db, value_id
            )
            validator.validate_value_not_in_use(variant_ids)
            await ProductOptionRepository.delete_value(db, value_id)

        logger.info("Deleted value %s of option %s", value_id, option_id)

    @staticmethod
    def to_available_options(
        product_id: int, options: Sequence[OptionWithValues]
    ) -> AvailableOptionsResponse:
        return AvailableOptionsResponse(
            productId=product_id,
            options=[
                OptionResponse(
                    id=entry.option.id,
                    productId=entry.option.product_id,
                    name=entry.option.name,
                    displayName=display_name_or_default(
                        entry.option.display_name, entry.option.name
                    ),
                    position=entry.option.position,
                    values=[
                        to_value_response(usage.value, usage.variant_count)
                        for usage in entry.values
                    ],
                )
                for entry in options
            ],
        )

    @staticmethod
    async def get_available_options(
        db: AsyncSession, product_id: int, seller_id: Optional[int]
    ) -> AvailableOptionsResponse:
        """
        Options of a product ordered by position, each value carrying the
        number of variants that use it.
        """
        await get_owned_product(db, product_id, seller_id)
        options = await ProductOptionRepository.get_options_with_variant_counts(
            db, product_id
        )
        return ProductOptionService.to_available_options(product_id, options)

    @staticmethod
    async def delete_options_by_product_id(db: AsyncSession, product_id: int) -> None:
        """Remove every option and value of a product (caller owns the transaction)."""
        await ProductOptionRepository.delete_options_by_product(db, product_id)
