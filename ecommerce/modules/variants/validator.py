"""Validation rules for variants and variant batches."""

from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import status

from ecommerce.core.exceptions import (
    BULK_UPDATE_VARIANT_NOT_FOUND,
    INSUFFICIENT_STOCK,
    LAST_VARIANT_DELETE_NOT_ALLOWED,
    PRODUCT_OPTION_NOT_FOUND,
    PRODUCT_OPTION_VALUE_NOT_FOUND,
    VARIANT_COMBINATION_EXISTS,
    VARIANT_OUT_OF_STOCK,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ecommerce.core.utils import normalize_to_snake_case, to_lower_trimmed
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from .models import ProductVariant
from .schemas import VariantOptionInput


def validate_variant_options_structure(options: Dict[str, str]) -> None:
    """
    Raises:
        ValidationError: If no option is given or a name/value is blank
    """
    if not options:
        raise ValidationError("At least one option must be specified")
    for name, value in options.items():
        if not name or not name.strip():
            raise ValidationError("Option name cannot be empty")
        if value is None or not str(value).strip():
            raise ValidationError(f"Value for option '{name}' cannot be empty")


def validate_combination_unique(
    existing: Optional[ProductVariant], combination: Optional[Dict[str, str]] = None
) -> None:
    """
    Raises:
        ConflictError: If a variant with the same option combination exists
    """
    if existing is not None:
        raise ConflictError(
            f"A variant with this option combination already exists (sku {existing.sku})",
            VARIANT_COMBINATION_EXISTS,
            details={"existingVariantId": existing.id, "options": combination or {}},
        )


def validate_can_delete(variant_count: int) -> None:
    """
    Raises:
        ConflictError: (400) If the variant is the last one of its product
    """
    if variant_count <= 1:
        raise ConflictError(
            "Cannot delete the last variant of a product",
            LAST_VARIANT_DELETE_NOT_ALLOWED,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


def validate_bulk_update_not_empty(items: Sequence) -> None:
    if not items:
        raise ValidationError("At least one variant must be provided for bulk update")


def validate_bulk_create_not_empty(items: Sequence) -> None:
    if not items:
        raise ValidationError("At least one variant must be provided")


def validate_bulk_variants_exist(
    product_id: int, requested_ids: Sequence[int], fetched: Sequence[ProductVariant]
) -> None:
    """
    Every requested id must exist and belong to the product.

    Raises:
        NotFoundError: BULK_UPDATE_VARIANT_NOT_FOUND listing the missing ids
    """
    found = {variant.id for variant in fetched if variant.product_id == product_id}
    missing = sorted({vid for vid in requested_ids if vid not in found})
    if missing:
        raise NotFoundError(
            "Variant",
            missing,
            error_code=BULK_UPDATE_VARIANT_NOT_FOUND,
            message="One or more variants were not found for this product",
            details={"missingIds": missing},
        )


def validate_all_options_specified(product_option_count: int, provided_count: int) -> None:
    """
    Raises:
        ValidationError: If the selection does not cover every product option
    """
    if product_option_count != provided_count:
        raise ValidationError(
            f"All {product_option_count} product options must be specified, got {provided_count}"
        )


def resolve_option_selection(
    product_options: Sequence[ProductOption], inputs: Sequence[VariantOptionInput]
) -> List[Tuple[ProductOption, ProductOptionValue]]:
    """
    Map requested (name, value) pairs onto the product's option rows.

    Names are normalized to snake_case and values to lowercase-trimmed before
    matching. Options must have their values loaded.

    Returns:
        (option, value) pairs ordered like the product options

    Raises:
        NotFoundError: Unknown option name or value
        ValidationError: An option repeated or one left out
    """
    by_name = {option.name: option for option in product_options}
    chosen: Dict[int, ProductOptionValue] = {}

    for item in inputs:
        name = normalize_to_snake_case(item.optionName)
        value = to_lower_trimmed(item.value)
        option = by_name.get(name)
        if option is None:
            raise NotFoundError(
                "Product option",
                name,
                error_code=PRODUCT_OPTION_NOT_FOUND,
                message=f"Option '{name}' not found for this product",
            )
        if option.id in chosen:
            raise ValidationError(f"Option '{name}' is specified more than once")
        option_value = next((v for v in option.values if v.value == value), None)
        if option_value is None:
            raise NotFoundError(
                "Product option value",
                value,
                error_code=PRODUCT_OPTION_VALUE_NOT_FOUND,
                message=f"Value '{value}' not found for option '{name}'",
            )
        chosen[option.id] = option_value

    validate_all_options_specified(len(product_options), len(chosen))
    return [(option, chosen[option.id]) for option in product_options]


def validate_stock_change(current: int, amount: int, operation: str) -> None:
    """
    Raises:
        ConflictError: (400) When subtracting from an empty or too small stock
    """
    if operation != "subtract":
        return
    if current <= 0 and amount > 0:
        raise ConflictError(
            "Variant is out of stock",
            VARIANT_OUT_OF_STOCK,
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if amount > current:
        raise ConflictError(
            f"Insufficient stock: available {current}, requested {amount}",
            INSUFFICIENT_STOCK,
            details={"available": current, "requested": amount},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
