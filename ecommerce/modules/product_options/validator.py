"""Validation rules for options and option values."""

import re
from typing import Iterable, List, Optional

from fastapi import status

from ecommerce.core.exceptions import (
    PRODUCT_OPTION_IN_USE,
    PRODUCT_OPTION_MISMATCH,
    PRODUCT_OPTION_NAME_EXISTS,
    PRODUCT_OPTION_VALUE_EXISTS,
    PRODUCT_OPTION_VALUE_IN_USE,
    PRODUCT_OPTION_VALUE_MISMATCH,
    ConflictError,
    ValidationError,
)
from .models import ProductOption, ProductOptionValue

OPTION_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")


def validate_option_key(value: str) -> None:
    """
    Raises:
        ValidationError: If the key is not lowercase snake_case
    """
    if not value or not OPTION_KEY_PATTERN.match(value):
        raise ValidationError(
            f"Option name '{value}' must contain only lowercase letters, digits and underscores"
        )


def validate_option_value(value: str) -> None:
    if not value:
        raise ValidationError("Option value cannot be empty")


def validate_color_code(color_code: Optional[str]) -> None:
    if color_code is not None and len(color_code) != 7:
        raise ValidationError(f"Color code '{color_code}' must be exactly 7 characters")


def validate_option_name_unique(name: str, existing_names: Iterable[str]) -> None:
    """
    Raises:
        ConflictError: If the product already has an option with this name
    """
    if name in set(existing_names):
        raise ConflictError(
            f"Option '{name}' already exists for this product",
            PRODUCT_OPTION_NAME_EXISTS,
        )


def validate_option_belongs_to_product(option: ProductOption, product_id: int) -> None:
    if option.product_id != product_id:
        raise ValidationError(
            "Option does not belong to this product",
            error_code=PRODUCT_OPTION_MISMATCH,
        )


def validate_value_belongs_to_option(value: ProductOptionValue, option_id: int) -> None:
    if value.option_id != option_id:
        raise ValidationError(
            "Option value does not belong to this option",
            error_code=PRODUCT_OPTION_VALUE_MISMATCH,
        )


def validate_values_unique(values: List[str], existing_values: Iterable[str]) -> None:
    """
    Two-phase duplicate check for values being added to one option:
    first against the values already stored, then within the batch itself.

    Raises:
        ConflictError: Naming the first duplicated value
    """
    existing = set(existing_values)
    for value in values:
        if value in existing:
            raise ConflictError(
                f"Option value '{value}' already exists for this option",
                PRODUCT_OPTION_VALUE_EXISTS,
            )

    seen = set()
    for value in values:
        if value in seen:
            raise ConflictError(
                f"Option value '{value}' is duplicated in the request",
                PRODUCT_OPTION_VALUE_EXISTS,
            )
        seen.add(value)


def validate_option_not_in_use(variant_ids: List[int]) -> None:
    """
    Raises:
        ConflictError: (400) If any variant still references the option
    """
    if variant_ids:
        raise ConflictError(
            f"Cannot delete option (used by {len(variant_ids)} variants)",
            PRODUCT_OPTION_IN_USE,
            details={"variantCount": len(variant_ids), "variantIds": variant_ids},
            status_code=status.HTTP_400_BAD_REQUEST,
        )


def validate_value_not_in_use(variant_ids: List[int]) -> None:
    """
    Raises:
        ConflictError: (400) If any variant still references the value
    """
    if variant_ids:
        raise ConflictError(
            f"Cannot delete option value (used by {len(variant_ids)} variants)",
            PRODUCT_OPTION_VALUE_IN_USE,
            details={"variantCount": len(variant_ids), "variantIds": variant_ids},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
