"""
Builders for variant rows, patches and generated variant requests.
"""

from itertools import product as cartesian_product
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from .models import ProductVariant, VariantOptionValue
from .repository import SelectedOptionValue, VariantWithOptions
from .schemas import (
    BulkUpdateVariantItem,
    CreateVariantRequest,
    DefaultVariantSettings,
    SelectedOptionResponse,
    UpdateVariantRequest,
    VariantOptionInput,
    VariantResponse,
)

# Request field -> column
_UPDATABLE_FIELDS = {
    "sku": "sku",
    "price": "price",
    "stock": "stock",
    "images": "images",
    "allowPurchase": "allow_purchase",
    "isPopular": "is_popular",
    "isDefault": "is_default",
}


def build_combination_key(selection: Dict[str, str]) -> str:
    """Canonical "name:value;" string of a selection, option names sorted."""
    return "".join(f"{name}:{value};" for name, value in sorted(selection.items()))


def build_variant(
    product_id: int, request: CreateVariantRequest, is_default: bool
) -> ProductVariant:
    return ProductVariant(
        product_id=product_id,
        sku=request.sku.strip(),
        price=request.price,
        stock=request.stock,
        images=list(request.images),
        allow_purchase=request.allowPurchase,
        is_popular=request.isPopular,
        is_default=is_default,
    )


def build_option_links(
    variant_id: int, selection: Sequence[Tuple[ProductOption, ProductOptionValue]]
) -> List[VariantOptionValue]:
    return [
        VariantOptionValue(
            variant_id=variant_id,
            option_id=option.id,
            option_value_id=value.id,
        )
        for option, value in selection
    ]


def selected_from_selection(
    selection: Sequence[Tuple[ProductOption, ProductOptionValue]]
) -> List[SelectedOptionValue]:
    return [
        SelectedOptionValue(
            option_id=option.id,
            option_name=option.name,
            option_display_name=option.display_name or option.name,
            value_id=value.id,
            value=value.value,
            value_display_name=value.display_name or value.value,
            color_code=value.color_code,
        )
        for option, value in selection
    ]


def variant_changes(request: UpdateVariantRequest) -> Dict[str, Any]:
    """Column changes for the fields present (and non-null) in an update request."""
    sent = request.model_dump(exclude_unset=True, exclude={"id"})
    changes: Dict[str, Any] = {}
    for field_name, value in sent.items():
        if value is None or field_name not in _UPDATABLE_FIELDS:
            continue
        if field_name == "sku":
            value = value.strip()
        changes[_UPDATABLE_FIELDS[field_name]] = value
    return changes


def apply_last_default_wins(
    items: Sequence[BulkUpdateVariantItem],
) -> Tuple[List[BulkUpdateVariantItem], Optional[int]]:
    """
    Only the last item asking for isDefault=true keeps it; earlier ones are
    rewritten to isDefault=false.

    Returns:
        (rewritten items, id of the variant that becomes default or None)
    """
    last_index: Optional[int] = None
    for index, item in enumerate(items):
        if item.isDefault:
            last_index = index

    if last_index is None:
        return list(items), None

    rewritten = [
        item.model_copy(update={"isDefault": False})
        if item.isDefault and index != last_index
        else item
        for index, item in enumerate(items)
    ]
    return rewritten, items[last_index].id


def generate_variant_requests(
    base_sku: str,
    options: Sequence[Tuple[str, Sequence[str]]],
    settings: DefaultVariantSettings,
) -> List[CreateVariantRequest]:
    """
    Cartesian product of option values, in option order then value order.

    SKU: base SKU followed by "-<value>" for each option, e.g.
    TSHIRT-001 with color {red, blue} x size {s, m} gives TSHIRT-001-red-s,
    TSHIRT-001-red-m, TSHIRT-001-blue-s, TSHIRT-001-blue-m.

    Args:
        base_sku: Product base SKU
        options: (option name, values) pairs in position order
        settings: Shared price/stock/images/flags
    """
    names = [name for name, _ in options]
    value_lists = [list(values) for _, values in options]

    requests: List[CreateVariantRequest] = []
    for combination in cartesian_product(*value_lists):
        sku = "-".join([base_sku.strip(), *combination])
        requests.append(
            CreateVariantRequest(
                sku=sku,
                price=settings.price,
                stock=settings.stock,
                images=list(settings.images),
                allowPurchase=settings.allowPurchase,
                isPopular=settings.isPopular,
                isDefault=False,
                options=[
                    VariantOptionInput(optionName=name, value=value)
                    for name, value in zip(names, combination)
                ],
            )
        )
    return requests


def compute_new_stock(current: Optional[int], amount: int, operation: str) -> int:
    """Untracked stock (None) counts as zero."""
    base = current or 0
    if operation == "add":
        return base + amount
    if operation == "subtract":
        return base - amount
    return amount


def to_selected_response(option: SelectedOptionValue) -> SelectedOptionResponse:
    return SelectedOptionResponse(
        optionId=option.option_id,
        optionName=option.option_name,
        optionDisplayName=option.option_display_name,
        valueId=option.value_id,
        value=option.value,
        valueDisplayName=option.value_display_name,
        colorCode=option.color_code,
    )


def to_variant_response(
    variant: ProductVariant, selected: Sequence[SelectedOptionValue] = ()
) -> VariantResponse:
    return VariantResponse(
        id=variant.id,
        productId=variant.product_id,
        sku=variant.sku,
        price=variant.price,
        images=list(variant.images or []),
        allowPurchase=variant.allow_purchase,
        stock=variant.stock,
        inStock=variant.in_stock,
        isPopular=variant.is_popular,
        isDefault=variant.is_default,
        selectedOptions=[to_selected_response(option) for option in selected],
        createdAt=variant.created_at,
        updatedAt=variant.updated_at,
    )


def variant_with_options_response(item: VariantWithOptions) -> VariantResponse:
    return to_variant_response(item.variant, item.selected_options)
