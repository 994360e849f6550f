"""Pure validation and building rules, no database involved."""

import pydantic
import pytest

from ecommerce.core.exceptions import (
    BULK_UPDATE_VARIANT_NOT_FOUND,
    INSUFFICIENT_STOCK,
    LAST_VARIANT_DELETE_NOT_ALLOWED,
    PRODUCT_OPTION_IN_USE,
    PRODUCT_OPTION_NOT_FOUND,
    PRODUCT_OPTION_VALUE_EXISTS,
    PRODUCT_OPTION_VALUE_NOT_FOUND,
    VARIANT_OUT_OF_STOCK,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ecommerce.modules.product_options import validator as option_validator
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from ecommerce.modules.products.schemas import CreateProductRequest
from ecommerce.modules.variants import factory
from ecommerce.modules.variants import validator as variant_validator
from ecommerce.modules.variants.models import ProductVariant
from ecommerce.modules.variants.schemas import (
    BulkUpdateVariantItem,
    CreateVariantRequest,
    DefaultVariantSettings,
    UpdateVariantRequest,
    VariantOptionInput,
)


def _options():
    color = ProductOption(
        id=1,
        product_id=1,
        name="color",
        display_name="Color",
        position=0,
        values=[
            ProductOptionValue(id=11, option_id=1, value="red", display_name="Red", position=0),
            ProductOptionValue(id=12, option_id=1, value="blue", display_name="Blue", position=1),
        ],
    )
    size = ProductOption(
        id=2,
        product_id=1,
        name="size",
        display_name="Size",
        position=1,
        values=[
            ProductOptionValue(id=21, option_id=2, value="s", display_name="S", position=0),
            ProductOptionValue(id=22, option_id=2, value="m", display_name="M", position=1),
        ],
    )
    return [color, size]


@pytest.mark.parametrize("name", ["color", "size_eu", "material2"])
def test_valid_option_keys(name):
    option_validator.validate_option_key(name)


@pytest.mark.parametrize("name", ["", "Color", "size-eu", "with space"])
def test_invalid_option_keys(name):
    with pytest.raises(ValidationError):
        option_validator.validate_option_key(name)


def test_values_unique_against_existing():
    with pytest.raises(ConflictError) as exc:
        option_validator.validate_values_unique(["green", "red"], ["red", "blue"])
    assert exc.value.error_code == PRODUCT_OPTION_VALUE_EXISTS
    assert "red" in exc.value.message


def test_values_unique_within_batch():
    with pytest.raises(ConflictError) as exc:
        option_validator.validate_values_unique(["green", "green"], [])
    assert "duplicated" in exc.value.message


def test_option_in_use_reports_variants():
    with pytest.raises(ConflictError) as exc:
        option_validator.validate_option_not_in_use([3, 4])
    assert exc.value.status_code == 400
    assert exc.value.error_code == PRODUCT_OPTION_IN_USE
    assert exc.value.details == {"variantCount": 2, "variantIds": [3, 4]}

    option_validator.validate_option_not_in_use([])


def test_color_code_length():
    option_validator.validate_color_code("#FF0000")
    option_validator.validate_color_code(None)
    with pytest.raises(ValidationError):
        option_validator.validate_color_code("#FFF")


def test_resolve_selection_normalizes_and_orders():
    selection = variant_validator.resolve_option_selection(
        _options(),
        [
            VariantOptionInput(optionName="Size", value=" M "),
            VariantOptionInput(optionName="COLOR", value="Red"),
        ],
    )
    assert [(option.name, value.value) for option, value in selection] == [
        ("color", "red"),
        ("size", "m"),
    ]


def test_resolve_selection_unknown_option():
    with pytest.raises(NotFoundError) as exc:
        variant_validator.resolve_option_selection(
            _options(),
            [
                VariantOptionInput(optionName="color", value="red"),
                VariantOptionInput(optionName="fit", value="slim"),
            ],
        )
    assert exc.value.error_code == PRODUCT_OPTION_NOT_FOUND


def test_resolve_selection_unknown_value():
    with pytest.raises(NotFoundError) as exc:
        variant_validator.resolve_option_selection(
            _options(),
            [
                VariantOptionInput(optionName="color", value="green"),
                VariantOptionInput(optionName="size", value="s"),
            ],
        )
    assert exc.value.error_code == PRODUCT_OPTION_VALUE_NOT_FOUND


def test_resolve_selection_requires_every_option():
    with pytest.raises(ValidationError):
        variant_validator.resolve_option_selection(
            _options(), [VariantOptionInput(optionName="color", value="red")]
        )


def test_resolve_selection_rejects_repeated_option():
    with pytest.raises(ValidationError):
        variant_validator.resolve_option_selection(
            _options(),
            [
                VariantOptionInput(optionName="color", value="red"),
                VariantOptionInput(optionName="Color", value="blue"),
            ],
        )


def test_resolve_selection_without_options():
    assert variant_validator.resolve_option_selection([], []) == []


def test_combination_key_is_order_independent():
    assert factory.build_combination_key({"size": "m", "color": "red"}) == "color:red;size:m;"
    assert factory.build_combination_key({}) == ""


def test_generate_variant_requests():
    requests = factory.generate_variant_requests(
        "TSHIRT-001",
        [("color", ["red", "blue"]), ("size", ["s", "m"])],
        DefaultVariantSettings(price=19.99, stock=5),
    )
    assert [request.sku for request in requests] == [
        "TSHIRT-001-red-s",
        "TSHIRT-001-red-m",
        "TSHIRT-001-blue-s",
        "TSHIRT-001-blue-m",
    ]
    assert all(request.price == 19.99 and request.stock == 5 for request in requests)
    assert not any(request.isDefault for request in requests)
    assert [(o.optionName, o.value) for o in requests[1].options] == [
        ("color", "red"),
        ("size", "m"),
    ]


def test_generate_without_options_gives_single_variant():
    requests = factory.generate_variant_requests(
        "MUG-1", [], DefaultVariantSettings(price=5)
    )
    assert len(requests) == 1
    assert requests[0].sku == "MUG-1"
    assert requests[0].options == []


def test_last_default_wins():
    items = [
        BulkUpdateVariantItem(id=1, isDefault=True),
        BulkUpdateVariantItem(id=2, price=10),
        BulkUpdateVariantItem(id=3, isDefault=True),
    ]
    rewritten, default_id = factory.apply_last_default_wins(items)
    assert default_id == 3
    assert [item.isDefault for item in rewritten] == [False, None, True]


def test_last_default_wins_without_default():
    items = [BulkUpdateVariantItem(id=1, price=12)]
    rewritten, default_id = factory.apply_last_default_wins(items)
    assert default_id is None
    assert rewritten == items


def test_variant_changes_only_sent_fields():
    item = BulkUpdateVariantItem(id=4, price=15.5, allowPurchase=False, sku=" NEW-SKU ")
    assert factory.variant_changes(item) == {
        "price": 15.5,
        "allow_purchase": False,
        "sku": "NEW-SKU",
    }


@pytest.mark.parametrize(
    "current, amount, operation, expected",
    [(10, 4, "set", 4), (10, 4, "add", 14), (10, 4, "subtract", 6), (None, 3, "add", 3)],
)
def test_compute_new_stock(current, amount, operation, expected):
    assert factory.compute_new_stock(current, amount, operation) == expected


def test_stock_subtract_from_empty():
    with pytest.raises(ConflictError) as exc:
        variant_validator.validate_stock_change(0, 1, "subtract")
    assert exc.value.error_code == VARIANT_OUT_OF_STOCK
    assert exc.value.status_code == 400


def test_stock_subtract_too_much():
    with pytest.raises(ConflictError) as exc:
        variant_validator.validate_stock_change(3, 5, "subtract")
    assert exc.value.error_code == INSUFFICIENT_STOCK
    assert exc.value.details == {"available": 3, "requested": 5}


def test_stock_set_and_add_are_unchecked():
    variant_validator.validate_stock_change(0, 5, "set")
    variant_validator.validate_stock_change(0, 5, "add")


def test_cannot_delete_last_variant():
    with pytest.raises(ConflictError) as exc:
        variant_validator.validate_can_delete(1)
    assert exc.value.error_code == LAST_VARIANT_DELETE_NOT_ALLOWED
    assert exc.value.status_code == 400
    variant_validator.validate_can_delete(2)


def test_bulk_variants_must_belong_to_product():
    fetched = [
        ProductVariant(id=1, product_id=7, sku="A", price=1),
        ProductVariant(id=2, product_id=8, sku="B", price=1),
    ]
    with pytest.raises(NotFoundError) as exc:
        variant_validator.validate_bulk_variants_exist(7, [1, 2, 3], fetched)
    assert exc.value.error_code == BULK_UPDATE_VARIANT_NOT_FOUND
    assert exc.value.details == {"missingIds": [2, 3]}


def test_in_stock_property():
    assert ProductVariant(allow_purchase=True, stock=None).in_stock is True
    assert ProductVariant(allow_purchase=True, stock=0).in_stock is False
    assert ProductVariant(allow_purchase=False, stock=5).in_stock is False


def test_skus_are_trimmed():
    assert CreateVariantRequest(sku="  TS-1 ", price=1).sku == "TS-1"
    assert UpdateVariantRequest(sku=" TS-2").sku == "TS-2"
    assert UpdateVariantRequest(price=2).sku is None
    assert CreateProductRequest(name="Tee", baseSku=" TS ").baseSku == "TS"


@pytest.mark.parametrize(
    "build",
    [
        lambda: CreateVariantRequest(sku="   ", price=1),
        lambda: UpdateVariantRequest(sku=" \t "),
        lambda: BulkUpdateVariantItem(id=1, sku="  "),
        lambda: CreateProductRequest(name="Tee", baseSku="   "),
    ],
)
def test_blank_skus_are_rejected(build):
    with pytest.raises(pydantic.ValidationError, match="SKU must not be blank"):
        build()
