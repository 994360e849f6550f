import pytest
from sqlalchemy import select

from ecommerce.core.exceptions import (
    PRODUCT_NOT_FOUND,
    PRODUCT_OPTION_IN_USE,
    PRODUCT_OPTION_MISMATCH,
    PRODUCT_OPTION_NAME_EXISTS,
    PRODUCT_OPTION_NOT_FOUND,
    PRODUCT_OPTION_VALUE_EXISTS,
    PRODUCT_OPTION_VALUE_IN_USE,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ecommerce.modules.product_options.schemas import (
    BulkAddOptionValuesRequest,
    BulkUpdateOptionValuesRequest,
    BulkUpdateOptionsRequest,
    CreateOptionRequest,
    OptionValueInput,
    UpdateOptionRequest,
    UpdateOptionValueRequest,
)
from ecommerce.modules.product_options.service import ProductOptionService
from ecommerce.modules.products.schemas import CreateProductRequest
from ecommerce.modules.products.service import ProductService
from ecommerce.modules.variants.models import VariantOptionValue
from ecommerce.modules.variants.query_service import VariantQueryService


async def test_available_options_with_usage(db, seller_id, tshirt):
    available = await ProductOptionService.get_available_options(db, tshirt.id, seller_id)

    assert available.productId == tshirt.id
    assert [option.name for option in available.options] == ["color", "size"]
    assert [option.displayName for option in available.options] == ["color", "Size"]
    red = available.options[0].values[0]
    assert (red.value, red.displayName, red.colorCode, red.variantCount) == (
        "red", "Red", "#FF0000", 2,
    )


async def test_available_options_hidden_from_other_sellers(db, other_seller_id, tshirt):
    with pytest.raises(NotFoundError) as exc:
        await ProductOptionService.get_available_options(db, tshirt.id, other_seller_id)
    assert exc.value.error_code == PRODUCT_NOT_FOUND


async def test_add_value_then_unused(db, seller_id, tshirt):
    color_id = tshirt.options[0].id
    created = await ProductOptionService.add_value(
        db, tshirt.id, color_id, seller_id, OptionValueInput(value=" Green ", colorCode="#00FF00")
    )
    await db.commit()

    assert created.value == "green"
    assert created.displayName == "green"
    assert created.position == 2
    assert created.variantCount == 0

    available = await ProductOptionService.get_available_options(db, tshirt.id, seller_id)
    assert [v.value for v in available.options[0].values] == ["red", "blue", "green"]


async def test_add_duplicate_value(db, seller_id, tshirt):
    product_id, color_id = tshirt.id, tshirt.options[0].id
    with pytest.raises(ConflictError) as exc:
        await ProductOptionService.add_value(
            db, product_id, color_id, seller_id, OptionValueInput(value="RED")
        )
    assert exc.value.error_code == PRODUCT_OPTION_VALUE_EXISTS


async def test_add_values_rejects_duplicates_in_batch(db, seller_id, tshirt):
    product_id, size_id = tshirt.id, tshirt.options[1].id
    with pytest.raises(ConflictError):
        await ProductOptionService.add_values(
            db,
            product_id,
            size_id,
            seller_id,
            BulkAddOptionValuesRequest(values=[{"value": "l"}, {"value": "L"}]),
        )

    created = await ProductOptionService.add_values(
        db,
        product_id,
        size_id,
        seller_id,
        BulkAddOptionValuesRequest(values=[{"value": "l"}, {"value": "xl"}]),
    )
    assert [(v.value, v.position) for v in created] == [("l", 2), ("xl", 3)]


async def test_add_option_binds_existing_variants(db, seller_id, tshirt):
    """Every existing variant gets the first value of a newly added option."""
    option = await ProductOptionService.add_option(
        db,
        tshirt.id,
        seller_id,
        CreateOptionRequest(
            name="Sleeve Length",
            values=[{"value": "Short"}, {"value": "Long"}],
        ),
    )
    await db.commit()

    assert option.name == "sleeve_length"
    assert option.position == 2
    short_id = option.values[0].id

    links = (
        await db.execute(
            select(VariantOptionValue.option_value_id).where(
                VariantOptionValue.option_id == option.id
            )
        )
    ).scalars().all()
    assert sorted(links) == [short_id] * 4

    found = await VariantQueryService.find_variant_by_options(
        db, tshirt.id, {"color": "blue", "size": "m", "sleeve_length": "short"}
    )
    assert found.sku == "TSHIRT-001-blue-m"


async def test_add_option_needs_values_when_variants_exist(db, seller_id, tshirt):
    product_id = tshirt.id
    with pytest.raises(ValidationError):
        await ProductOptionService.add_option(
            db, product_id, seller_id, CreateOptionRequest(name="fit")
        )


async def test_add_option_name_taken(db, seller_id, tshirt):
    product_id = tshirt.id
    with pytest.raises(ConflictError) as exc:
        await ProductOptionService.add_option(
            db, product_id, seller_id, CreateOptionRequest(name="COLOR", values=[{"value": "x"}])
        )
    assert exc.value.error_code == PRODUCT_OPTION_NAME_EXISTS


async def test_add_option_invalid_name(db, seller_id, tshirt):
    product_id = tshirt.id
    with pytest.raises(ValidationError):
        await ProductOptionService.add_option(
            db, product_id, seller_id, CreateOptionRequest(name="--", values=[{"value": "x"}])
        )


async def test_update_option(db, seller_id, tshirt):
    updated = await ProductOptionService.update_option(
        db,
        tshirt.id,
        tshirt.options[0].id,
        seller_id,
        UpdateOptionRequest(displayName="Colour", position=5),
    )
    assert updated.displayName == "Colour"
    assert updated.position == 5
    assert updated.name == "color"
    assert [v.value for v in updated.values] == ["red", "blue"]


async def test_update_option_of_another_product(db, seller_id, tshirt):
    other = await ProductService.create_product(
        db,
        seller_id,
        CreateProductRequest(
            name="Cap",
            options=[{"name": "color", "values": [{"value": "red"}]}],
            variants=[{"sku": "CAP-R", "price": 9, "options": [{"optionName": "color", "value": "red"}]}],
        ),
    )
    await db.commit()
    product_id, foreign_option_id = tshirt.id, other.options[0].id

    with pytest.raises(ValidationError) as exc:
        await ProductOptionService.update_option(
            db, product_id, foreign_option_id, seller_id, UpdateOptionRequest(position=1)
        )
    assert exc.value.error_code == PRODUCT_OPTION_MISMATCH


async def test_bulk_update_options(db, seller_id, tshirt):
    color_id, size_id = tshirt.options[0].id, tshirt.options[1].id
    updated = await ProductOptionService.bulk_update_options(
        db,
        tshirt.id,
        seller_id,
        BulkUpdateOptionsRequest(
            options=[
                {"id": size_id, "position": 0},
                {"id": color_id, "position": 1, "displayName": "Colour"},
            ]
        ),
    )
    await db.commit()
    assert [(o.name, o.position) for o in updated] == [("size", 0), ("color", 1)]

    available = await ProductOptionService.get_available_options(db, tshirt.id, seller_id)
    assert [option.name for option in available.options] == ["size", "color"]


async def test_bulk_update_unknown_option(db, seller_id, tshirt):
    product_id = tshirt.id
    with pytest.raises(NotFoundError) as exc:
        await ProductOptionService.bulk_update_options(
            db, product_id, seller_id, BulkUpdateOptionsRequest(options=[{"id": 9999, "position": 1}])
        )
    assert exc.value.error_code == PRODUCT_OPTION_NOT_FOUND


async def test_update_and_bulk_update_values(db, seller_id, tshirt):
    color = tshirt.options[0]
    red_id, blue_id = color.values[0].id, color.values[1].id

    red = await ProductOptionService.update_value(
        db, tshirt.id, color.id, red_id, seller_id,
        UpdateOptionValueRequest(displayName="Crimson", colorCode="#DC143C"),
    )
    assert (red.value, red.displayName, red.colorCode) == ("red", "Crimson", "#DC143C")

    values = await ProductOptionService.bulk_update_values(
        db, tshirt.id, color.id, seller_id,
        BulkUpdateOptionValuesRequest(
            values=[{"id": blue_id, "position": 0}, {"id": red_id, "position": 1}]
        ),
    )
    assert [(v.value, v.position) for v in values] == [("blue", 0), ("red", 1)]


async def test_delete_option_in_use(db, seller_id, tshirt):
    product_id, color_id = tshirt.id, tshirt.options[0].id
    with pytest.raises(ConflictError) as exc:
        await ProductOptionService.delete_option(db, product_id, color_id, seller_id)
    assert exc.value.status_code == 400
    assert exc.value.error_code == PRODUCT_OPTION_IN_USE
    assert exc.value.details["variantCount"] == 4
    assert len(exc.value.details["variantIds"]) == 4


async def test_delete_value_in_use_and_unused(db, seller_id, tshirt):
    product_id = tshirt.id
    color = tshirt.options[0]
    red_id = color.values[0].id

    with pytest.raises(ConflictError) as exc:
        await ProductOptionService.delete_value(db, product_id, color.id, red_id, seller_id)
    assert exc.value.error_code == PRODUCT_OPTION_VALUE_IN_USE
    assert exc.value.details["variantCount"] == 2

    green = await ProductOptionService.add_value(
        db, product_id, color.id, seller_id, OptionValueInput(value="green")
    )
    await db.commit()
    await ProductOptionService.delete_value(db, product_id, color.id, green.id, seller_id)
    await db.commit()

    available = await ProductOptionService.get_available_options(db, product_id, seller_id)
    assert [v.value for v in available.options[0].values] == ["red", "blue"]


async def test_delete_value_of_another_option(db, seller_id, tshirt):
    product_id = tshirt.id
    color_id, small_id = tshirt.options[0].id, tshirt.options[1].values[0].id
    with pytest.raises(ValidationError):
        await ProductOptionService.delete_value(db, product_id, color_id, small_id, seller_id)
