import pytest
from sqlalchemy import func, select

from ecommerce.core.exceptions import (
    PRODUCT_NOT_FOUND,
    PRODUCT_SKU_CONFLICT,
    VARIANT_COMBINATION_EXISTS,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from ecommerce.modules.products.models import Product
from ecommerce.modules.products.schemas import CreateProductRequest, UpdateProductRequest
from ecommerce.modules.products.service import ProductService
from ecommerce.modules.variants.models import ProductVariant, VariantOptionValue


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def test_create_product_generates_all_combinations(tshirt):
    """Auto-generation creates one variant per color x size combination."""
    assert tshirt.baseSku == "TSHIRT-001"
    assert [option.name for option in tshirt.options] == ["color", "size"]
    assert [value.value for value in tshirt.options[0].values] == ["red", "blue"]
    assert tshirt.options[0].values[0].colorCode == "#FF0000"
    assert tshirt.options[1].displayName == "Size"

    skus = [variant.sku for variant in tshirt.variants]
    assert skus == [
        "TSHIRT-001-red-s",
        "TSHIRT-001-red-m",
        "TSHIRT-001-blue-s",
        "TSHIRT-001-blue-m",
    ]
    defaults = [variant.sku for variant in tshirt.variants if variant.isDefault]
    assert defaults == ["TSHIRT-001-red-s"]

    first = tshirt.variants[0]
    assert first.price == 19.99
    assert first.stock == 10
    assert first.inStock is True
    assert [(o.optionName, o.value) for o in first.selectedOptions] == [
        ("color", "red"),
        ("size", "s"),
    ]


async def test_create_product_summary(tshirt):
    summary = tshirt.variantSummary
    assert summary.hasVariants is True
    assert summary.totalVariants == 4
    assert summary.minPrice == summary.maxPrice == 19.99
    assert summary.totalStock == 40
    assert summary.mainImage == "tshirt.jpg"
    assert summary.optionNames == ["color", "size"]
    assert summary.optionValues == {"color": ["red", "blue"], "size": ["s", "m"]}
    # Every value is used by two of the four variants
    assert all(value.variantCount == 2 for option in tshirt.options for value in option.values)


async def test_create_product_with_explicit_variants(db, seller_id):
    dto = CreateProductRequest(
        name="Hoodie",
        options=[{"name": "color", "values": [{"value": "black"}, {"value": "grey"}]}],
        variants=[
            {"sku": "HOOD-BLK", "price": 40, "options": [{"optionName": "color", "value": "black"}]},
            {
                "sku": "HOOD-GRY",
                "price": 45,
                "isDefault": True,
                "options": [{"optionName": "color", "value": "Grey"}],
            },
        ],
    )
    detail = await ProductService.create_product(db, seller_id, dto)

    assert detail.baseSku is None
    assert [v.sku for v in detail.variants if v.isDefault] == ["HOOD-GRY"]
    assert detail.variantSummary.minPrice == 40
    assert detail.variantSummary.maxPrice == 45
    # Each value backs exactly one variant
    counts = {value.value: value.variantCount for value in detail.options[0].values}
    assert counts == {"black": 1, "grey": 1}


async def test_create_product_without_options(db, seller_id):
    dto = CreateProductRequest(
        name="Gift Card",
        variants=[{"sku": "GIFT-50", "price": 50}],
    )
    detail = await ProductService.create_product(db, seller_id, dto)

    assert detail.options == []
    assert len(detail.variants) == 1
    assert detail.variants[0].isDefault is True
    assert detail.variants[0].selectedOptions == []


async def test_create_product_needs_a_variant(db, seller_id):
    with pytest.raises(ValidationError):
        await ProductService.create_product(db, seller_id, CreateProductRequest(name="Empty"))


async def test_auto_generation_requires_base_sku(db, seller_id, tshirt_payload):
    tshirt_payload.pop("baseSku")
    with pytest.raises(ValidationError):
        await ProductService.create_product(db, seller_id, CreateProductRequest(**tshirt_payload))


async def test_auto_generation_requires_settings(db, seller_id, tshirt_payload):
    tshirt_payload.pop("defaultVariantSettings")
    with pytest.raises(ValidationError):
        await ProductService.create_product(db, seller_id, CreateProductRequest(**tshirt_payload))


async def test_admin_must_name_the_seller(db, tshirt_payload):
    with pytest.raises(ValidationError):
        await ProductService.create_product(db, None, CreateProductRequest(**tshirt_payload))


async def test_admin_creates_for_seller(db, seller_id, tshirt_payload):
    tshirt_payload["sellerId"] = seller_id
    detail = await ProductService.create_product(db, None, CreateProductRequest(**tshirt_payload))
    assert detail.sellerId == seller_id


async def test_duplicate_base_sku_rolls_back(db, seller_id, tshirt, tshirt_payload):
    tshirt_payload["name"] = "Another shirt"
    with pytest.raises(ConflictError) as exc:
        await ProductService.create_product(db, seller_id, CreateProductRequest(**tshirt_payload))
    assert exc.value.error_code == PRODUCT_SKU_CONFLICT

    assert await _count(db, Product) == 1
    assert await _count(db, ProductOption) == 2
    assert await _count(db, ProductVariant) == 4


async def test_duplicate_combination_in_request_rolls_back(db, seller_id):
    dto = CreateProductRequest(
        name="Socks",
        options=[{"name": "size", "values": [{"value": "s"}]}],
        variants=[
            {"sku": "SOCK-1", "price": 3, "options": [{"optionName": "size", "value": "s"}]},
            {"sku": "SOCK-2", "price": 3, "options": [{"optionName": "size", "value": "S"}]},
        ],
    )
    with pytest.raises(ConflictError) as exc:
        await ProductService.create_product(db, seller_id, dto)
    assert exc.value.error_code == VARIANT_COMBINATION_EXISTS
    assert await _count(db, Product) == 0
    assert await _count(db, ProductOptionValue) == 0


async def test_get_product_is_scoped_to_owner(db, tshirt, seller_id, other_seller_id):
    detail = await ProductService.get_product(db, tshirt.id, seller_id)
    assert detail.id == tshirt.id

    with pytest.raises(NotFoundError) as exc:
        await ProductService.get_product(db, tshirt.id, other_seller_id)
    assert exc.value.error_code == PRODUCT_NOT_FOUND

    # Admin scope
    assert (await ProductService.get_product(db, tshirt.id, None)).id == tshirt.id


async def test_get_missing_product(db):
    with pytest.raises(NotFoundError) as exc:
        await ProductService.get_product(db, 999, None)
    assert exc.value.status_code == 404


async def test_list_products_with_summaries(db, seller_id, other_seller_id, tshirt):
    await ProductService.create_product(
        db,
        other_seller_id,
        CreateProductRequest(name="Mug", variants=[{"sku": "MUG-1", "price": 8, "stock": 0}]),
    )
    await db.commit()

    everything = await ProductService.list_products(db, None)
    assert everything.total == 2
    assert [item.name for item in everything.items] == ["Mug", "Basic T-Shirt"]
    mug = everything.items[0]
    assert mug.variantSummary.totalVariants == 1
    assert mug.variantSummary.inStock is False
    assert mug.variantSummary.optionNames == []

    own = await ProductService.list_products(db, seller_id)
    assert [item.id for item in own.items] == [tshirt.id]
    assert own.items[0].variantSummary.totalVariants == 4

    searched = await ProductService.list_products(db, None, search="shirt")
    assert searched.total == 1

    paged = await ProductService.list_products(db, None, page=2, page_size=1)
    assert paged.total == 2
    assert len(paged.items) == 1
    assert paged.hasMore is False


async def test_update_product(db, seller_id, tshirt):
    updated = await ProductService.update_product(
        db,
        tshirt.id,
        seller_id,
        UpdateProductRequest(name="Premium T-Shirt", tags=["summer", "cotton"]),
    )
    assert updated.name == "Premium T-Shirt"
    assert updated.tags == ["summer", "cotton"]
    assert updated.baseSku == "TSHIRT-001"
    assert updated.brand == "Acme"


async def test_delete_product_removes_everything(db, seller_id, tshirt):
    await ProductService.delete_product(db, tshirt.id, seller_id)
    await db.commit()

    for model in (Product, ProductOption, ProductOptionValue, ProductVariant, VariantOptionValue):
        assert await _count(db, model) == 0


async def test_delete_foreign_product_is_not_found(db, other_seller_id, tshirt):
    product_id = tshirt.id
    with pytest.raises(NotFoundError):
        await ProductService.delete_product(db, product_id, other_seller_id)
    assert await _count(db, Product) == 1
