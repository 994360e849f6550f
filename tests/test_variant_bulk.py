import pytest
from sqlalchemy import func, select

from ecommerce.core.exceptions import (
    BULK_UPDATE_VARIANT_NOT_FOUND,
    SKU_CONFLICT,
    VARIANT_COMBINATION_EXISTS,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ecommerce.modules.product_options.schemas import BulkAddOptionValuesRequest
from ecommerce.modules.product_options.service import ProductOptionService
from ecommerce.modules.variants.bulk_service import VariantBulkService
from ecommerce.modules.variants.models import ProductVariant, VariantOptionValue
from ecommerce.modules.variants.query_service import VariantQueryService
from ecommerce.modules.variants.schemas import BulkUpdateVariantItem, CreateVariantRequest


def _request(sku, color, size, **fields):
    return CreateVariantRequest(
        sku=sku,
        price=fields.pop("price", 30),
        options=[{"optionName": "color", "value": color}, {"optionName": "size", "value": size}],
        **fields,
    )


async def _add_large(db, seller_id, tshirt):
    await ProductOptionService.add_values(
        db,
        tshirt.id,
        tshirt.options[1].id,
        seller_id,
        BulkAddOptionValuesRequest(values=[{"value": "l"}]),
    )
    await db.commit()


async def _variant_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(ProductVariant))


async def test_bulk_create(db, seller_id, tshirt):
    await _add_large(db, seller_id, tshirt)

    result = await VariantBulkService.bulk_create_variants(
        db,
        tshirt.id,
        seller_id,
        [
            _request("TSHIRT-001-red-l", "red", "l"),
            _request("TSHIRT-001-blue-l", "blue", "l", isDefault=True),
        ],
    )
    await db.commit()

    assert result.createdCount == 2
    assert [v.sku for v in result.variants] == ["TSHIRT-001-red-l", "TSHIRT-001-blue-l"]
    assert [v.isDefault for v in result.variants] == [False, True]
    assert [o.value for o in result.variants[1].selectedOptions] == ["blue", "l"]

    variants = await VariantQueryService.get_product_variants_with_options(db, tshirt.id)
    assert len(variants) == 6
    assert [v.sku for v in variants if v.isDefault] == ["TSHIRT-001-blue-l"]


async def test_bulk_create_is_all_or_nothing(db, seller_id, tshirt):
    await _add_large(db, seller_id, tshirt)
    product_id = tshirt.id

    with pytest.raises(ConflictError) as exc:
        await VariantBulkService.bulk_create_variants(
            db,
            product_id,
            seller_id,
            [
                _request("TSHIRT-001-red-l", "red", "l"),
                _request("DUPLICATE", "blue", "s"),
            ],
        )
    assert exc.value.error_code == VARIANT_COMBINATION_EXISTS
    assert await _variant_count(db) == 4


async def test_bulk_create_duplicate_within_batch(db, seller_id, tshirt):
    await _add_large(db, seller_id, tshirt)
    product_id = tshirt.id

    with pytest.raises(ConflictError) as exc:
        await VariantBulkService.bulk_create_variants(
            db,
            product_id,
            seller_id,
            [
                _request("A-1", "red", "l"),
                _request("A-2", "Red", " L "),
            ],
        )
    assert exc.value.details["indexes"] == [0, 1]
    assert await _variant_count(db) == 4


async def test_bulk_create_sku_conflict_leaves_no_rows(db, seller_id, tshirt):
    await _add_large(db, seller_id, tshirt)
    product_id = tshirt.id

    with pytest.raises(ConflictError) as exc:
        await VariantBulkService.bulk_create_variants(
            db,
            product_id,
            seller_id,
            [
                _request("FRESH-SKU", "red", "l"),
                _request("TSHIRT-001-red-s", "blue", "l"),
            ],
        )
    assert exc.value.error_code == SKU_CONFLICT
    assert await _variant_count(db) == 4
    assert await db.scalar(select(func.count()).select_from(VariantOptionValue)) == 8


async def test_bulk_create_empty(db, seller_id, tshirt):
    with pytest.raises(ValidationError):
        await VariantBulkService.bulk_create_variants(db, tshirt.id, seller_id, [])


async def test_bulk_update(db, seller_id, tshirt):
    ids = {variant.sku: variant.id for variant in tshirt.variants}
    result = await VariantBulkService.bulk_update_variants(
        db,
        tshirt.id,
        seller_id,
        [
            BulkUpdateVariantItem(id=ids["TSHIRT-001-red-m"], price=22, isDefault=True),
            BulkUpdateVariantItem(id=ids["TSHIRT-001-blue-s"], stock=0),
            BulkUpdateVariantItem(id=ids["TSHIRT-001-blue-m"], isDefault=True, allowPurchase=False),
        ],
    )
    await db.commit()

    assert result.updatedCount == 3
    by_id = {variant.id: variant for variant in result.variants}
    assert by_id[ids["TSHIRT-001-red-m"]].price == 22
    assert by_id[ids["TSHIRT-001-red-m"]].isDefault is False
    assert by_id[ids["TSHIRT-001-blue-s"]].inStock is False
    assert by_id[ids["TSHIRT-001-blue-m"]].isDefault is True
    assert by_id[ids["TSHIRT-001-blue-m"]].allowPurchase is False

    variants = await VariantQueryService.get_product_variants_with_options(db, tshirt.id)
    assert [v.sku for v in variants if v.isDefault] == ["TSHIRT-001-blue-m"]


async def test_bulk_update_is_idempotent(db, seller_id, tshirt):
    product_id = tshirt.id
    ids = {variant.sku: variant.id for variant in tshirt.variants}
    items = [
        BulkUpdateVariantItem(id=ids["TSHIRT-001-red-m"], price=24, stock=5),
        BulkUpdateVariantItem(id=ids["TSHIRT-001-blue-s"], isDefault=True, isPopular=True),
    ]

    async def state():
        variants = await VariantQueryService.get_product_variants_with_options(db, product_id)
        return [
            (v.sku, v.price, v.stock, v.isDefault, v.isPopular, v.allowPurchase)
            for v in variants
        ]

    await VariantBulkService.bulk_update_variants(db, product_id, seller_id, items)
    await db.commit()
    once = await state()

    await VariantBulkService.bulk_update_variants(db, product_id, seller_id, items)
    await db.commit()

    assert await state() == once
    assert [row[0] for row in once if row[3]] == ["TSHIRT-001-blue-s"]


async def test_bulk_update_unknown_ids(db, seller_id, tshirt):
    product_id = tshirt.id
    known_id = tshirt.variants[1].id
    with pytest.raises(NotFoundError) as exc:
        await VariantBulkService.bulk_update_variants(
            db,
            product_id,
            seller_id,
            [BulkUpdateVariantItem(id=known_id, price=1), BulkUpdateVariantItem(id=9999, price=1)],
        )
    assert exc.value.error_code == BULK_UPDATE_VARIANT_NOT_FOUND
    assert exc.value.details == {"missingIds": [9999]}

    variants = await VariantQueryService.get_product_variants_with_options(db, product_id)
    assert all(variant.price == 19.99 for variant in variants)


async def test_bulk_update_cannot_drop_the_default(db, seller_id, tshirt):
    product_id = tshirt.id
    default_id = tshirt.variants[0].id
    with pytest.raises(ValidationError):
        await VariantBulkService.bulk_update_variants(
            db, product_id, seller_id, [BulkUpdateVariantItem(id=default_id, isDefault=False)]
        )


async def test_bulk_update_empty(db, seller_id, tshirt):
    with pytest.raises(ValidationError):
        await VariantBulkService.bulk_update_variants(db, tshirt.id, seller_id, [])
