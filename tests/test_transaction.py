import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from ecommerce.core.db.transaction import atomic
from ecommerce.core.exceptions import INTERNAL_ERROR, SKU_CONFLICT, ConflictError, DatabaseError
from ecommerce.modules.variants.models import ProductVariant
from ecommerce.modules.variants.query_service import VariantQueryService
from ecommerce.modules.variants.repository import VariantRepository


async def _defaults(db, product_id):
    variants = await VariantQueryService.get_product_variants_with_options(db, product_id)
    return [variant.sku for variant in variants if variant.isDefault]


async def test_cancelled_block_rolls_back(db, tshirt):
    product_id = tshirt.id
    inside = asyncio.Event()

    async def writer():
        async with atomic(db):
            await VariantRepository.unset_all_defaults_for_product(db, product_id)
            inside.set()
            await asyncio.Event().wait()

    task = asyncio.create_task(writer())
    await inside.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await _defaults(db, product_id) == ["TSHIRT-001-red-s"]


async def test_failed_block_rolls_back(db, tshirt):
    product_id = tshirt.id

    with pytest.raises(RuntimeError):
        async with atomic(db):
            await VariantRepository.unset_all_defaults_for_product(db, product_id)
            raise RuntimeError("boom")

    assert await _defaults(db, product_id) == ["TSHIRT-001-red-s"]


async def test_duplicate_sku_is_translated(db, tshirt):
    product_id = tshirt.id

    with pytest.raises(ConflictError) as exc:
        async with atomic(db):
            db.add(ProductVariant(product_id=product_id, sku="TSHIRT-001-red-s", price=5))

    assert exc.value.error_code == SKU_CONFLICT
    assert len(await _defaults(db, product_id)) == 1


async def test_database_failure_is_reported(db, tshirt):
    product_id = tshirt.id

    with pytest.raises(DatabaseError) as exc:
        async with atomic(db):
            await VariantRepository.unset_all_defaults_for_product(db, product_id)
            raise OperationalError("UPDATE product_variant", {}, Exception("database is locked"))

    assert exc.value.status_code == 500
    assert exc.value.error_code == INTERNAL_ERROR
    assert await _defaults(db, product_id) == ["TSHIRT-001-red-s"]
