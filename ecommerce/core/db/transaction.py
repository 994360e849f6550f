"""
Transactional scope for multi-step writes.

Services wrap every multi-row mutation in ``atomic``::

    async with atomic(db):
        await ProductRepository.lock_product(db, product_id)
        ...

Everything executed inside the block is flushed on exit. Any exception,
including task cancellation, rolls the session back before it propagates, so
no partial write survives. The request-scoped session commits afterwards.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ecommerce.core.exceptions import (
    CONFLICT,
    PRODUCT_SKU_CONFLICT,
    SKU_CONFLICT,
    VARIANT_COMBINATION_EXISTS,
    ConflictError,
    DatabaseError,
    ForeignKeyError,
)

logger = logging.getLogger(__name__)


def translate_integrity_error(exc: IntegrityError) -> Exception:
    """Map a database constraint violation onto a typed application error."""
    message = str(exc.orig if exc.orig is not None else exc).lower()

    if "foreign key" in message:
        return ForeignKeyError()
    if "product_variant.sku" in message or "uq_product_variant_sku" in message:
        return ConflictError("Variant SKU already exists", SKU_CONFLICT)
    if "product.base_sku" in message or "uq_product_base_sku" in message:
        return ConflictError("Product base SKU already exists", PRODUCT_SKU_CONFLICT)
    if "variant_option_value" in message:
        return ConflictError(
            "Variant already has a value for this option", VARIANT_COMBINATION_EXISTS
        )
    return ConflictError("Resource already exists", CONFLICT)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block of gateway calls as one all-or-nothing unit.

    Raises:
        ConflictError / ForeignKeyError: When the flush violates a constraint
        DatabaseError: When the database itself fails (locked, disk I/O)
    """
    try:
        yield db
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        translated = translate_integrity_error(exc)
        logger.warning("Transaction rolled back: %s", translated)
        raise translated from exc
    except OperationalError as exc:
        await db.rollback()
        logger.error("Transaction rolled back on database failure: %s", exc.orig)
        raise DatabaseError() from exc
    except BaseException:
        await db.rollback()
        raise
