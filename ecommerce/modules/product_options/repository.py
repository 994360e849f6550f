"""
ProductOptionRepository - SQL for options, option values and their usage.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ecommerce.core.exceptions import (
    PRODUCT_OPTION_NOT_FOUND,
    PRODUCT_OPTION_VALUE_NOT_FOUND,
    NotFoundError,
)
from ecommerce.modules.variants.models import VariantOptionValue
from .models import ProductOption, ProductOptionValue


@dataclass
class OptionValueUsage:
    value: ProductOptionValue
    variant_count: int = 0


@dataclass
class OptionWithValues:
    option: ProductOption
    values: List[OptionValueUsage] = field(default_factory=list)


class ProductOptionRepository:
    """Data access for product options and option values."""

    @staticmethod
    async def create_option(db: AsyncSession, option: ProductOption) -> ProductOption:
        db.add(option)
        await db.flush()
        return option

    @staticmethod
    async def bulk_create_options(
        db: AsyncSession, options: List[ProductOption]
    ) -> List[ProductOption]:
        """Insert several options in one flush; ids are populated in order."""
        db.add_all(options)
        await db.flush()
        return options

    @staticmethod
    async def bulk_create_values(
        db: AsyncSession, values: List[ProductOptionValue]
    ) -> List[ProductOptionValue]:
        if not values:
            return values
        db.add_all(values)
        await db.flush()
        return values

    @staticmethod
    async def find_options_by_product(
        db: AsyncSession, product_id: int, with_values: bool = True
    ) -> List[ProductOption]:
        """
        Options of a product ordered by position.
        Optimized: values are loaded with selectinload (one extra query total).
        """
        query = (
            select(ProductOption)
            .where(ProductOption.product_id == product_id)
            .order_by(ProductOption.position, ProductOption.id)
        )
        if with_values:
            query = query.options(selectinload(ProductOption.values)).execution_options(
                populate_existing=True
            )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def find_option_by_id(db: AsyncSession, option_id: int) -> ProductOption:
        """
        Raises:
            NotFoundError: If the option does not exist
        """
        option = await db.scalar(select(ProductOption).where(ProductOption.id == option_id))
        if not option:
            raise NotFoundError(
                "Product option", option_id, error_code=PRODUCT_OPTION_NOT_FOUND
            )
        return option

    @staticmethod
    async def find_values_by_option(
        db: AsyncSession, option_id: int
    ) -> List[ProductOptionValue]:
        result = await db.execute(
            select(ProductOptionValue)
            .where(ProductOptionValue.option_id == option_id)
            .order_by(ProductOptionValue.position, ProductOptionValue.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_value_by_id(db: AsyncSession, value_id: int) -> ProductOptionValue:
        """
        Raises:
            NotFoundError: If the option value does not exist
        """
        value = await db.scalar(
            select(ProductOptionValue).where(ProductOptionValue.id == value_id)
        )
        if not value:
            raise NotFoundError(
                "Product option value", value_id, error_code=PRODUCT_OPTION_VALUE_NOT_FOUND
            )
        return value

    @staticmethod
    async def update_option(
        db: AsyncSession, option: ProductOption, changes: Dict[str, Any]
    ) -> ProductOption:
        for key, value in changes.items():
            setattr(option, key, value)
        await db.flush()
        return option

    @staticmethod
    async def bulk_update_options(
        db: AsyncSession, patches: Sequence[tuple]
    ) -> None:
        """Apply (option, changes) pairs and flush once."""
        for option, changes in patches:
            for key, value in changes.items():
                setattr(option, key, value)
        await db.flush()

    @staticmethod
    async def update_value(
        db: AsyncSession, value: ProductOptionValue, changes: Dict[str, Any]
    ) -> ProductOptionValue:
        for key, new_value in changes.items():
            setattr(value, key, new_value)
        await db.flush()
        return value

    @staticmethod
    async def bulk_update_values(db: AsyncSession, patches: Sequence[tuple]) -> None:
        """Apply (value, changes) pairs and flush once."""
        for value, changes in patches:
            for key, new_value in changes.items():
                setattr(value, key, new_value)
        await db.flush()

    @staticmethod
    async def delete_option(db: AsyncSession, option_id: int) -> None:
        """Delete an option and its values, values first."""
        await db.execute(
            delete(ProductOptionValue).where(ProductOptionValue.option_id == option_id)
        )
        await db.execute(delete(ProductOption).where(ProductOption.id == option_id))

    @staticmethod
    async def delete_value(db: AsyncSession, value_id: int) -> None:
        await db.execute(
            delete(ProductOptionValue).where(ProductOptionValue.id == value_id)
        )

    @staticmethod
    async def delete_options_by_product(db: AsyncSession, product_id: int) -> None:
        """Delete all option values, then all options of a product."""
        option_ids = select(ProductOption.id).where(
            ProductOption.product_id == product_id
        )
        await db.execute(
            delete(ProductOptionValue).where(ProductOptionValue.option_id.in_(option_ids))
        )
        await db.execute(
            delete(ProductOption).where(ProductOption.product_id == product_id)
        )

    @staticmethod
    async def find_variant_ids_using_option(db: AsyncSession, option_id: int) -> List[int]:
        result = await db.execute(
            select(VariantOptionValue.variant_id)
            .where(VariantOptionValue.option_id == option_id)
            .distinct()
            .order_by(VariantOptionValue.variant_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_variant_ids_using_value(db: AsyncSession, value_id: int) -> List[int]:
        result = await db.execute(
            select(VariantOptionValue.variant_id)
            .where(VariantOptionValue.option_value_id == value_id)
            .distinct()
            .order_by(VariantOptionValue.variant_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_options_with_variant_counts(
        db: AsyncSession, product_id: int
    ) -> List[OptionWithValues]:
        """
        Options of a product with their values and, per value, the number of
        variants referencing it.

        Optimized: a single SELECT joining options, values and a grouped count
        subquery; options and values come back ordered by position.
        """
        product_option_ids = select(ProductOption.id).where(
            ProductOption.product_id == product_id
        )
        usage = (
            select(
                VariantOptionValue.option_value_id.label("option_value_id"),
                func.count(VariantOptionValue.variant_id).label("variant_count"),
            )
            .where(VariantOptionValue.option_id.in_(product_option_ids))
            .group_by(VariantOptionValue.option_value_id)
            .subquery()
        )
        query = (
            select(
                ProductOption,
                ProductOptionValue,
                func.coalesce(usage.c.variant_count, 0),
            )
            .outerjoin(ProductOptionValue, ProductOptionValue.option_id == ProductOption.id)
            .outerjoin(usage, usage.c.option_value_id == ProductOptionValue.id)
            .where(ProductOption.product_id == product_id)
            .order_by(
                ProductOption.position,
                ProductOption.id,
                ProductOptionValue.position,
                ProductOptionValue.id,
            )
        )
        result = await db.execute(query)

        grouped: Dict[int, OptionWithValues] = {}
        for option, value, variant_count in result.all():
            entry = grouped.get(option.id)
            if entry is None:
                entry = grouped[option.id] = OptionWithValues(option=option)
            if value is not None:
                entry.values.append(OptionValueUsage(value=value, variant_count=variant_count))
        return list(grouped.values())
