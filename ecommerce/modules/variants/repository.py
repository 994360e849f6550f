"""
VariantRepository - SQL for variants, their option links and the read models
built from them (variants with options, aggregations, filtered listing).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ecommerce.core.db.base import utcnow
from ecommerce.core.exceptions import VARIANT_NOT_FOUND, NotFoundError
from ecommerce.core.pagination import paginate_query
from ecommerce.core.utils import display_name_or_default
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from ecommerce.modules.products.models import Product
from .models import ProductVariant, VariantOptionValue


@dataclass
class SelectedOptionValue:
    option_id: int
    option_name: str
    option_display_name: str
    value_id: int
    value: str
    value_display_name: str
    color_code: Optional[str] = None


@dataclass
class VariantWithOptions:
    variant: ProductVariant
    selected_options: List[SelectedOptionValue] = field(default_factory=list)


@dataclass
class VariantAggregation:
    has_variants: bool = False
    total_variants: int = 0
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    main_image: Optional[str] = None
    allow_purchase: bool = False
    in_stock: bool = False
    total_stock: Optional[int] = None
    option_names: List[str] = field(default_factory=list)
    option_values: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class VariantFilters:
    seller_id: Optional[int] = None
    ids: Optional[List[int]] = None
    product_ids: Optional[List[int]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    allow_purchase: Optional[bool] = None
    is_popular: Optional[bool] = None
    is_default: Optional[bool] = None
    sku: Optional[str] = None
    options: Dict[str, str] = field(default_factory=dict)


_SORT_COLUMNS = {
    "price": ProductVariant.price,
    "created_at": ProductVariant.created_at,
    "updated_at": ProductVariant.updated_at,
}


def _option_pair_condition(options: Dict[str, str]):
    return or_(
        *(
            and_(ProductOption.name == name, ProductOptionValue.value == value)
            for name, value in options.items()
        )
    )


class VariantRepository:
    """Data access for product variants."""

    # ---- writes -------------------------------------------------------------

    @staticmethod
    async def create_variant(db: AsyncSession, variant: ProductVariant) -> ProductVariant:
        db.add(variant)
        await db.flush()
        return variant

    @staticmethod
    async def bulk_create_variants(
        db: AsyncSession, variants: List[ProductVariant]
    ) -> List[ProductVariant]:
        """
        Insert a batch of variants.
        Optimized: one batched INSERT; primary keys come back in list order.
        """
        db.add_all(variants)
        await db.flush()
        return variants

    @staticmethod
    async def update_variant(
        db: AsyncSession, variant: ProductVariant, changes: Dict[str, Any]
    ) -> ProductVariant:
        for key, value in changes.items():
            setattr(variant, key, value)
        await db.flush()
        return variant

    @staticmethod
    async def bulk_update_variants(
        db: AsyncSession, patches: Sequence[Tuple[ProductVariant, Dict[str, Any]]]
    ) -> None:
        """Apply (variant, changes) pairs and flush once."""
        for variant, changes in patches:
            for key, value in changes.items():
                setattr(variant, key, value)
        await db.flush()

    @staticmethod
    async def delete_variant(db: AsyncSession, variant_id: int) -> None:
        await db.execute(delete(ProductVariant).where(ProductVariant.id == variant_id))

    @staticmethod
    async def unset_all_defaults_for_product(db: AsyncSession, product_id: int) -> None:
        await db.execute(
            update(ProductVariant)
            .where(
                ProductVariant.product_id == product_id,
                ProductVariant.is_default.is_(True),
            )
            .values(is_default=False, updated_at=utcnow())
        )

    @staticmethod
    async def create_variant_option_values(
        db: AsyncSession, rows: List[VariantOptionValue]
    ) -> None:
        """Insert option links for one or many variants in one batched INSERT."""
        if not rows:
            return
        db.add_all(rows)
        await db.flush()

    @staticmethod
    async def delete_variant_option_values_by_variant_ids(
        db: AsyncSession, variant_ids: Iterable[int]
    ) -> None:
        ids = list(variant_ids)
        if not ids:
            return
        await db.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id.in_(ids))
        )

    @staticmethod
    async def delete_variants_by_product(db: AsyncSession, product_id: int) -> None:
        """Delete all option links, then all variants of a product."""
        variant_ids = select(ProductVariant.id).where(
            ProductVariant.product_id == product_id
        )
        await db.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id.in_(variant_ids))
        )
        await db.execute(
            delete(ProductVariant).where(ProductVariant.product_id == product_id)
        )

    # ---- reads --------------------------------------------------------------

    @staticmethod
    async def find_variant_by_id(
        db: AsyncSession, product_id: int, variant_id: int
    ) -> ProductVariant:
        """
        Fetch a variant of a given product.

        Raises:
            NotFoundError: If the variant is missing or belongs to another product
        """
        variant = await db.scalar(
            select(ProductVariant).where(ProductVariant.id == variant_id)
        )
        if not variant or variant.product_id != product_id:
            raise NotFoundError("Variant", variant_id, error_code=VARIANT_NOT_FOUND)
        return variant

    @staticmethod
    async def find_variants_by_ids(
        db: AsyncSession, variant_ids: Iterable[int]
    ) -> List[ProductVariant]:
        ids = list(set(variant_ids))
        if not ids:
            return []
        result = await db.execute(
            select(ProductVariant).where(ProductVariant.id.in_(ids)).order_by(ProductVariant.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_variants_by_product(
        db: AsyncSession, product_id: int
    ) -> List[ProductVariant]:
        result = await db.execute(
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def first_variant_for_product(
        db: AsyncSession, product_id: int
    ) -> Optional[ProductVariant]:
        return await db.scalar(
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.id)
            .limit(1)
        )

    @staticmethod
    async def count_variants_by_product(db: AsyncSession, product_id: int) -> int:
        count = await db.scalar(
            select(func.count(ProductVariant.id)).where(
                ProductVariant.product_id == product_id
            )
        )
        return count or 0

    @staticmethod
    async def get_variant_option_values(
        db: AsyncSession, variant_id: int
    ) -> List[VariantOptionValue]:
        result = await db.execute(
            select(VariantOptionValue)
            .where(VariantOptionValue.variant_id == variant_id)
            .order_by(VariantOptionValue.option_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_variant_by_options(
        db: AsyncSession, product_id: int, options: Dict[str, str]
    ) -> Optional[ProductVariant]:
        """
        Find the variant whose option links match every (name, value) pair.

        Optimized: a single SELECT; the inner grouped query keeps variants that
        matched as many distinct options as pairs were given.

        Args:
            options: Normalized option name -> option value

        Returns:
            The matching variant with the lowest id, or None
        """
        if not options:
            return await VariantRepository.first_variant_for_product(db, product_id)

        matching_ids = (
            select(VariantOptionValue.variant_id)
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
            .join(
                ProductOptionValue,
                ProductOptionValue.id == VariantOptionValue.option_value_id,
            )
            .where(
                ProductVariant.product_id == product_id,
                _option_pair_condition(options),
            )
            .group_by(VariantOptionValue.variant_id)
            .having(func.count(func.distinct(VariantOptionValue.option_id)) == len(options))
        )
        return await db.scalar(
            select(ProductVariant)
            .where(ProductVariant.id.in_(matching_ids))
            .order_by(ProductVariant.id)
            .limit(1)
        )

    @staticmethod
    async def get_combination_keys(
        db: AsyncSession, product_id: int
    ) -> Dict[int, Dict[str, str]]:
        """Option name -> value selection of every variant of a product."""
        result = await db.execute(
            select(VariantOptionValue.variant_id, ProductOption.name, ProductOptionValue.value)
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
            .join(
                ProductOptionValue,
                ProductOptionValue.id == VariantOptionValue.option_value_id,
            )
            .where(ProductVariant.product_id == product_id)
        )
        selections: Dict[int, Dict[str, str]] = {}
        for variant_id, name, value in result.all():
            selections.setdefault(variant_id, {})[name] = value
        return selections

    @staticmethod
    async def load_selected_options(
        db: AsyncSession, variant_ids: Sequence[int]
    ) -> Dict[int, List[SelectedOptionValue]]:
        """
        Selected option values for a set of variants, ordered by option position.
        Optimized: one JOIN query for all variants.
        """
        selected: Dict[int, List[SelectedOptionValue]] = {vid: [] for vid in variant_ids}
        if not variant_ids:
            return selected

        result = await db.execute(
            select(
                VariantOptionValue.variant_id,
                ProductOption.id,
                ProductOption.name,
                ProductOption.display_name,
                ProductOptionValue.id,
                ProductOptionValue.value,
                ProductOptionValue.display_name,
                ProductOptionValue.color_code,
            )
            .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
            .join(
                ProductOptionValue,
                ProductOptionValue.id == VariantOptionValue.option_value_id,
            )
            .where(VariantOptionValue.variant_id.in_(list(variant_ids)))
            .order_by(
                VariantOptionValue.variant_id, ProductOption.position, ProductOption.id
            )
        )
        for (
            variant_id,
            option_id,
            option_name,
            option_display_name,
            value_id,
            value,
            value_display_name,
            color_code,
        ) in result.all():
            selected.setdefault(variant_id, []).append(
                SelectedOptionValue(
                    option_id=option_id,
                    option_name=option_name,
                    option_display_name=display_name_or_default(option_display_name, option_name),
                    value_id=value_id,
                    value=value,
                    value_display_name=display_name_or_default(value_display_name, value),
                    color_code=color_code,
                )
            )
        return selected

    @staticmethod
    async def get_product_variants_with_options(
        db: AsyncSession, product_id: int
    ) -> List[VariantWithOptions]:
        """
        All variants of a product with their selected options.
        Optimized: two queries regardless of the number of variants.
        """
        variants = await VariantRepository.find_variants_by_product(db, product_id)
        selected = await VariantRepository.load_selected_options(
            db, [variant.id for variant in variants]
        )
        return [
            VariantWithOptions(variant=variant, selected_options=selected.get(variant.id, []))
            for variant in variants
        ]

    @staticmethod
    async def get_variant_aggregation(
        db: AsyncSession, product_id: int
    ) -> VariantAggregation:
        aggregations = await VariantRepository.get_variants_aggregations(db, [product_id])
        return aggregations[product_id]

    @staticmethod
    async def get_variants_aggregations(
        db: AsyncSession, product_ids: Sequence[int]
    ) -> Dict[int, VariantAggregation]:
        """
        Variant aggregations for many products.

        Optimized: two queries independent of the number of products, one
        grouped aggregate (with the default variant's images as a correlated
        subquery) and one for the distinct option values in use.

        Returns:
            product_id -> VariantAggregation; products without variants map to
            an empty aggregation (hasVariants=False)
        """
        ids = list(dict.fromkeys(product_ids))
        aggregations: Dict[int, VariantAggregation] = {pid: VariantAggregation() for pid in ids}
        if not ids:
            return aggregations

        default_variant = aliased(ProductVariant)
        default_images = (
            select(default_variant.images)
            .where(
                default_variant.product_id == ProductVariant.product_id,
                default_variant.is_default.is_(True),
            )
            .order_by(default_variant.id)
            .limit(1)
            .correlate(ProductVariant)
            .scalar_subquery()
        )
        purchasable = case((ProductVariant.allow_purchase.is_(True), 1), else_=0)
        available = case(
            (
                and_(
                    ProductVariant.allow_purchase.is_(True),
                    or_(ProductVariant.stock.is_(None), ProductVariant.stock > 0),
                ),
                1,
            ),
            else_=0,
        )
        aggregate_rows = await db.execute(
            select(
                ProductVariant.product_id,
                func.count(ProductVariant.id),
                func.min(ProductVariant.price),
                func.max(ProductVariant.price),
                func.max(purchasable),
                func.max(available),
                func.sum(ProductVariant.stock),
                default_images,
            )
            .where(ProductVariant.product_id.in_(ids))
            .group_by(ProductVariant.product_id)
        )
        for (
            product_id,
            total,
            min_price,
            max_price,
            any_purchasable,
            any_available,
            total_stock,
            images,
        ) in aggregate_rows.all():
            aggregations[product_id] = VariantAggregation(
                has_variants=total > 0,
                total_variants=total,
                min_price=float(min_price) if min_price is not None else None,
                max_price=float(max_price) if max_price is not None else None,
                main_image=images[0] if images else None,
                allow_purchase=bool(any_purchasable),
                in_stock=bool(any_available),
                total_stock=int(total_stock) if total_stock is not None else None,
            )

        option_rows = await db.execute(
            select(
                ProductVariant.product_id,
                ProductOption.name,
                ProductOptionValue.value,
                ProductOption.position,
                ProductOption.id,
                ProductOptionValue.position,
            )
            .join(VariantOptionValue, VariantOptionValue.variant_id == ProductVariant.id)
            .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
            .join(
                ProductOptionValue,
                ProductOptionValue.id == VariantOptionValue.option_value_id,
            )
            .where(ProductVariant.product_id.in_(ids))
            .distinct()
            .order_by(
                ProductVariant.product_id,
                ProductOption.position,
                ProductOption.id,
                ProductOptionValue.position,
                ProductOptionValue.value,
            )
        )
        for product_id, name, value, *_ in option_rows.all():
            aggregation = aggregations[product_id]
            if name not in aggregation.option_values:
                aggregation.option_names.append(name)
                aggregation.option_values[name] = []
            if value not in aggregation.option_values[name]:
                aggregation.option_values[name].append(value)

        return aggregations

    @staticmethod
    async def list_variants_with_filters(
        db: AsyncSession,
        filters: VariantFilters,
        page: int,
        page_size: int,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[VariantWithOptions], int]:
        """
        Filtered, sorted and paginated variant listing.

        Option filters are a conjunction: a variant must carry every requested
        (name, value) pair. Optimized: COUNT + page SELECT + one JOIN for the
        options of the page.
        """
        query = select(ProductVariant).join(Product, Product.id == ProductVariant.product_id)

        if filters.seller_id is not None:
            query = query.where(Product.seller_id == filters.seller_id)
        if filters.ids:
            query = query.where(ProductVariant.id.in_(filters.ids))
        if filters.product_ids:
            query = query.where(ProductVariant.product_id.in_(filters.product_ids))
        if filters.min_price is not None:
            query = query.where(ProductVariant.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.where(ProductVariant.price <= filters.max_price)
        if filters.allow_purchase is not None:
            query = query.where(ProductVariant.allow_purchase.is_(filters.allow_purchase))
        if filters.is_popular is not None:
            query = query.where(ProductVariant.is_popular.is_(filters.is_popular))
        if filters.is_default is not None:
            query = query.where(ProductVariant.is_default.is_(filters.is_default))
        if filters.sku:
            query = query.where(ProductVariant.sku.icontains(filters.sku, autoescape=True))

        for name, value in filters.options.items():
            query = query.where(
                ProductVariant.id.in_(
                    select(VariantOptionValue.variant_id)
                    .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
                    .join(
                        ProductOptionValue,
                        ProductOptionValue.id == VariantOptionValue.option_value_id,
                    )
                    .where(ProductOption.name == name, ProductOptionValue.value == value)
                )
            )

        sort_column = _SORT_COLUMNS[sort_by]
        if sort_order == "asc":
            query = query.order_by(sort_column.asc(), ProductVariant.id.asc())
        else:
            query = query.order_by(sort_column.desc(), ProductVariant.id.desc())

        variants, total = await paginate_query(db, query, page, page_size)
        selected = await VariantRepository.load_selected_options(
            db, [variant.id for variant in variants]
        )
        return (
            [
                VariantWithOptions(variant=variant, selected_options=selected.get(variant.id, []))
                for variant in variants
            ],
            total,
        )
