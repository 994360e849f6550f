"""
Pagination utilities for reusable pagination across all services.

Provides helper functions to paginate SQLAlchemy queries and format responses.
Works with the immutable query builder pattern used throughout the application.
"""

from typing import Tuple, List, Any, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.selectable import Select

from ecommerce.core.config import config
from ecommerce.core.exceptions import ValidationError


def normalize_page_params(
    page: Optional[int], page_size: Optional[int]
) -> Tuple[int, int]:
    """
    Apply defaults and bounds to page parameters.

    Missing values fall back to page 1 and the configured default page size.
    Page sizes above the configured maximum are clamped to it.

    Raises:
        ValidationError: If page or page_size is below 1
    """
    page = 1 if page is None else page
    page_size = config.default_page_size if page_size is None else page_size

    if page < 1:
        raise ValidationError("page must be greater than or equal to 1")
    if page_size < 1:
        raise ValidationError("pageSize must be greater than or equal to 1")

    return page, min(page_size, config.max_page_size)


async def paginate_query(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Any], int]:
    """
    Apply offset-based pagination to a SQLAlchemy query.

    IMPORTANT: Query should already have:
    - WHERE clauses
    - ORDER BY clause (with a unique tie-breaker for stable pages)

    This function:
    1. Counts total matching records (before pagination)
    2. Applies OFFSET and LIMIT
    3. Executes and returns (items, total_count)

    Args:
        db: Async SQLAlchemy session
        query: Base query with filters and ordering already applied
        page: Page number (1-indexed, default 1)
        page_size: Items per page

    Returns:
        Tuple of (paginated_items, total_count)
    """
    # Count total records BEFORE pagination
    # Using subquery to preserve all WHERE clauses and joins
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(query.offset(offset).limit(page_size))
    items = result.scalars().all()

    return list(items), total


def build_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    page_size: int,
) -> dict:
    """
    Build a standardized paginated response dictionary.

    Args:
        items: List of items for current page
        total: Total count of all items matching filters
        page: Current page number (1-indexed)
        page_size: Items per page

    Returns:
        Dict with keys: items, total, page, pageSize, totalPages, hasMore
    """
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    has_more = page < total_pages

    return {
        "items": items,
        "total": total,
        "page": page,
        "pageSize": page_size,
        "totalPages": total_pages,
        "hasMore": has_more,
    }
