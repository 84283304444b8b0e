"""
Pagination Utility Module

Standard page/page_size handling for list endpoints.
"""
from typing import List, Optional, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

MAX_PAGE_SIZE = 100


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    page_size: int = 20,
    count_query: Optional[Select] = None
) -> dict:
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        db: Database session
        query: Base query, already filtered by restaurant
        page: Page number (1-indexed)
        page_size: Items per page, capped at MAX_PAGE_SIZE
        count_query: Optional custom count query

    Returns:
        Dictionary with items, total, page, page_size, total_pages, has_next, has_previous
    """
    page = max(1, page)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    offset = (page - 1) * page_size

    if count_query is not None:
        count_result = await db.execute(count_query)
    else:
        count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
        count_result = await db.execute(count_stmt)

    total = count_result.scalar() or 0

    result = await db.execute(query.offset(offset).limit(page_size))
    items = result.scalars().all()

    return create_paginated_response(list(items), total, page, page_size)


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    page_size: int
) -> dict:
    """Build the paginated response dictionary for items already sliced"""
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1
    }
