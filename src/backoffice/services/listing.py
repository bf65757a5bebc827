"""Shared helpers for filtered, sorted, paginated list endpoints."""

from typing import Any, Iterable, Optional

from pydantic.alias_generators import to_snake
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_filter(term: Optional[str], columns: Iterable[Any]):
    """Case-insensitive substring match across columns, or None for no term."""
    if not term or not term.strip():
        return None
    pattern = f"%{escape_like(term.strip())}%"
    return or_(*(col.ilike(pattern, escape="\\") for col in columns))


def apply_sort(query: Select, model: Any, sort_by: str, sort_order: str, allowed: Iterable[str]) -> Select:
    """Order by an allow-listed column; unknown names fall back to created_at.

    Accepts the wire spelling ("createdAt") as well as the column name.
    """
    name = to_snake(sort_by)
    column = getattr(model, name) if name in set(allowed) else model.created_at
    return query.order_by(column.asc() if sort_order == "asc" else column.desc())


async def paginate(db: AsyncSession, query: Select, page: int, limit: int) -> tuple[list[Any], int]:
    """Run a query for one page. Returns (rows, total matching rows)."""
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total or 0


def drop_null_fields(changes: dict, non_nullable: Iterable[str]) -> dict:
    """Ignore explicit nulls for columns that cannot hold them."""
    return {k: v for k, v in changes.items() if not (v is None and k in set(non_nullable))}
