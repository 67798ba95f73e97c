"""
Page/limit/keyword listing parameters shared by the admin list endpoints.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 10
    keyword: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def pattern(self) -> Optional[str]:
        """SQL LIKE pattern for the keyword, or None when no keyword was given."""
        if not self.keyword or not self.keyword.strip():
            return None
        return f"%{self.keyword.strip()}%"


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    keyword: Optional[str] = Query(None, max_length=100),
) -> PageParams:
    return PageParams(page=page, limit=limit, keyword=keyword)


async def paginate(db: AsyncSession, stmt: Select, params: PageParams) -> tuple[Sequence[Any], int]:
    """Run ``stmt`` for one page; returns ``(rows, total)``."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(stmt.offset(params.offset).limit(params.limit))
    return result.scalars().all(), total
