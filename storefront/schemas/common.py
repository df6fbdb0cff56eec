# storefront/schemas/common.py
import math

from sqlmodel import SQLModel


class Pagination(SQLModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if limit else 0,
        )


def page_bounds(page: int, limit: int) -> tuple[int, int]:
    """(skip, limit) for a 1-based page number."""
    page = max(page, 1)
    limit = max(limit, 1)
    return (page - 1) * limit, limit
