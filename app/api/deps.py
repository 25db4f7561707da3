"""API Dependencies"""

from dataclasses import dataclass

from fastapi import Query

from app.database import get_db

__all__ = ["get_db", "Pagination", "pagination"]


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def pagination(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
) -> Pagination:
    """Common ``page``/``limit`` query parameters for list endpoints"""
    return Pagination(page=page, limit=limit)
