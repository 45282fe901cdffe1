import math
from dataclasses import dataclass
from typing import Dict, Generic, List, Tuple, TypeVar

from ..exceptions import InvalidRequest

T = TypeVar("T")


def page_bounds(page: int, limit: int) -> Tuple[int, int]:
    """(offset, limit) for a 1-based page."""
    if page < 1 or limit < 1:
        raise InvalidRequest("page and limit must be positive")
    return (page - 1) * limit, limit


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "totalPages": self.total_pages}
