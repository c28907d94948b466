from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List

from django.db import models


@dataclass
class Page:
    data: List[Any] = field(default_factory=list)
    page: int = 1
    limit: int = 10
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def pagination(self) -> dict[str, int]:
        return {
            'page': self.page,
            'limit': self.limit,
            'total': self.total,
            'total_pages': self.total_pages,
        }


def paginate(queryset: models.QuerySet, page: int, limit: int) -> Page:
    """Slice ``queryset`` into 1-indexed pages; a page past the end is empty, not an error."""
    if page < 1 or limit < 1:
        raise ValueError('page and limit must be positive')
    total = queryset.count()
    result = Page(page=page, limit=limit, total=total)
    if page > result.total_pages:
        return result
    offset = (page - 1) * limit
    result.data = list(queryset[offset:offset + limit])
    return result
