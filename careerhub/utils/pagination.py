"""Page/limit query parsing shared by list endpoints."""
import math
from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from careerhub.core.config import settings


@dataclass
class Paging:
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        return {
            "total": total,
            "page": self.page,
            "limit": self.limit,
            "skip": self.skip,
            "totalPages": math.ceil(total / self.limit) if self.limit else 0,
        }


def get_paging(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
) -> Paging:
    """
    Parse pagination parameters leniently.

    Invalid or non-positive values fall back to the defaults; limit is capped
    at MAX_PAGE_SIZE.
    """
    _limit = _positive_int(limit) or settings.DEFAULT_PAGE_SIZE
    _limit = min(_limit, settings.MAX_PAGE_SIZE)
    _page = _positive_int(page) or 1
    return Paging(page=_page, limit=_limit)


def _positive_int(value: Optional[str]) -> Optional[int]:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
