import math
from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from errors import BadRequest
from models import MAX_INTEGER

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class Page:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        # pages past the end still have to fit an INTEGER bind
        return min((self.page - 1) * self.page_size, MAX_INTEGER)

    def envelope(self, total_count: int) -> dict:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total_count": total_count,
            "total_pages": total_pages(total_count, self.page_size),
        }


def total_pages(total_count: int, page_size: int) -> int:
    return int(math.ceil(total_count / page_size))


def parse_positive_int(raw: str) -> Optional[int]:
    """Parse a decimal string into a positive 64-bit integer, or None.

    Only ASCII digits with an optional leading "+" are accepted, so "1_0",
    "1.5", " 3" and full-width digits are rejected.
    """
    digits = raw[1:] if raw.startswith("+") else raw
    if not digits or not digits.isascii() or not digits.isdigit():
        return None
    value = int(digits)
    if value <= 0 or value > MAX_INTEGER:
        return None
    return value


def _positive_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None:
        return default
    value = parse_positive_int(raw)
    if value is None:
        raise BadRequest(f"Invalid {name} number")
    return value


def pagination(
    page: Optional[str] = Query(default=None, description="1-based page number"),
    page_size: Optional[str] = Query(default=None, alias="pageSize", description="Items per page"),
) -> Page:
    return Page(
        page=_positive_int(page, DEFAULT_PAGE, "page"),
        page_size=_positive_int(page_size, DEFAULT_PAGE_SIZE, "pageSize"),
    )
