"""
Page requests and pages over SQLAlchemy queries.

A `PageRequest` is a zero-based page index, a page size and optional sort orders;
`paginate()` applies it to a query and returns a `Page` carrying the window plus
the totals needed by list resources.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Query

T = TypeVar("T")

ASC = "asc"
DESC = "desc"

# Databases store OFFSET as a signed 64-bit integer.
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class SortOrder:
    prop: str
    direction: str = ASC


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20
    sort: tuple[SortOrder, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("page index must not be negative")
        if self.size < 1:
            raise ValueError("page size must be at least 1")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True)
class Page(Generic[T]):
    content: list[T]
    page_request: PageRequest
    total_elements: int

    @property
    def number(self) -> int:
        return self.page_request.page

    @property
    def size(self) -> int:
        return self.page_request.size

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size) if self.total_elements else 0

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    @property
    def is_first(self) -> bool:
        return self.number == 0

    @property
    def is_last(self) -> bool:
        return self.number + 1 >= self.total_pages


def paginate(query: Query, page_request: PageRequest, *, sortable: Mapping[str, Any], tiebreaker: Any) -> Page:
    """
    Apply ordering and the page window to `query`.
    `sortable` maps public property names to columns; `tiebreaker` keeps the order stable.
    """
    total = query.order_by(None).count()
    order_by = []
    for order in page_request.sort:
        col = sortable[order.prop]
        order_by.append(col.desc() if order.direction == DESC else col.asc())
    order_by.append(tiebreaker.asc())
    if page_request.offset >= total:
        return Page(content=[], page_request=page_request, total_elements=total)
    content = query.order_by(*order_by).offset(page_request.offset).limit(page_request.size).all()
    return Page(content=content, page_request=page_request, total_elements=total)


def _parse_int(raw: str | None) -> int | None:
    try:
        return int((raw or "").strip())
    except ValueError:
        return None


def parse_sort(values: list[str], sortable: Mapping[str, Any]) -> tuple[SortOrder, ...]:
    """
    Parse repeated `sort=prop[,asc|desc]` values.
    Raises ValueError naming the offending value when the property or direction is unknown.
    """
    orders: list[SortOrder] = []
    for raw in values:
        parts = [p.strip() for p in (raw or "").split(",") if p.strip()]
        if not parts:
            continue
        prop = parts[0]
        direction = parts[1].lower() if len(parts) > 1 else ASC
        if prop not in sortable:
            raise ValueError(f"Unknown sort property '{prop}'. Sortable: {', '.join(sorted(sortable))}")
        if direction not in (ASC, DESC) or len(parts) > 2:
            raise ValueError(f"Invalid sort '{raw}'. Use <property>[,asc|desc].")
        orders.append(SortOrder(prop=prop, direction=direction))
    return tuple(orders)


def page_request_from_args(
    args,
    *,
    default_size: int,
    max_size: int,
    sortable: Mapping[str, Any] | None = None,
) -> PageRequest:
    """
    Build a PageRequest from query args (`page`, `size`, `sort`).
    Invalid or negative page falls back to 0; invalid size falls back to `default_size`;
    size is capped at `max_size`. A page past the largest representable offset is clamped
    to it, which always yields an empty window.
    """
    page = _parse_int(args.get("page"))
    if page is None or page < 0:
        page = 0
    size = _parse_int(args.get("size"))
    if size is None or size < 1:
        size = default_size
    size = min(size, max_size)
    page = min(page, MAX_OFFSET // size)
    sort = parse_sort(args.getlist("sort"), sortable or {})
    return PageRequest(page=page, size=size, sort=sort)
