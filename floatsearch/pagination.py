"""
Page arithmetic for list results.

``assemble`` only derives fields from (page, limit, total). Limit clamping is
the caller's job and happens in ``PageRequest.from_params``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from .errors import ValidationError
from .validation import _cap_limit, _parse_int

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page", f"must be >= 1, got {self.page}")
        if self.limit < 1:
            raise ValidationError("limit", f"must be >= 1, got {self.limit}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(
        cls,
        page: Optional[Any],
        limit: Optional[Any],
        *,
        default_limit: int,
        max_limit: int,
    ) -> "PageRequest":
        p = _parse_int("page", page) if page not in (None, "") else 1
        n = _parse_int("limit", limit) if limit not in (None, "") else default_limit
        return cls(page=p, limit=_cap_limit(n, default_limit, max_limit))


@dataclass(frozen=True)
class PageResult(Generic[T]):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    items: Tuple[T, ...] = field(default_factory=tuple)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pagination_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "offset": self.offset,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def assemble(page: int, limit: int, total: int, items: Sequence[T] = ()) -> PageResult[T]:
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    total = max(int(total), 0)
    total_pages = -(-total // limit)
    return PageResult(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
        items=tuple(items),
    )


__all__ = ["PageRequest", "PageResult", "assemble"]
