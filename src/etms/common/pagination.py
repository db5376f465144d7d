"""Page requests and paginated results shared by every list endpoint."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, Sequence, TypeVar

from ..core.constants import DEFAULT_MAX_PAGE_SIZE
from ..core.exceptions import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_args(
        cls,
        args: Mapping[str, Any],
        *,
        default_limit: int,
        max_limit: int = DEFAULT_MAX_PAGE_SIZE,
    ) -> "PageRequest":
        page = _as_int(args.get("page"), "page", default=1)
        limit = _as_int(args.get("limit"), "limit", default=default_limit)
        return cls(page=max(page, 1), limit=min(max(limit, 1), max_limit))


def _as_int(raw: Any, name: str, *, default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of records plus the grouped summary computed over the full match."""

    records: Sequence[T]
    page: int
    limit: int
    total: int
    summary: list[dict] = field(default_factory=list)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}
