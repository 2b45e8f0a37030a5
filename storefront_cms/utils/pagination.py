"""
Pagination parsing shared by admin and public listings.

Accepts either limit/offset or page/pageSize. Values that are not integers
fall back to the defaults instead of failing the request.
"""
from dataclasses import dataclass
from typing import Optional

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int
    page: Optional[int] = None
    page_size: Optional[int] = None

    def envelope(self) -> dict:
        """Paging fields echoed back in list responses."""
        data = {"limit": self.limit, "offset": self.offset}
        if self.page is not None:
            data["page"] = self.page
            data["pageSize"] = self.page_size
        return data


def _to_int(raw, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value


def clamp_limit(raw, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    value = _to_int(raw, default) if raw is not None else default
    if value == 0:
        value = default
    return max(1, min(maximum, value))


def parse_pagination(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
) -> Pagination:
    """
    Resolve paging query parameters.

    page/pageSize wins when either is supplied; otherwise limit/offset is used.
    limit and pageSize clamp into [1, 100] with a default of 20, offset is
    never negative and page starts at 1.
    """
    if page is not None or page_size is not None:
        page_number = max(1, _to_int(page, 1) if page is not None else 1)
        size = clamp_limit(page_size)
        return Pagination(limit=size, offset=(page_number - 1) * size, page=page_number, page_size=size)

    resolved_offset = max(0, _to_int(offset, 0)) if offset is not None else 0
    return Pagination(limit=clamp_limit(limit), offset=resolved_offset)
