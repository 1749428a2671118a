from __future__ import annotations

import math
from typing import Any

from legal_case_management.domain.errors import ValidationFailed


def page_window(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """Validate page/limit and return (offset, limit)."""
    if page < 1:
        raise ValidationFailed("page must be greater than or equal to 1")
    if limit < 1 or limit > max_limit:
        raise ValidationFailed(f"limit must be between 1 and {max_limit}")
    return (page - 1) * limit, limit


def page_meta(total: int, page: int, limit: int, with_navigation: bool = False) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    meta: dict[str, Any] = {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
    }
    if with_navigation:
        meta["has_next"] = page < total_pages
        meta["has_prev"] = page > 1
    return meta
