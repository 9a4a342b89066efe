# Overview: Offset pagination shared by list endpoints.

from __future__ import annotations

import math

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def normalize(page: int | None, limit: int | None) -> tuple[int, int]:
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)


def paginate(query, page: int | None = None, limit: int | None = None) -> tuple[list, dict]:
    """Returns (items, meta) where meta = {page, limit, total, pages}."""
    page, limit = normalize(page, limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
    return items, meta
