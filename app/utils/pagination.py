from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
import math

from sqlalchemy.orm import Query

from app.utils.exceptions import ValidationError


@dataclass
class PageParams:
    sort_by: Optional[str] = None
    limit: int = 10
    page: int = 1


def _order_clauses(model, sort_by: Optional[str], allowed: Sequence[str]):
    if not sort_by:
        return [model.created_at.desc(), model.id.desc()]

    clauses = []
    for part in sort_by.split(","):
        part = part.strip()
        if not part:
            continue
        field, _, direction = part.partition(":")
        field = field.strip()
        direction = (direction or "asc").strip().lower()

        if field not in allowed:
            raise ValidationError(f"Cannot sort by '{field}'")
        if direction not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort direction '{direction}'")

        column = getattr(model, field)
        clauses.append(column.desc() if direction == "desc" else column.asc())

    clauses.append(model.id.asc())
    return clauses


def paginate(
    query: Query,
    model,
    params: PageParams,
    allowed_sort_fields: Sequence[str] = ("created_at", "name"),
) -> Dict[str, Any]:
    """
    Runs ``query`` one page at a time.

    Returns ``{results, page, limit, total_pages, total_results}``.
    """
    total_results = query.order_by(None).count()
    limit = max(params.limit, 1)
    page = max(params.page, 1)

    results = (
        query.order_by(*_order_clauses(model, params.sort_by, allowed_sort_fields))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "results": results,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total_results / limit) if total_results else 0,
        "total_results": total_results,
    }
