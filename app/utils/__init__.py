from app.utils.money import (
    round_money,
    sum_with_fixed,
    subtract_with_fixed,
    difference,
    line_total,
)
from app.utils.validators import (
    normalize_unit_label,
    validate_product_number,
    sanitize_search_query,
)
from app.utils.exceptions import (
    DomainError,
    NotFoundError,
    ValidationError,
    ForbiddenError,
    ConflictError,
    SaleUnitNotInLineItemError,
)
from app.utils.pagination import PageParams, paginate

__all__ = [

    "round_money",
    "sum_with_fixed",
    "subtract_with_fixed",
    "difference",
    "line_total",

    "normalize_unit_label",
    "validate_product_number",
    "sanitize_search_query",

    "DomainError",
    "NotFoundError",
    "ValidationError",
    "ForbiddenError",
    "ConflictError",
    "SaleUnitNotInLineItemError",

    "PageParams",
    "paginate",
]
