from typing import Optional
import re


def normalize_unit_label(unit: Optional[str]) -> str:
    return (unit or "").strip().upper()


def validate_product_number(product_number: Optional[str]) -> bool:
    if not product_number:
        return False

    return bool(re.match(r"^[\w\-./]+$", product_number.strip()))


def sanitize_search_query(query: Optional[str]) -> str:
    if not query:
        return ""
    return re.sub(r"[^\w\s\-]", "", query).strip()
