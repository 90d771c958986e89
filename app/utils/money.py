from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[int, float, Decimal, str, None]

_CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> float:
    return float(to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def sum_with_fixed(total: Number, amount: Number) -> float:
    return round_money(to_decimal(total) + to_decimal(amount))


def subtract_with_fixed(total: Number, amount: Number) -> float:
    """Subtraction for running aggregates, floored at zero"""
    result = to_decimal(total) - to_decimal(amount)
    if result < 0:
        return 0.0
    return round_money(result)


def difference(minuend: Number, subtrahend: Number) -> float:
    """Signed difference, used for savings which may legitimately be negative"""
    return round_money(to_decimal(minuend) - to_decimal(subtrahend))


def line_total(lines: Iterable[tuple]) -> float:
    """Sum of quantity * unit price pairs; a missing price counts as zero"""
    total = Decimal("0")
    for quantity, price in lines:
        if price is None:
            continue
        total += to_decimal(quantity) * to_decimal(price)
    return round_money(total)


def parse_amount(value: Optional[str]) -> Optional[float]:
    """Best-effort parse of amounts such as "$2.50" returned by the classifier"""
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return round_money(value)
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
    if not cleaned or cleaned in {".", "-", "-."}:
        return None
    try:
        return round_money(cleaned)
    except ArithmeticError:
        return None
