from __future__ import annotations

from decimal import Decimal

from .fixed_point import quantize


def format_decimal(value: Decimal) -> str:
    # Plain notation keeps every stored digit, including trailing zeros.
    return format(value, "f")


def format_amount(value: Decimal, places: int) -> str:
    return format(quantize(value, places), "f")
