from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, Overflow

SCALE = 18
# uint256 max is below 1.2e77; anything larger cannot be a real on-chain amount.
MAX_ADJUSTED_EXPONENT = 77

# Wide enough for any uint256 amount at 18 fractional digits, so scaling never rounds.
_EXACT = Context(prec=100, rounding=ROUND_HALF_UP, traps=[InvalidOperation, Overflow])


def decimal_to_int(d: Decimal, precision: int = SCALE) -> int:
    if not d.is_finite():
        msg = f"Cannot convert non-finite amount {d!r} to fixed point"
        raise ValueError(msg)
    try:
        scaled = _EXACT.scaleb(d, precision)
        return int(scaled.to_integral_value(rounding=ROUND_HALF_UP, context=_EXACT))
    except Overflow as exc:
        msg = f"Amount {d!r} is too large for fixed point"
        raise ValueError(msg) from exc


def int_to_decimal(value: int, precision: int = SCALE) -> Decimal:
    return _EXACT.scaleb(Decimal(value), -precision)


def quantize(d: Decimal, places: int) -> Decimal:
    return d.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP, context=_EXACT)


def parse_decimal(raw: object, *, blank_as_zero: bool = False) -> Decimal:
    """Parse a ledger amount exactly. Floats are rejected."""
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int) and not isinstance(raw, bool):
        value = Decimal(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            if not text and not blank_as_zero:
                raise ValueError("Amount is blank")
            value = Decimal(text) if text else Decimal(0)
        except InvalidOperation as exc:
            msg = f"Not a decimal amount: {raw!r}"
            raise ValueError(msg) from exc
    elif raw is None and blank_as_zero:
        value = Decimal(0)
    else:
        msg = f"Unsupported amount type {type(raw).__name__}"
        raise ValueError(msg)

    if not value.is_finite():
        msg = f"Amount must be finite: {raw!r}"
        raise ValueError(msg)
    if value and value.adjusted() > MAX_ADJUSTED_EXPONENT:
        msg = f"Amount out of range: {raw!r}"
        raise ValueError(msg)
    return value


__all__ = ["MAX_ADJUSTED_EXPONENT", "SCALE", "decimal_to_int", "int_to_decimal", "parse_decimal", "quantize"]
