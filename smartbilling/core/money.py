from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    # Floats go through str() so 19.995 stays 19.995 instead of its binary expansion.
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def round_currency(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def currency_float(value) -> float:
    return float(round_currency(value))


__all__ = ["CENT", "ZERO", "currency_float", "round_currency", "to_decimal"]
