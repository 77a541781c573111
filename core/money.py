from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import InvalidAmount

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value) -> Decimal:
    """Parse ``value`` into a two-place Decimal, rounding half-up."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount("Amount must be a number", amount=str(value))
    if not amount.is_finite():
        raise InvalidAmount("Amount must be a number", amount=str(value))
    return quantize(amount)
