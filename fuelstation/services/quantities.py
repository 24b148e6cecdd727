"""Fixed-point helpers for meter and tank quantities."""

from decimal import Decimal, InvalidOperation

# Meter totalisers and tank volumes are kept to four fractional digits
QUANTUM = Decimal("0.0001")

# Largest value a Numeric(14, 4) column holds
MAX_QUANTITY = Decimal("9999999999.9999")


def quantize(value: Decimal) -> Decimal:
    """Round a quantity to the storage scale."""
    return value.quantize(QUANTUM)


def parse_quantity(value: Decimal | str | int) -> Decimal:
    """Parse a non-negative quantity with at most four fractional digits.

    Raises ``ValueError`` describing the problem. Floats are refused because
    their binary representation cannot be trusted at this scale.
    """
    if isinstance(value, (float, bool)):
        raise ValueError(f"expected a decimal string, got {type(value).__name__}")
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"{value!r} is not a number") from exc
    if not parsed.is_finite():
        raise ValueError(f"{value!r} is not a finite number")
    if parsed < 0:
        raise ValueError(f"{value!r} is negative")
    if parsed > MAX_QUANTITY:
        raise ValueError(f"{value!r} exceeds {MAX_QUANTITY}")
    if parsed != parsed.quantize(QUANTUM):
        raise ValueError(f"{value!r} has more than 4 decimal places")
    return quantize(parsed)
