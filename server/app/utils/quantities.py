from decimal import Decimal, InvalidOperation

from app.inventory.errors import ValidationError

QUANTITY_DIGITS = 18
QUANTITY_PLACES = 4
COST_DIGITS = 14
COST_PLACES = 4

ZERO = Decimal("0")
_QUANTUM = Decimal(1).scaleb(-QUANTITY_PLACES)


def to_decimal(value: Decimal | int | str, *, field: str, digits: int, places: int) -> Decimal:
    """Convert a boundary value to an exact Decimal.

    Floats are refused outright: a float has already lost the digits the caller
    meant to send. Values that do not fit the column (more than `digits` digits in
    total or more than `places` after the point) are refused rather than rounded.
    """
    if value is None or isinstance(value, (bool, float)):
        raise ValidationError(f"{field} must be a decimal string, integer or Decimal.")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} is not a valid decimal: {value!r}.")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number.")
    if result.normalize().as_tuple().exponent < -places:
        raise ValidationError(f"{field} supports at most {places} decimal places.")
    if abs(result) >= Decimal(10) ** (digits - places):
        raise ValidationError(f"{field} exceeds {digits - places} digits before the decimal point.")
    return result


def to_quantity(value: Decimal | int | str, *, field: str = "quantity") -> Decimal:
    return to_decimal(value, field=field, digits=QUANTITY_DIGITS, places=QUANTITY_PLACES)


def to_cost(value: Decimal | int | str, *, field: str = "unit_cost") -> Decimal:
    return to_decimal(value, field=field, digits=COST_DIGITS, places=COST_PLACES)


def as_quantity(value) -> Decimal:
    """Pin an aggregate read back from the database to the quantity scale.

    Empty aggregates come back as None and count as zero.
    """
    if value is None:
        return ZERO.quantize(_QUANTUM)
    return Decimal(str(value)).quantize(_QUANTUM)
