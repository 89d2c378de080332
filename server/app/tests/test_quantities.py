from decimal import Decimal

import pytest

from app.inventory.errors import ValidationError
from app.utils import as_quantity, to_cost, to_quantity


def test_to_quantity_keeps_exact_decimal_values():
    assert to_quantity("12.3456") == Decimal("12.3456")
    assert to_quantity(12) == Decimal("12")
    assert to_quantity(Decimal("0.0001")) == Decimal("0.0001")
    assert to_quantity(" 7.50 ") == Decimal("7.50")


def test_to_quantity_accepts_trailing_zeros_beyond_scale():
    assert to_quantity("1.500000") == Decimal("1.5")


@pytest.mark.parametrize("value", [1.5, True, None, "abc", "NaN", "Infinity", "1.00001"])
def test_to_quantity_rejects_lossy_or_invalid_input(value):
    with pytest.raises(ValidationError):
        to_quantity(value)


def test_to_cost_names_the_field_in_errors():
    with pytest.raises(ValidationError, match="unit_cost"):
        to_cost("0.123456")


def test_as_quantity_strips_float_noise_from_aggregates():
    assert as_quantity(0.1 + 0.2) == Decimal("0.3000")
    assert as_quantity(None) == Decimal("0.0000")
    assert as_quantity(Decimal("40")) == Decimal("40.0000")


def test_to_quantity_enforces_column_precision():
    assert to_quantity("99999999999999.9999") == Decimal("99999999999999.9999")
    with pytest.raises(ValidationError):
        to_quantity("100000000000000")
    with pytest.raises(ValidationError):
        to_quantity("123456789012345678901234")


def test_to_cost_enforces_column_precision():
    assert to_cost("9999999999.9999") == Decimal("9999999999.9999")
    with pytest.raises(ValidationError):
        to_cost("10000000000")
