from decimal import Decimal

import pytest

from saldo.currency import format_amount, get_base_currency, set_base_currency, to_decimal
from saldo.errors import ValidationError


def test_to_decimal():
    assert to_decimal("12,50") == Decimal("12.50")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(0.1) == Decimal("0.1")


@pytest.mark.parametrize("value", ["abc", "Infinity", "-inf", "NaN", "sNaN", Decimal("Infinity"), float("nan")])
def test_to_decimal_invalid(value):
    with pytest.raises(ValidationError):
        to_decimal(value)


def test_format_amount():
    assert format_amount(Decimal("1234.5"), "BRL") == "R$ 1,234.50"
    assert format_amount(Decimal("10"), "USD") == "$10.00"
    assert format_amount(Decimal("10"), "XYZ") == "10.00 XYZ"
    assert format_amount(Decimal("0.005"), "EUR") == "€0.01"


async def test_base_currency_default_and_override():
    assert await get_base_currency("u1") == "BRL"
    await set_base_currency("u1", "usd")
    assert await get_base_currency("u1") == "USD"
    assert await get_base_currency("u2") == "BRL"
