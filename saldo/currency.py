from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from saldo.config import settings
from saldo.db.database import get_db
from saldo.errors import ValidationError

CURRENCY_SYMBOLS: dict[str, str] = {
    "BRL": "R$",
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "JPY": "¥",
    "CHF": "CHF",
    "CAD": "C$",
    "AUD": "A$",
    "MXN": "MX$",
    "ARS": "AR$",
    "CLP": "CLP$",
    "INR": "₹",
}

_PREFIX_SYMBOLS = {"R$", "€", "$", "£", "¥", "₹", "C$", "A$", "MX$", "AR$", "CLP$"}

CENT = Decimal("0.01")


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(code, code)


def to_decimal(value) -> Decimal:
    """Convert user or database input into a Decimal without going through float."""
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, str):
            result = Decimal(value.strip().replace(",", "."))
        else:
            result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}") from None
    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return result


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal | float, currency_code: str) -> str:
    sym = currency_symbol(currency_code)
    value = quantize(to_decimal(amount))
    if sym in _PREFIX_SYMBOLS:
        return f"{sym} {value:,.2f}" if sym == "R$" else f"{sym}{value:,.2f}"
    return f"{value:,.2f} {sym}"


async def get_base_currency(user_id: str) -> str:
    db = await get_db()
    cursor = await db.execute(
        "SELECT base_currency FROM user_settings WHERE user_id = ?",
        (user_id,),
    )
    row = await cursor.fetchone()
    if row:
        return row["base_currency"]
    return settings.base_currency


async def set_base_currency(user_id: str, currency: str) -> None:
    db = await get_db()
    await db.execute(
        "INSERT OR REPLACE INTO user_settings (user_id, base_currency) VALUES (?, ?)",
        (user_id, currency.upper()),
    )
    await db.commit()
