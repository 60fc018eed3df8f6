from decimal import Decimal

from saldo.db.database import get_db
from saldo.db.models import FixedCost
from saldo.errors import ValidationError

VALID_FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY")

DAYS_PER_MONTH = Decimal("30.44")
WEEKS_PER_MONTH = Decimal("4.33")


def monthly_amount(cost: FixedCost) -> Decimal:
    if cost.frequency == "DAILY":
        return cost.amount * DAYS_PER_MONTH
    if cost.frequency == "WEEKLY":
        return cost.amount * WEEKS_PER_MONTH
    return cost.amount


def _row_to_fixed_cost(row) -> FixedCost:
    return FixedCost(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        amount=Decimal(row["amount"]),
        frequency=row["frequency"],
        active=bool(row["active"]),
    )


async def find_active_fixed_costs(user_id: str) -> list[FixedCost]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM fixed_costs WHERE user_id = ? AND active = 1 ORDER BY name",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return [_row_to_fixed_cost(row) for row in rows]


async def add_fixed_cost(user_id: str, name: str, amount: Decimal, frequency: str = "MONTHLY") -> int:
    frequency = frequency.upper()
    if frequency not in VALID_FREQUENCIES:
        raise ValidationError(f"Invalid frequency {frequency!r}. Use one of: {', '.join(VALID_FREQUENCIES)}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Fixed cost amount must be non-negative")
    db = await get_db()
    cursor = await db.execute(
        "INSERT INTO fixed_costs (user_id, name, amount, frequency) VALUES (?, ?, ?, ?)",
        (user_id, name, str(amount), frequency),
    )
    await db.commit()
    return cursor.lastrowid


async def deactivate_fixed_cost(user_id: str, name: str) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "UPDATE fixed_costs SET active = 0 WHERE user_id = ? AND LOWER(name) = LOWER(?) AND active = 1",
        (user_id, name),
    )
    await db.commit()
    return cursor.rowcount > 0
