from datetime import datetime
from decimal import Decimal

from saldo.categories import Category, TransactionKind
from saldo.db.database import get_db
from saldo.db.models import SpendingLimit
from saldo.errors import ValidationError
from saldo.services.transaction_service import find_transactions


def _row_to_limit(row) -> SpendingLimit:
    return SpendingLimit(
        id=row["id"],
        user_id=row["user_id"],
        category=Category(row["category"]) if row["category"] else None,
        amount=Decimal(row["amount"]),
    )


async def set_limit(user_id: str, amount: Decimal, category: Category | None = None) -> SpendingLimit:
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Limit must be positive")
    category_value = category.value if category else None
    db = await get_db()
    await db.execute(
        "DELETE FROM spending_limits WHERE user_id = ? AND category IS ?",
        (user_id, category_value),
    )
    cursor = await db.execute(
        "INSERT INTO spending_limits (user_id, category, amount) VALUES (?, ?, ?)",
        (user_id, category_value, str(amount)),
    )
    await db.commit()
    return SpendingLimit(id=cursor.lastrowid, user_id=user_id, category=category, amount=amount)


async def get_limit(user_id: str, category: Category | None = None) -> SpendingLimit | None:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM spending_limits WHERE user_id = ? AND category IS ?",
        (user_id, category.value if category else None),
    )
    row = await cursor.fetchone()
    return _row_to_limit(row) if row else None


async def get_all_limits(user_id: str) -> list[SpendingLimit]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM spending_limits WHERE user_id = ? ORDER BY category",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return [_row_to_limit(row) for row in rows]


async def remove_limit(user_id: str, category: Category | None = None) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM spending_limits WHERE user_id = ? AND category IS ?",
        (user_id, category.value if category else None),
    )
    await db.commit()
    return cursor.rowcount > 0


async def limits_vs_actual(user_id: str, start: datetime, end: datetime) -> list[dict]:
    limits = await get_all_limits(user_id)
    if not limits:
        return []

    expenses = await find_transactions(user_id, start, end, kind=TransactionKind.EXPENSE)
    result = []
    for lim in limits:
        spent = sum(
            (t.amount for t in expenses if lim.category is None or t.category == lim.category),
            Decimal("0"),
        )
        result.append(
            {
                "category": lim.category,
                "limit": lim.amount,
                "spent": spent,
                "remaining": lim.amount - spent,
                "pct": spent / lim.amount * 100,
            }
        )
    return result
