import logging
from datetime import datetime
from decimal import Decimal

from saldo.db.database import from_db_timestamp, get_db, to_db_timestamp
from saldo.db.models import Subscription
from saldo.errors import ValidationError

logger = logging.getLogger(__name__)


def _row_to_subscription(row) -> Subscription:
    return Subscription(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        amount=Decimal(row["amount"]),
        recurring=bool(row["recurring"]),
        next_due_at=from_db_timestamp(row["next_due_at"]),
        active=bool(row["active"]),
    )


async def find_active_subscriptions(user_id: str) -> list[Subscription]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM subscriptions WHERE user_id = ? AND active = 1 ORDER BY name",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return [_row_to_subscription(row) for row in rows]


async def find_due_subscriptions(user_id: str, until: datetime) -> list[Subscription]:
    """Active subscriptions whose next due date is on or before ``until`` (overdue included)."""
    db = await get_db()
    cursor = await db.execute(
        """SELECT * FROM subscriptions
        WHERE user_id = ? AND active = 1 AND next_due_at IS NOT NULL AND next_due_at <= ?
        ORDER BY next_due_at""",
        (user_id, to_db_timestamp(until)),
    )
    rows = await cursor.fetchall()
    return [_row_to_subscription(row) for row in rows]


async def add_subscription(
    user_id: str,
    name: str,
    amount: Decimal,
    next_due_at: datetime | None = None,
    recurring: bool = True,
) -> int:
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Subscription amount must be a non-negative number")
    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO subscriptions (user_id, name, amount, recurring, next_due_at)
        VALUES (?, ?, ?, ?, ?)""",
        (
            user_id,
            name,
            str(amount),
            recurring,
            to_db_timestamp(next_due_at) if next_due_at else None,
        ),
    )
    await db.commit()
    logger.debug("Added subscription %s", name, extra={"user_id": user_id})
    return cursor.lastrowid


async def remove_subscription(user_id: str, name: str) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "UPDATE subscriptions SET active = 0 WHERE user_id = ? AND LOWER(name) = LOWER(?) AND active = 1",
        (user_id, name),
    )
    await db.commit()
    return cursor.rowcount > 0
