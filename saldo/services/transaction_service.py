from datetime import datetime
from decimal import Decimal

from saldo.categories import Category, TransactionKind
from saldo.db.database import from_db_timestamp, get_db, to_db_timestamp
from saldo.db.models import Transaction
from saldo.errors import NotFoundError, ValidationError


def _row_to_transaction(row) -> Transaction:
    return Transaction(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        amount=Decimal(row["amount"]),
        kind=TransactionKind(row["kind"]),
        category=Category(row["category"]),
        occurred_at=from_db_timestamp(row["occurred_at"]),
        note=row["note"],
    )


async def save_transaction(transaction: Transaction) -> int:
    if not transaction.amount.is_finite() or transaction.amount < 0:
        raise ValidationError("Transaction amount must be non-negative; the kind carries the sign")
    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO transactions
        (user_id, name, amount, kind, category, occurred_at, note)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            transaction.user_id,
            transaction.name,
            str(transaction.amount),
            transaction.kind.value,
            transaction.category.value,
            to_db_timestamp(transaction.occurred_at),
            transaction.note,
        ),
    )
    await db.commit()
    assert cursor.lastrowid is not None
    return cursor.lastrowid


async def find_transactions(
    user_id: str,
    start: datetime,
    end: datetime,
    kind: TransactionKind | None = None,
) -> list[Transaction]:
    db = await get_db()
    query = "SELECT * FROM transactions WHERE user_id = ? AND occurred_at >= ? AND occurred_at <= ?"
    params: list[str] = [user_id, to_db_timestamp(start), to_db_timestamp(end)]
    if kind is not None:
        query += " AND kind = ?"
        params.append(kind.value)
    query += " ORDER BY occurred_at DESC, id DESC"
    cursor = await db.execute(query, params)
    rows = await cursor.fetchall()
    return [_row_to_transaction(row) for row in rows]


async def top_expenses(
    user_id: str,
    start: datetime,
    end: datetime,
    category: Category | None = None,
    limit: int = 5,
) -> list[Transaction]:
    expenses = await find_transactions(user_id, start, end, kind=TransactionKind.EXPENSE)
    if category is not None:
        expenses = [t for t in expenses if t.category == category]
    expenses.sort(key=lambda t: t.amount, reverse=True)
    return expenses[:limit]


async def get_transaction(user_id: str, transaction_id: int) -> Transaction:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM transactions WHERE id = ? AND user_id = ?",
        (transaction_id, user_id),
    )
    row = await cursor.fetchone()
    if not row:
        raise NotFoundError(f"Transaction #{transaction_id} not found")
    return _row_to_transaction(row)


async def get_last_transaction(user_id: str) -> Transaction | None:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM transactions WHERE user_id = ? ORDER BY id DESC LIMIT 1",
        (user_id,),
    )
    row = await cursor.fetchone()
    return _row_to_transaction(row) if row else None


async def delete_transaction(user_id: str, transaction_id: int) -> None:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM transactions WHERE id = ? AND user_id = ?",
        (transaction_id, user_id),
    )
    await db.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(f"Transaction #{transaction_id} not found")


async def delete_last_transaction(user_id: str) -> Transaction | None:
    last = await get_last_transaction(user_id)
    if last is None:
        return None
    await delete_transaction(user_id, last.id)
    return last


async def recent_transactions(user_id: str, limit: int = 10) -> list[Transaction]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM transactions WHERE user_id = ? ORDER BY occurred_at DESC, id DESC LIMIT ?",
        (user_id, limit),
    )
    rows = await cursor.fetchall()
    return [_row_to_transaction(row) for row in rows]
