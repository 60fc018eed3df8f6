from datetime import UTC, datetime

import aiosqlite

from saldo.config import settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) >= 0),
    kind TEXT NOT NULL CHECK(kind IN ('EXPENSE', 'DEPOSIT', 'INVESTMENT')),
    category TEXT NOT NULL,
    occurred_at TIMESTAMP NOT NULL,
    note TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) >= 0),
    recurring BOOLEAN NOT NULL DEFAULT 1,
    next_due_at TIMESTAMP,
    active BOOLEAN NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS fixed_costs (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) >= 0),
    frequency TEXT NOT NULL DEFAULT 'MONTHLY' CHECK(frequency IN ('DAILY', 'WEEKLY', 'MONTHLY')),
    active BOOLEAN NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS spending_limits (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    category TEXT,
    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
    UNIQUE(user_id, category)
);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id TEXT PRIMARY KEY,
    base_currency TEXT NOT NULL DEFAULT 'BRL'
);

CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, occurred_at);
CREATE INDEX IF NOT EXISTS idx_subscriptions_user_active ON subscriptions(user_id, active);
CREATE INDEX IF NOT EXISTS idx_fixed_costs_user_active ON fixed_costs(user_id, active);
"""

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_db: aiosqlite.Connection | None = None


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; aware values are converted, naive ones taken as UTC."""
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def to_db_timestamp(value: datetime) -> str:
    return to_naive_utc(value).strftime(_TIMESTAMP_FORMAT)


def from_db_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.strptime(value[:19], _TIMESTAMP_FORMAT)


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.db_path)
        _db.row_factory = aiosqlite.Row
        await _db.execute("PRAGMA journal_mode=WAL")
        await _db.execute("PRAGMA foreign_keys=ON")
    return _db


async def close_db():
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def init_db():
    db = await get_db()
    await db.executescript(SCHEMA)
    await db.commit()
