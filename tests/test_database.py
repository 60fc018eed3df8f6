import sqlite3
from datetime import UTC, datetime, timedelta, timezone

import aiosqlite
import pytest

from saldo.db.database import from_db_timestamp, to_db_timestamp


async def test_schema_creates_tables(test_db: aiosqlite.Connection):
    cursor = await test_db.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in await cursor.fetchall()]
    for name in ("transactions", "subscriptions", "fixed_costs", "spending_limits", "user_settings"):
        assert name in tables


async def test_transaction_kind_check(test_db: aiosqlite.Connection):
    with pytest.raises(sqlite3.IntegrityError):
        await test_db.execute(
            "INSERT INTO transactions (user_id, name, amount, kind, category, occurred_at) "
            "VALUES ('u1', 'x', '5', 'REFUND', 'FOOD', '2025-01-01 00:00:00')"
        )


async def test_negative_amount_rejected(test_db: aiosqlite.Connection):
    with pytest.raises(sqlite3.IntegrityError):
        await test_db.execute(
            "INSERT INTO transactions (user_id, name, amount, kind, category, occurred_at) "
            "VALUES ('u1', 'x', '-5', 'EXPENSE', 'FOOD', '2025-01-01 00:00:00')"
        )


async def test_fixed_cost_frequency_check(test_db: aiosqlite.Connection):
    with pytest.raises(sqlite3.IntegrityError):
        await test_db.execute(
            "INSERT INTO fixed_costs (user_id, name, amount, frequency) VALUES ('u1', 'rent', '10', 'YEARLY')"
        )


def test_timestamp_roundtrip_naive():
    value = datetime(2025, 3, 1, 8, 30, 15)
    assert to_db_timestamp(value) == "2025-03-01 08:30:15"
    assert from_db_timestamp("2025-03-01 08:30:15") == value


def test_aware_timestamp_stored_as_utc():
    value = datetime(2025, 3, 1, 8, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert to_db_timestamp(value) == "2025-03-01 11:00:00"
    assert to_db_timestamp(value.astimezone(UTC)) == "2025-03-01 11:00:00"


def test_from_db_timestamp_none():
    assert from_db_timestamp(None) is None
