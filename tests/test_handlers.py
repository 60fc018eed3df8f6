from datetime import datetime
from decimal import Decimal

import pytest

from saldo.categories import Category, TransactionKind
from saldo.errors import ValidationError
from saldo.handlers.insights import action_keyboard, decode_action, encode_action, parse_period
from saldo.handlers.subscriptions import days_until, parse_addsub_args
from saldo.handlers.transactions import parse_add_args
from saldo.services.insight_service import Insight, QuickAction

NOW = datetime(2025, 3, 20, 15, 30)


def test_parse_add_args():
    tx = parse_add_args(["expense", "42,90", "food", "Lunch", "out"], "u1", now=NOW)
    assert tx.kind is TransactionKind.EXPENSE
    assert tx.amount == Decimal("42.90")
    assert tx.category is Category.FOOD
    assert tx.name == "Lunch out"
    assert tx.occurred_at == NOW


def test_parse_add_args_default_name():
    tx = parse_add_args(["income", "3000", "salary"], "u1", now=NOW)
    assert tx.kind is TransactionKind.DEPOSIT
    assert tx.name == "Salary"


@pytest.mark.parametrize(
    "args",
    [
        ["expense", "10"],
        ["transfer", "10", "food"],
        ["expense", "-5", "food"],
        ["expense", "abc", "food"],
        ["expense", "10", "pets"],
        ["expense", "Infinity", "food"],
        ["expense", "NaN", "food"],
    ],
)
def test_parse_add_args_invalid(args):
    with pytest.raises(ValidationError):
        parse_add_args(args, "u1", now=NOW)


def test_parse_period_month():
    start, end, label = parse_period(None, now=NOW)
    assert start == datetime(2025, 3, 1)
    assert end == NOW
    assert label == "March 2025"


def test_parse_period_week():
    start, end, _ = parse_period("week", now=NOW)
    assert start == datetime(2025, 3, 17)
    assert end == NOW


def test_parse_period_explicit_month():
    start, end, _ = parse_period("2025-02", now=NOW)
    assert start == datetime(2025, 2, 1)
    assert end == datetime(2025, 2, 28, 23, 59, 59)


def test_parse_period_invalid():
    assert parse_period("yesterday", now=NOW) is None


def test_action_round_trip():
    start, end = datetime(2025, 3, 1), datetime(2025, 3, 31, 23, 59, 59)
    data = encode_action("review_expenses", Category.TRANSPORTATION, start, end)
    assert len(data.encode()) <= 64
    assert decode_action(data) == ("review_expenses", Category.TRANSPORTATION, start, end)

    action_id, category, _, _ = decode_action(encode_action("review_budget", None, start, end))
    assert action_id == "review_budget"
    assert category is None


def test_action_keyboard():
    insights = [
        Insight(id="on-track", title="t", detail="d", severity="low"),
        Insight(
            id="overspend-food",
            title="t",
            detail="d",
            severity="high",
            category=Category.FOOD,
            actionable=True,
            actions=(QuickAction("create_limit", "Create"), QuickAction("review_expenses", "Review")),
        ),
    ]
    keyboard = action_keyboard(insights, datetime(2025, 3, 1), datetime(2025, 3, 31))
    assert [row[0].text for row in keyboard.inline_keyboard] == ["Create", "Review"]
    assert action_keyboard(insights[:1], datetime(2025, 3, 1), datetime(2025, 3, 31)) is None


def test_parse_addsub_args():
    name, amount, due = parse_addsub_args(["Amazon", "Prime", "14.90", "2025-04-05"])
    assert name == "Amazon Prime"
    assert amount == Decimal("14.90")
    assert due == datetime(2025, 4, 5)

    name, amount, due = parse_addsub_args(["Netflix", "55.90"])
    assert due is None


def test_parse_addsub_args_invalid():
    with pytest.raises(ValidationError):
        parse_addsub_args(["Netflix"])
    with pytest.raises(ValidationError):
        parse_addsub_args(["Netflix", "10", "2025-13-01"])


def test_days_until():
    assert days_until(datetime(2025, 3, 25), today=NOW.date()) == 5
    assert days_until(datetime(2025, 3, 18), today=NOW.date()) == -2
