import sqlite3
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from saldo.categories import Category, TransactionKind
from saldo.db.models import Transaction
from saldo.services.fixed_cost_service import add_fixed_cost
from saldo.services.limit_service import get_limit
from saldo.services.report_service import (
    GENERIC_FAILURE,
    build_insights_report,
    build_projection_report,
    previous_period,
    run_quick_action,
)
from saldo.services.subscription_service import add_subscription
from saldo.services.transaction_service import save_transaction

START = datetime(2025, 3, 1)
END = datetime(2025, 3, 31, 23, 59, 59)


async def _tx(amount: str, when: datetime, kind=TransactionKind.EXPENSE, category=Category.FOOD, name="x"):
    await save_transaction(
        Transaction(
            id=None,
            user_id="u1",
            name=name,
            amount=Decimal(amount),
            kind=kind,
            category=category,
            occurred_at=when,
        )
    )


def test_previous_period_of_whole_month_is_previous_month():
    assert previous_period(START, END) == (datetime(2025, 2, 1), datetime(2025, 2, 28, 23, 59, 59))
    assert previous_period(datetime(2025, 2, 1), datetime(2025, 2, 28, 23, 59, 59)) == (
        datetime(2025, 1, 1),
        datetime(2025, 1, 31, 23, 59, 59),
    )
    assert previous_period(datetime(2025, 1, 1), datetime(2025, 1, 31, 23, 59, 59)) == (
        datetime(2024, 12, 1),
        datetime(2024, 12, 31, 23, 59, 59),
    )


def test_previous_period_of_partial_window_has_same_length():
    start, end = datetime(2025, 3, 10), datetime(2025, 3, 16, 23, 59, 59)
    prev_start, prev_end = previous_period(start, end)
    assert prev_end == datetime(2025, 3, 9, 23, 59, 59)
    assert prev_end - prev_start == end - start


async def test_insights_report_requires_user():
    report = await build_insights_report(None, START, END)
    assert report["ok"] is False
    assert "authorized" in report["error"]


async def test_insights_report_inverted_range():
    report = await build_insights_report("u1", END, START)
    assert report == {"ok": False, "error": "Start of the period must not be after its end"}


async def test_insights_report_empty():
    report = await build_insights_report("u1", START, END)
    assert report["ok"] is True
    assert [i.id for i in report["insights"]] == ["no-data"]
    assert report["summary"]["totalIncome"] == 0
    assert report["summary"]["period"] == "01/03/2025 - 31/03/2025"


async def test_insights_report_overspend_against_previous_period():
    await _tx("5000", datetime(2025, 3, 5), kind=TransactionKind.DEPOSIT, category=Category.SALARY)
    await _tx("842", datetime(2025, 3, 10))
    await _tx("600", datetime(2025, 2, 10))

    report = await build_insights_report("u1", START, END)
    assert report["ok"] is True
    assert [i.id for i in report["insights"]] == ["overspend-food"]
    assert report["insights"][0].severity == "high"
    assert report["summary"]["totalExpenses"] == Decimal("842")
    assert report["by_category"] == {Category.FOOD: Decimal("842")}


async def test_insights_report_hides_persistence_details():
    with patch(
        "saldo.services.aggregation_service.find_transactions",
        AsyncMock(side_effect=sqlite3.OperationalError("disk I/O error")),
    ):
        report = await build_insights_report("u1", START, END)
    assert report == {"ok": False, "error": GENERIC_FAILURE}


async def test_projection_report():
    await _tx("3000", datetime(2025, 3, 5), kind=TransactionKind.DEPOSIT, category=Category.SALARY)
    await add_fixed_cost("u1", "Rent", Decimal("500"))
    await add_subscription("u1", "Netflix", Decimal("100"))

    report = await build_projection_report("u1", "2025-03")
    assert report["ok"] is True
    assert report["projection"].to_dict() == {
        "saldo_previsto": 2400.0,
        "percent_comprometido": 20.0,
        "sugestao_para_meta": 720.0,
    }


async def test_projection_report_bad_month():
    report = await build_projection_report("u1", "March")
    assert report == {"ok": False, "error": "Invalid month format. Use YYYY-MM"}


async def test_create_limit_uses_previous_spend():
    await _tx("600", datetime(2025, 2, 10))
    await _tx("842", datetime(2025, 3, 10))

    result = await run_quick_action("u1", "create_limit", START, END, Category.FOOD)
    assert result["ok"] is True
    assert "R$ 600.00" in result["message"]
    limit = await get_limit("u1", Category.FOOD)
    assert limit.amount == Decimal("600")


async def test_create_limit_without_category():
    result = await run_quick_action("u1", "create_limit", START, END)
    assert result["ok"] is False


async def test_create_limit_without_spending():
    result = await run_quick_action("u1", "create_limit", START, END, Category.HEALTH)
    assert result["ok"] is False
    assert "Health" in result["error"]


async def test_review_expenses():
    await _tx("50", datetime(2025, 3, 3), name="Market")
    await _tx("300", datetime(2025, 3, 4), name="Restaurant")
    await _tx("900", datetime(2025, 3, 4), category=Category.HOUSING, name="Rent")

    result = await run_quick_action("u1", "review_expenses", START, END, Category.FOOD)
    assert result["ok"] is True
    lines = result["message"].splitlines()
    assert lines[0] == "Largest Food expenses:"
    assert "Restaurant" in lines[1]
    assert "Market" in lines[2]
    assert "Rent" not in result["message"]


async def test_review_budget():
    await add_fixed_cost("u1", "Rent", Decimal("1500"))
    await add_subscription("u1", "Netflix", Decimal("55.90"))

    result = await run_quick_action("u1", "review_budget", START, END)
    assert result["ok"] is True
    assert "Rent: R$ 1,500.00/month" in result["message"]
    assert "Netflix (subscription): R$ 55.90" in result["message"]


async def test_unknown_action():
    result = await run_quick_action("u1", "delete_everything", START, END)
    assert result == {"ok": False, "error": "Unknown action: delete_everything"}


async def test_quick_action_requires_user():
    result = await run_quick_action("", "review_budget", START, END)
    assert result["ok"] is False


async def test_insights_report_accepts_aware_bounds():
    await _tx("3000", datetime(2025, 3, 5), kind=TransactionKind.DEPOSIT, category=Category.SALARY)
    await _tx("120", datetime(2025, 3, 31, 23, 30))

    report = await build_insights_report(
        "u1", datetime(2025, 3, 1, tzinfo=UTC), datetime(2025, 3, 31, 23, 59, 59, tzinfo=UTC)
    )
    assert report["ok"] is True
    assert report["summary"]["totalExpenses"] == Decimal("120")


async def test_insights_report_converts_offset_bounds_to_utc():
    await _tx("120", datetime(2025, 3, 10, 2, 0))
    brt = timezone(timedelta(hours=-3))

    start = datetime(2025, 3, 9, 22, 0, tzinfo=brt)
    report = await build_insights_report("u1", start, datetime(2025, 3, 9, 23, 30, tzinfo=brt))
    assert report["ok"] is True
    assert report["summary"]["totalExpenses"] == Decimal("120")


async def test_insights_report_mixed_bounds_do_not_raise():
    report = await build_insights_report("u1", datetime(2025, 3, 1, tzinfo=UTC), datetime(2025, 3, 31))
    assert report["ok"] is True


async def test_partial_window_judges_obligations_against_month_income():
    await _tx("5000", datetime(2025, 3, 1, 9, 0), kind=TransactionKind.DEPOSIT, category=Category.SALARY)
    await _tx("80", datetime(2025, 3, 11), category=Category.FOOD)
    await _tx("40", datetime(2025, 3, 11), category=Category.HEALTH)
    await _tx("40", datetime(2025, 3, 12), category=Category.TRANSPORTATION)
    await _tx("40", datetime(2025, 3, 12), category=Category.UTILITY)
    await add_fixed_cost("u1", "Rent", Decimal("1500"))

    report = await build_insights_report("u1", datetime(2025, 3, 10), datetime(2025, 3, 12, 23, 59, 59))
    assert report["ok"] is True
    ids = [i.id for i in report["insights"]]
    assert "high-commitment" not in ids
    assert "negative-balance" not in ids


async def test_insights_report_previous_month_baseline_for_february():
    await _tx("100", datetime(2025, 1, 2))
    await _tx("130", datetime(2025, 2, 10))

    report = await build_insights_report("u1", datetime(2025, 2, 1), datetime(2025, 2, 28, 23, 59, 59))
    assert [i.id for i in report["insights"]] == ["overspend-food", "negative-balance"]
