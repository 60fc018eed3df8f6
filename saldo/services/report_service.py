"""Request-level entry points: validate, aggregate, run the rules, shape the result.

Every public function here returns a dict with an ``ok`` flag instead of raising,
so callers can render ``error`` verbatim.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from decimal import Decimal

from saldo.categories import Category, category_label
from saldo.config import settings
from saldo.currency import format_amount, get_base_currency
from saldo.errors import AuthorizationError, NotFoundError, PersistenceError, SaldoError, ValidationError
from saldo.services import aggregation_service
from saldo.services.aggregation_service import month_bounds, validate_range
from saldo.services.fixed_cost_service import find_active_fixed_costs, monthly_amount
from saldo.services.insight_service import InsightThresholds, generate
from saldo.services.limit_service import set_limit
from saldo.services.projection_service import project
from saldo.services.subscription_service import find_active_subscriptions
from saldo.services.transaction_service import top_expenses

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Could not load your data right now. Please try again later."


def require_user(user_id: str | None) -> str:
    if not user_id:
        raise AuthorizationError("Not authorized. Please sign in to continue.")
    return user_id


def previous_period(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """The previous calendar month for a whole-month window, else the window of the
    same length that ends one second before ``start``."""
    if (start, end) == month_bounds(start.year, start.month):
        last_month = start - timedelta(days=1)
        return month_bounds(last_month.year, last_month.month)
    prev_end = start - timedelta(seconds=1)
    return prev_end - (end - start), prev_end


def parse_month(month: str) -> tuple[datetime, datetime]:
    try:
        parsed = datetime.strptime(month, "%Y-%m")
    except (TypeError, ValueError):
        raise ValidationError("Invalid month format. Use YYYY-MM") from None
    return month_bounds(parsed.year, parsed.month)


async def _aggregate(user_id: str, start: datetime, end: datetime):
    try:
        return await aggregation_service.aggregate(user_id, start, end)
    except (sqlite3.Error, ValueError, ArithmeticError) as exc:
        raise PersistenceError(str(exc)) from exc


async def _currency(user_id: str) -> str:
    try:
        return await get_base_currency(user_id)
    except sqlite3.Error as exc:
        raise PersistenceError(str(exc)) from exc


def _failure(exc: SaldoError, user_id: str | None) -> dict:
    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure: %s", exc, extra={"user_id": user_id})
        return {"ok": False, "error": GENERIC_FAILURE}
    logger.info("Request rejected: %s", exc, extra={"user_id": user_id})
    return {"ok": False, "error": str(exc)}


async def build_insights_report(user_id: str | None, start: datetime, end: datetime) -> dict:
    try:
        user_id = require_user(user_id)
        start, end = validate_range(start, end)
        currency = await _currency(user_id)
        current = await _aggregate(user_id, start, end)
        previous = await _aggregate(user_id, *previous_period(start, end))
        insights = generate(current, previous, InsightThresholds.from_settings(), currency)
    except SaldoError as exc:
        return _failure(exc, user_id)

    return {
        "ok": True,
        "insights": insights,
        "summary": {
            "totalIncome": current.income_total,
            "totalExpenses": current.expense_total,
            "totalInvestments": current.investment_total,
            "period": f"{start:%d/%m/%Y} - {end:%d/%m/%Y}",
        },
        "by_category": current.by_category,
        "currency": currency,
    }


async def build_projection_report(user_id: str | None, month: str) -> dict:
    try:
        user_id = require_user(user_id)
        start, end = parse_month(month)
        current = await _aggregate(user_id, start, end)
        projection = project(
            current.income_total,
            current.fixed_costs_total,
            current.subscriptions_total,
            savings_rate=Decimal(str(settings.savings_rate)),
        )
    except SaldoError as exc:
        return _failure(exc, user_id)
    return {"ok": True, "projection": projection, "aggregate": current}


async def _create_limit(user_id: str, category: Category | None, start: datetime, end: datetime, currency: str):
    if category is None:
        raise ValidationError("create_limit needs a category")
    previous = await _aggregate(user_id, *previous_period(start, end))
    baseline = previous.by_category.get(category)
    if not baseline:
        current = await _aggregate(user_id, start, end)
        baseline = current.by_category.get(category)
    if not baseline:
        raise NotFoundError(f"No {category_label(category)} spending to base a limit on")
    limit = await set_limit(user_id, baseline, category)
    return f"Limit set: {category_label(category)} → {format_amount(limit.amount, currency)}/month"


async def _review_expenses(user_id: str, category: Category | None, start: datetime, end: datetime, currency: str):
    expenses = await top_expenses(user_id, start, end, category=category)
    if not expenses:
        return "No expenses in this period."
    lines = [f"• {t.occurred_at:%d/%m} {t.name}: {format_amount(t.amount, currency)}" for t in expenses]
    title = f"Largest {category_label(category)} expenses" if category else "Largest expenses"
    return f"{title}:\n" + "\n".join(lines)


async def _review_budget(user_id: str, category: Category | None, start: datetime, end: datetime, currency: str):
    subs = await find_active_subscriptions(user_id)
    costs = await find_active_fixed_costs(user_id)
    if not subs and not costs:
        return "No fixed costs or subscriptions registered."
    lines = [f"• {c.name}: {format_amount(monthly_amount(c), currency)}/month" for c in costs]
    lines += [f"• {s.name} (subscription): {format_amount(s.amount, currency)}" for s in subs]
    return "Your fixed obligations:\n" + "\n".join(lines)


QUICK_ACTIONS = {
    "create_limit": _create_limit,
    "review_expenses": _review_expenses,
    "review_budget": _review_budget,
}


async def run_quick_action(
    user_id: str | None,
    action_id: str,
    start: datetime,
    end: datetime,
    category: Category | None = None,
) -> dict:
    try:
        user_id = require_user(user_id)
        handler = QUICK_ACTIONS.get(action_id)
        if handler is None:
            raise NotFoundError(f"Unknown action: {action_id}")
        start, end = validate_range(start, end)
        currency = await _currency(user_id)
        try:
            message = await handler(user_id, category, start, end, currency)
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
    except SaldoError as exc:
        return _failure(exc, user_id)
    logger.info("Quick action %s executed", action_id, extra={"user_id": user_id})
    return {"ok": True, "message": message}
