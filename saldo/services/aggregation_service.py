"""Per-user, per-period totals that feed the insight rules and the projection."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from saldo.categories import Category, TransactionKind
from saldo.config import settings
from saldo.db.database import to_naive_utc
from saldo.db.models import FixedCost, Subscription, Transaction
from saldo.errors import ValidationError
from saldo.services.fixed_cost_service import find_active_fixed_costs, monthly_amount
from saldo.services.subscription_service import find_active_subscriptions
from saldo.services.transaction_service import find_transactions

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class PeriodAggregate:
    start: datetime
    end: datetime
    income_total: Decimal = ZERO
    expense_total: Decimal = ZERO
    investment_total: Decimal = ZERO
    by_category: dict[Category, Decimal] = field(default_factory=dict)
    transaction_count: int = 0
    subscriptions_total: Decimal = ZERO
    fixed_costs_total: Decimal = ZERO
    due_soon_count: int = 0
    due_soon_total: Decimal = ZERO
    # income of the whole calendar months around a partial window
    reference_income: Decimal | None = None
    months_spanned: int = 1

    @property
    def committed_total(self) -> Decimal:
        return self.fixed_costs_total + self.subscriptions_total

    @property
    def balance(self) -> Decimal:
        return self.income_total - self.expense_total - self.investment_total

    @property
    def income_basis(self) -> Decimal:
        """Income that monthly obligations and spending are judged against."""
        return self.income_total if self.reference_income is None else self.reference_income

    @property
    def committed_in_period(self) -> Decimal:
        return self.committed_total * self.months_spanned


def validate_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Bounds as naive UTC, the form timestamps are stored in."""
    start, end = to_naive_utc(start), to_naive_utc(end)
    if start > end:
        raise ValidationError("Start of the period must not be after its end")
    return start, end


def months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + end.month - start.month + 1


def calendar_span(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """The whole calendar months covering the window."""
    return month_bounds(start.year, start.month)[0], month_bounds(end.year, end.month)[1]


def build_aggregate(
    start: datetime,
    end: datetime,
    transactions: list[Transaction],
    subscriptions: list[Subscription] = (),
    fixed_costs: list[FixedCost] = (),
    due_soon_days: int | None = None,
    reference_income: Decimal | None = None,
) -> PeriodAggregate:
    """Fold already-fetched records into totals. Records are assumed to belong to one user."""
    start, end = validate_range(start, end)
    if due_soon_days is None:
        due_soon_days = settings.due_soon_days

    totals = {kind: ZERO for kind in TransactionKind}
    by_category: dict[Category, Decimal] = defaultdict(lambda: ZERO)
    count = 0
    for t in transactions:
        if not start <= t.occurred_at <= end:
            continue
        if t.amount < 0:
            raise ValidationError(f"Transaction #{t.id} has a negative amount")
        totals[t.kind] += t.amount
        if t.kind is TransactionKind.EXPENSE:
            by_category[t.category] += t.amount
        count += 1

    active_subs = [s for s in subscriptions if s.active]
    due_limit = end + timedelta(days=due_soon_days)
    due_soon = [s for s in active_subs if s.next_due_at is not None and s.next_due_at <= due_limit]

    return PeriodAggregate(
        start=start,
        end=end,
        income_total=totals[TransactionKind.DEPOSIT],
        expense_total=totals[TransactionKind.EXPENSE],
        investment_total=totals[TransactionKind.INVESTMENT],
        by_category=dict(by_category),
        transaction_count=count,
        subscriptions_total=sum((s.amount for s in active_subs), ZERO),
        fixed_costs_total=sum((monthly_amount(c) for c in fixed_costs if c.active), ZERO),
        due_soon_count=len(due_soon),
        due_soon_total=sum((s.amount for s in due_soon), ZERO),
        reference_income=reference_income,
        months_spanned=months_between(start, end),
    )


async def aggregate(user_id: str, start: datetime, end: datetime) -> PeriodAggregate:
    start, end = validate_range(start, end)
    transactions = await find_transactions(user_id, start, end)
    subscriptions = await find_active_subscriptions(user_id)
    fixed_costs = await find_active_fixed_costs(user_id)

    reference_income = None
    span_start, span_end = calendar_span(start, end)
    if (start, end) != (span_start, span_end):
        deposits = await find_transactions(user_id, span_start, span_end, kind=TransactionKind.DEPOSIT)
        reference_income = sum((t.amount for t in deposits), ZERO)

    return build_aggregate(start, end, transactions, subscriptions, fixed_costs, reference_income=reference_income)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last second of a calendar month."""
    start = datetime(year, month, 1)
    if month == 12:
        next_start = datetime(year + 1, 1, 1)
    else:
        next_start = datetime(year, month + 1, 1)
    return start, next_start - timedelta(seconds=1)


async def monthly_totals(user_id: str, months: int = 6, today: datetime | None = None) -> list[dict]:
    """Income and expense totals for the last ``months`` calendar months, oldest first."""
    today = today or datetime.now()
    year, month = today.year, today.month
    keys: list[tuple[int, int]] = []
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    keys.reverse()

    start, _ = month_bounds(*keys[0])
    _, end = month_bounds(*keys[-1])
    transactions = await find_transactions(user_id, start, end)

    buckets = {key: {"income": ZERO, "expenses": ZERO, "count": 0} for key in keys}
    for t in transactions:
        bucket = buckets.get((t.occurred_at.year, t.occurred_at.month))
        if bucket is None:
            continue
        if t.kind is TransactionKind.DEPOSIT:
            bucket["income"] += t.amount
        elif t.kind is TransactionKind.EXPENSE:
            bucket["expenses"] += t.amount
        bucket["count"] += 1

    return [{"month": f"{y:04d}-{m:02d}", **buckets[(y, m)]} for y, m in keys]
