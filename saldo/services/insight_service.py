"""Rule-based insights over a period aggregate.

Rules run in a fixed order and the output keeps that order:

1. no transactions in the period -> a single ``no-data`` insight, nothing else
2. category overspend versus the previous period
3. fixed obligations taking too much of the income
4. total spending above a fixed amount
5. one category taking too large a share of the spending
6. spending above income
7. subscriptions due soon
8. a neutral ``on-track`` insight when nothing above fired
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal

from saldo.categories import Category, category_label
from saldo.config import settings
from saldo.currency import format_amount
from saldo.services.aggregation_service import PeriodAggregate

DEFAULT_OVERSPEND_THRESHOLD = Decimal("0.15")
DEFAULT_OVERSPEND_HIGH_THRESHOLD = Decimal("0.40")
DEFAULT_COMMITMENT_THRESHOLD = Decimal("0.70")
DEFAULT_HIGH_EXPENSE_THRESHOLD = Decimal("5000")
DEFAULT_DOMINANT_CATEGORY_SHARE = Decimal("0.30")

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"


@dataclass(frozen=True, slots=True)
class QuickAction:
    id: str
    label: str


@dataclass(frozen=True, slots=True)
class Insight:
    id: str
    title: str
    detail: str
    severity: str
    category: Category | None = None
    actionable: bool = False
    actions: tuple[QuickAction, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["category"] = self.category.value if self.category else None
        data["actions"] = [asdict(a) for a in self.actions]
        return data


@dataclass(frozen=True, slots=True)
class InsightThresholds:
    overspend: Decimal = DEFAULT_OVERSPEND_THRESHOLD
    overspend_high: Decimal = DEFAULT_OVERSPEND_HIGH_THRESHOLD
    commitment: Decimal = DEFAULT_COMMITMENT_THRESHOLD
    high_expense: Decimal = DEFAULT_HIGH_EXPENSE_THRESHOLD
    dominant_share: Decimal = DEFAULT_DOMINANT_CATEGORY_SHARE

    @classmethod
    def from_settings(cls) -> "InsightThresholds":
        return cls(
            overspend=Decimal(str(settings.overspend_threshold)),
            overspend_high=Decimal(str(settings.overspend_high_threshold)),
            commitment=Decimal(str(settings.commitment_threshold)),
            high_expense=Decimal(str(settings.high_expense_threshold)),
            dominant_share=Decimal(str(settings.dominant_category_share)),
        )


def _no_data() -> Insight:
    return Insight(
        id="no-data",
        title="Not enough data",
        detail="There are no transactions in this period. Add a few transactions to get insights.",
        severity=SEVERITY_LOW,
    )


def _overspend(current: PeriodAggregate, previous: PeriodAggregate, thresholds: InsightThresholds, currency: str):
    for category, amount in current.by_category.items():
        before = previous.by_category.get(category)
        if not before:
            continue
        delta = (amount - before) / before
        if delta <= thresholds.overspend:
            continue
        label = category_label(category)
        pct = (delta * 100).quantize(Decimal("0.1"))
        yield Insight(
            id=f"overspend-{category.value.lower()}",
            title=f"Spending up on {label}",
            detail=(
                f"You spent {pct}% more on {label} than in the previous period "
                f"({format_amount(amount, currency)} vs {format_amount(before, currency)})."
            ),
            severity=SEVERITY_HIGH if delta > thresholds.overspend_high else SEVERITY_MEDIUM,
            category=category,
            actionable=True,
            actions=(
                QuickAction("create_limit", f"Create a {label} limit"),
                QuickAction("review_expenses", "Review expenses"),
            ),
        )


def _high_commitment(current: PeriodAggregate, thresholds: InsightThresholds, currency: str) -> Insight | None:
    committed = current.committed_in_period
    income = current.income_basis
    if committed <= income * thresholds.commitment:
        return None
    if income > 0:
        share = f"{(committed / income * 100).quantize(Decimal('0.1'))}% of your income"
    else:
        share = "more than your income"
    return Insight(
        id="high-commitment",
        title="Fixed obligations are too high",
        detail=(
            f"Fixed costs and subscriptions take {share} ({format_amount(committed, currency)}). "
            "Consider reviewing your budget."
        ),
        severity=SEVERITY_HIGH,
        actionable=True,
        actions=(QuickAction("review_budget", "Review budget"),),
    )


def _high_expenses(current: PeriodAggregate, thresholds: InsightThresholds, currency: str) -> Insight | None:
    if current.expense_total <= thresholds.high_expense:
        return None
    return Insight(
        id="high-expenses",
        title="High spending",
        detail=(
            f"You spent {format_amount(current.expense_total, currency)} in this period. "
            "Consider reviewing your largest expenses."
        ),
        severity=SEVERITY_HIGH,
        actionable=True,
        actions=(QuickAction("review_expenses", "Review expenses"),),
    )


def _dominant_category(
    current: PeriodAggregate,
    thresholds: InsightThresholds,
    currency: str,
    flagged: set[Category],
) -> Insight | None:
    if not current.by_category or current.expense_total <= 0:
        return None
    category, amount = max(current.by_category.items(), key=lambda item: item[1])
    share = amount / current.expense_total
    if share <= thresholds.dominant_share or category in flagged:
        return None
    label = category_label(category)
    return Insight(
        id="dominant-category",
        title=f"High spending on {label}",
        detail=(
            f"{label} is {(share * 100).quantize(Decimal('0.1'))}% of your spending "
            f"({format_amount(amount, currency)}). Look for ways to cut it down."
        ),
        severity=SEVERITY_MEDIUM,
        category=category,
        actionable=True,
        actions=(
            QuickAction("create_limit", f"Create a {label} limit"),
            QuickAction("review_expenses", "Review expenses"),
        ),
    )


def _negative_balance(current: PeriodAggregate, currency: str) -> Insight | None:
    shortfall = current.expense_total - current.income_basis
    if shortfall <= 0:
        return None
    return Insight(
        id="negative-balance",
        title="Negative balance",
        detail=(
            f"Your spending exceeded your income by {format_amount(shortfall, currency)}. "
            "It is worth adjusting the budget."
        ),
        severity=SEVERITY_HIGH,
        actionable=True,
    )


def _subscriptions_due(current: PeriodAggregate, currency: str) -> Insight | None:
    if current.due_soon_count == 0:
        return None
    return Insight(
        id="subscriptions-due",
        title=f"{current.due_soon_count} subscription(s) due soon",
        detail=(
            f"You have {current.due_soon_count} subscription(s) coming due. "
            f"Total: {format_amount(current.due_soon_total, currency)}."
        ),
        severity=SEVERITY_MEDIUM,
        actionable=True,
    )


def _on_track(current: PeriodAggregate, currency: str) -> Insight:
    if current.balance > 0:
        detail = f"You kept {format_amount(current.balance, currency)} this period. Keep it up!"
    else:
        detail = "No warning signs this period. Keep tracking your spending."
    return Insight(id="on-track", title="You're on track", detail=detail, severity=SEVERITY_LOW)


def generate(
    current: PeriodAggregate,
    previous: PeriodAggregate | None = None,
    thresholds: InsightThresholds | None = None,
    currency: str | None = None,
) -> list[Insight]:
    thresholds = thresholds or InsightThresholds()
    currency = currency or settings.base_currency

    if current.transaction_count == 0:
        return [_no_data()]

    insights: list[Insight] = []
    if previous is not None:
        insights.extend(_overspend(current, previous, thresholds, currency))
    # a category already reported as overspent is not reported again as dominant
    flagged = {i.category for i in insights}

    for rule in (
        _high_commitment(current, thresholds, currency),
        _high_expenses(current, thresholds, currency),
        _dominant_category(current, thresholds, currency, flagged),
        _negative_balance(current, currency),
        _subscriptions_due(current, currency),
    ):
        if rule is not None:
            insights.append(rule)

    if not insights:
        insights.append(_on_track(current, currency))
    return insights


def main_insight(insights: list[Insight]) -> Insight | None:
    """The first medium or high insight, else the first one. Used for the headline."""
    for insight in insights:
        if insight.severity in (SEVERITY_HIGH, SEVERITY_MEDIUM):
            return insight
    return insights[0] if insights else None
