import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from saldo.categories import category_label
from saldo.currency import format_amount, get_base_currency
from saldo.services.aggregation_service import PeriodAggregate, aggregate, month_bounds

logger = logging.getLogger(__name__)

SummaryLoader = Callable[[str], Awaitable[PeriodAggregate]]

SPENDING_KEYWORDS = ("gastei", "gasto", "despesa", "spent", "spending", "expense")
INCOME_KEYWORDS = ("receita", "ganho", "income", "earn")
SUMMARY_KEYWORDS = ("resumo", "visão geral", "visao geral", "overview", "summary")

HELP_TEXT = (
    "🤖 Saldo assistant (local mode)\n\n"
    "I can help with:\n"
    "• Spending analysis\n"
    "• Financial summary\n"
    "• Income overview\n\n"
    "Try asking:\n"
    '- "How much have I spent?"\n'
    '- "Give me a summary"\n'
    '- "What is my income?"'
)


async def current_month_summary(user_id: str) -> PeriodAggregate:
    now = datetime.now()
    start, end = month_bounds(now.year, now.month)
    return await aggregate(user_id, start, end)


def _matches(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def spending_text(summary: PeriodAggregate, currency: str) -> str:
    if not summary.by_category:
        return "No expenses recorded this month yet."
    top, top_amount = max(summary.by_category.items(), key=lambda item: item[1])
    label = category_label(top)
    return (
        "Spending analysis:\n\n"
        f"💰 Total spent: {format_amount(summary.expense_total, currency)}\n"
        f"📊 Top category: {label} ({format_amount(top_amount, currency)})\n"
        f"📝 Categories with spending: {len(summary.by_category)}\n\n"
        f"💡 Tip: cutting back on {label} is where you would save the most."
    )


def income_text(summary: PeriodAggregate, currency: str) -> str:
    return (
        "Income analysis:\n\n"
        f"💵 Total income: {format_amount(summary.income_total, currency)}\n\n"
        "💡 Keeping more than one source of income is a good habit."
    )


def summary_text(summary: PeriodAggregate, currency: str) -> str:
    balance = summary.balance
    verdict = "✅ You are in the positive." if balance > 0 else "⚠️ Your spending is above your income."
    return (
        "📊 Financial summary:\n\n"
        f"💰 Income: {format_amount(summary.income_total, currency)}\n"
        f"💸 Expenses: {format_amount(summary.expense_total, currency)}\n"
        f"📈 Investments: {format_amount(summary.investment_total, currency)}\n"
        f"💵 Balance: {format_amount(balance, currency)}\n\n"
        f"{verdict}"
    )


class FallbackResponder:
    """Keyword-templated answers. Never raises, so the gateway always has a reply."""

    name = "fallback"

    def __init__(self, summary_loader: SummaryLoader | None = current_month_summary, currency: str | None = None):
        self.summary_loader = summary_loader
        # None means the user's own base currency
        self.currency = currency

    def _template_for(self, text: str):
        if _matches(text, SPENDING_KEYWORDS):
            return spending_text
        if _matches(text, INCOME_KEYWORDS):
            return income_text
        if _matches(text, SUMMARY_KEYWORDS):
            return summary_text
        return None

    async def complete(self, prompt: str, context: str = "", user_id: str | None = None) -> str:
        template = self._template_for(prompt.lower())
        if template is None or self.summary_loader is None or user_id is None:
            return HELP_TEXT
        try:
            summary = await self.summary_loader(user_id)
            currency = self.currency or await get_base_currency(user_id)
        except Exception:
            logger.warning("Fallback could not load the summary", exc_info=True, extra={"user_id": user_id})
            return HELP_TEXT
        return template(summary, currency)
