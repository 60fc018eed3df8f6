import logging
from datetime import datetime, timedelta
from pathlib import Path

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, FSInputFile, InlineKeyboardButton, InlineKeyboardMarkup, Message

from saldo.categories import Category
from saldo.charts import spending_by_category_chart
from saldo.currency import format_amount
from saldo.handlers.common import command_args, user_key
from saldo.services.aggregation_service import month_bounds
from saldo.services.insight_service import Insight
from saldo.services.report_service import build_insights_report, run_quick_action

logger = logging.getLogger(__name__)
router = Router()

SEVERITY_ICONS = {"low": "🟢", "medium": "🟡", "high": "🔴"}

_DAY = "%Y%m%d"


def parse_period(arg: str | None, now: datetime | None = None) -> tuple[datetime, datetime, str] | None:
    now = now or datetime.now()
    if not arg or arg.strip().lower() == "month":
        start, _ = month_bounds(now.year, now.month)
        return start, now, now.strftime("%B %Y")
    arg = arg.strip().lower()
    if arg == "week":
        start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
        return start, now, "this week"
    try:
        parsed = datetime.strptime(arg, "%Y-%m")
    except ValueError:
        return None
    start, end = month_bounds(parsed.year, parsed.month)
    return start, end, parsed.strftime("%B %Y")


def encode_action(action_id: str, category: Category | None, start: datetime, end: datetime) -> str:
    cat = category.value if category else "-"
    return f"qa:{action_id}:{cat}:{start:{_DAY}}:{end:{_DAY}}"


def decode_action(data: str) -> tuple[str, Category | None, datetime, datetime]:
    _, action_id, cat, start, end = data.split(":")
    category = None if cat == "-" else Category(cat)
    end_day = datetime.strptime(end, _DAY)
    return action_id, category, datetime.strptime(start, _DAY), end_day.replace(hour=23, minute=59, second=59)


def format_insight(insight: Insight) -> str:
    return f"{SEVERITY_ICONS.get(insight.severity, '•')} {insight.title}\n{insight.detail}"


def action_keyboard(insights: list[Insight], start: datetime, end: datetime) -> InlineKeyboardMarkup | None:
    rows = [
        [InlineKeyboardButton(text=a.label, callback_data=encode_action(a.id, i.category, start, end))]
        for i in insights
        for a in i.actions
    ]
    return InlineKeyboardMarkup(inline_keyboard=rows) if rows else None


@router.message(Command("insights"))
async def cmd_insights(message: Message):
    args = command_args(message)
    parsed = parse_period(args[0] if args else None)
    if parsed is None:
        await message.answer("Usage: /insights [week|month|YYYY-MM]")
        return
    start, end, label = parsed

    report = await build_insights_report(user_key(message), start, end)
    if not report["ok"]:
        await message.answer(report["error"])
        return

    cur = report["currency"]
    summary = report["summary"]
    text = (
        f"💡 Insights for {label}\n\n"
        + "\n\n".join(format_insight(i) for i in report["insights"])
        + f"\n\nIncome: {format_amount(summary['totalIncome'], cur)}"
        f" · Expenses: {format_amount(summary['totalExpenses'], cur)}"
        f" · Investments: {format_amount(summary['totalInvestments'], cur)}"
    )
    keyboard = action_keyboard(report["insights"], start, end)

    chart_path = await spending_by_category_chart(report["by_category"], cur)
    if chart_path:
        try:
            await message.answer_photo(FSInputFile(chart_path), caption=text[:1024], reply_markup=keyboard)
        finally:
            Path(chart_path).unlink(missing_ok=True)
    else:
        await message.answer(text, reply_markup=keyboard)


@router.callback_query(F.data.startswith("qa:"))
async def on_quick_action(callback: CallbackQuery):
    try:
        action_id, category, start, end = decode_action(callback.data)
    except ValueError:
        await callback.answer("This action has expired.", show_alert=True)
        return

    result = await run_quick_action(str(callback.from_user.id), action_id, start, end, category)
    await callback.answer()
    if callback.message is not None:
        await callback.message.answer(result["message"] if result["ok"] else result["error"])
