import logging
from datetime import date
from pathlib import Path

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import FSInputFile, Message

from saldo.charts import monthly_trend_chart
from saldo.currency import format_amount, get_base_currency
from saldo.handlers.common import command_args, user_key
from saldo.services.aggregation_service import monthly_totals
from saldo.services.report_service import build_projection_report

logger = logging.getLogger(__name__)
router = Router()


@router.message(Command("projection"))
async def cmd_projection(message: Message):
    args = command_args(message)
    month = args[0] if args else date.today().strftime("%Y-%m")
    user_id = user_key(message)

    report = await build_projection_report(user_id, month)
    if not report["ok"]:
        await message.answer(report["error"])
        return

    base = await get_base_currency(user_id)
    projection = report["projection"]
    current = report["aggregate"]
    await message.answer(
        f"🔮 Projection for {month}\n\n"
        f"Income: {format_amount(current.income_total, base)}\n"
        f"Fixed costs: {format_amount(current.fixed_costs_total, base)}\n"
        f"Subscriptions: {format_amount(current.subscriptions_total, base)}\n\n"
        f"Projected balance: {format_amount(projection.projected_balance, base)}\n"
        f"Income committed: {projection.percent_committed:.1f}%\n"
        f"Suggested to save: {format_amount(projection.suggested_savings, base)}"
    )


@router.message(Command("trend"))
async def cmd_trend(message: Message):
    user_id = user_key(message)
    data = await monthly_totals(user_id, months=6)
    if not any(row["count"] for row in data):
        await message.answer("No transaction history yet.")
        return

    base = await get_base_currency(user_id)
    lines = [
        f"• {row['month']}: +{format_amount(row['income'], base)} / -{format_amount(row['expenses'], base)}"
        for row in data
    ]
    text = "📈 Income vs expenses:\n\n" + "\n".join(lines)

    chart_path = await monthly_trend_chart(data, base)
    if chart_path:
        try:
            await message.answer_photo(FSInputFile(chart_path), caption=text)
        finally:
            Path(chart_path).unlink(missing_ok=True)
    else:
        await message.answer(text)
