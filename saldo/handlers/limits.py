import logging
from datetime import datetime

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from saldo.categories import category_label, parse_category
from saldo.currency import format_amount, get_base_currency, to_decimal
from saldo.errors import ValidationError
from saldo.handlers.common import command_args, user_key
from saldo.services.aggregation_service import month_bounds
from saldo.services.limit_service import get_all_limits, limits_vs_actual, remove_limit, set_limit

logger = logging.getLogger(__name__)
router = Router()


def _progress_bar(pct, width: int = 10) -> str:
    filled = max(0, min(int(pct / 100 * width), width))
    return "█" * filled + "░" * (width - filled)


@router.message(Command("setlimit"))
async def cmd_setlimit(message: Message):
    args = command_args(message)
    if not args:
        await message.answer("Usage:\n/setlimit 2000 — total monthly limit\n/setlimit food 500 — category limit")
        return

    category = None
    if len(args) >= 2:
        category = parse_category(args[0])
        if category is None:
            await message.answer(f"Unknown category: {args[0]}")
            return
    user_id = user_key(message)
    try:
        limit = await set_limit(user_id, to_decimal(args[-1]), category)
    except ValidationError as exc:
        await message.answer(str(exc))
        return

    base = await get_base_currency(user_id)
    label = category_label(limit.category) if limit.category else "Total"
    await message.answer(f"Limit set: {label} → {format_amount(limit.amount, base)}/month")


@router.message(Command("removelimit"))
async def cmd_removelimit(message: Message):
    args = command_args(message)
    category = parse_category(args[0]) if args else None
    if args and category is None:
        await message.answer(f"Unknown category: {args[0]}")
        return

    if await remove_limit(user_key(message), category):
        await message.answer(f"Removed {category_label(category) if category else 'total'} limit.")
    else:
        await message.answer("No matching limit found.")


@router.message(Command("limits"))
async def cmd_limits(message: Message):
    user_id = user_key(message)
    if not await get_all_limits(user_id):
        await message.answer("No limits set. Use /setlimit to create one.")
        return

    now = datetime.now()
    start, _ = month_bounds(now.year, now.month)
    data = await limits_vs_actual(user_id, start, now)
    base = await get_base_currency(user_id)
    lines = []
    for d in data:
        label = category_label(d["category"]) if d["category"] else "Total"
        lines.append(
            f"{label}: {format_amount(d['spent'], base)} / {format_amount(d['limit'], base)}\n"
            f"  {_progress_bar(d['pct'])} {d['pct']:.0f}%  ({format_amount(d['remaining'], base)} left)"
        )
    await message.answer(f"💰 Limits — {now:%B %Y}\n\n" + "\n\n".join(lines))
