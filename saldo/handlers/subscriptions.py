import logging
from datetime import date, datetime

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from saldo.currency import format_amount, get_base_currency, to_decimal
from saldo.errors import ValidationError
from saldo.handlers.common import command_args, user_key
from saldo.services.subscription_service import add_subscription, find_active_subscriptions, remove_subscription

logger = logging.getLogger(__name__)
router = Router()


def parse_addsub_args(args: list[str]) -> tuple[str, object, datetime | None]:
    """``<name words...> <amount> [YYYY-MM-DD]`` -> (name, amount, next due)."""
    due = None
    if args and len(args[-1]) == 10 and args[-1][4] == "-":
        try:
            due = datetime.strptime(args[-1], "%Y-%m-%d")
        except ValueError:
            raise ValidationError("Invalid due date. Use YYYY-MM-DD") from None
        args = args[:-1]
    if len(args) < 2:
        raise ValidationError("Missing name or amount")
    amount = to_decimal(args[-1])
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    return " ".join(args[:-1]), amount, due


def days_until(due: datetime, today: date | None = None) -> int:
    return (due.date() - (today or date.today())).days


@router.message(Command("subs"))
async def cmd_subs(message: Message):
    user_id = user_key(message)
    subs = await find_active_subscriptions(user_id)
    if not subs:
        await message.answer("No active subscriptions. Use /addsub to add one.")
        return

    base = await get_base_currency(user_id)
    total = sum(s.amount for s in subs)
    lines = []
    for s in subs:
        due_info = ""
        if s.next_due_at:
            days = days_until(s.next_due_at)
            due_info = f" — due {s.next_due_at:%b %d} ({days}d)" if days >= 0 else f" — overdue {-days}d"
        lines.append(f"• {s.name}: {format_amount(s.amount, base)}{due_info}")

    await message.answer("📋 Active subscriptions:\n" + "\n".join(lines) + f"\n\nTotal: {format_amount(total, base)}")


@router.message(Command("addsub"))
async def cmd_addsub(message: Message):
    try:
        name, amount, due = parse_addsub_args(command_args(message))
    except ValidationError as exc:
        await message.answer(f"{exc}.\nUsage: /addsub Netflix 55.90 [2025-03-10]")
        return

    user_id = user_key(message)
    await add_subscription(user_id, name, amount, next_due_at=due)
    base = await get_base_currency(user_id)
    await message.answer(f"Added subscription: {name} — {format_amount(amount, base)}")


@router.message(Command("removesub"))
async def cmd_removesub(message: Message):
    args = command_args(message, maxsplit=1)
    if not args:
        await message.answer("Usage: /removesub Netflix")
        return

    if await remove_subscription(user_key(message), args[0].strip()):
        await message.answer(f"Removed subscription: {args[0].strip()}")
    else:
        await message.answer(f"No active subscription named '{args[0].strip()}'.")
