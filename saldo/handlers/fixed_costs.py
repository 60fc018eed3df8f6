import logging

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from saldo.currency import format_amount, get_base_currency, to_decimal
from saldo.errors import ValidationError
from saldo.handlers.common import command_args, user_key
from saldo.services.fixed_cost_service import (
    add_fixed_cost,
    deactivate_fixed_cost,
    find_active_fixed_costs,
    monthly_amount,
)

logger = logging.getLogger(__name__)
router = Router()


@router.message(Command("fixed"))
async def cmd_fixed(message: Message):
    user_id = user_key(message)
    costs = await find_active_fixed_costs(user_id)
    if not costs:
        await message.answer("No fixed costs. Use /addfixed to add one.")
        return

    base = await get_base_currency(user_id)
    total = sum(monthly_amount(c) for c in costs)
    lines = [f"• {c.name}: {format_amount(c.amount, base)} ({c.frequency.lower()})" for c in costs]
    await message.answer("🏠 Fixed costs:\n" + "\n".join(lines) + f"\n\nTotal: ~{format_amount(total, base)}/month")


@router.message(Command("addfixed"))
async def cmd_addfixed(message: Message):
    args = command_args(message, maxsplit=3)
    if len(args) < 3:
        await message.answer("Usage: /addfixed 1500 monthly Rent")
        return

    user_id = user_key(message)
    try:
        amount = to_decimal(args[0])
        await add_fixed_cost(user_id, args[2], amount, args[1])
    except ValidationError as exc:
        await message.answer(str(exc))
        return

    base = await get_base_currency(user_id)
    await message.answer(f"Added fixed cost: {args[2]} — {format_amount(amount, base)} ({args[1].lower()})")


@router.message(Command("removefixed"))
async def cmd_removefixed(message: Message):
    args = command_args(message, maxsplit=1)
    if not args:
        await message.answer("Usage: /removefixed Rent")
        return

    if await deactivate_fixed_cost(user_key(message), args[0].strip()):
        await message.answer(f"Removed fixed cost: {args[0].strip()}")
    else:
        await message.answer(f"No fixed cost named '{args[0].strip()}'.")
