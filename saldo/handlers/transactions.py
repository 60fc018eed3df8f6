import logging
from datetime import datetime

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from saldo.categories import TransactionKind, category_label, get_categories_str, parse_category, parse_kind
from saldo.currency import format_amount, get_base_currency, to_decimal
from saldo.db.models import Transaction
from saldo.errors import ValidationError
from saldo.handlers.common import command_args, user_key
from saldo.services.transaction_service import delete_last_transaction, recent_transactions, save_transaction

logger = logging.getLogger(__name__)
router = Router()

USAGE = "Usage: /add <expense|income|investment> <amount> <category> [name]\nCategories: "

KIND_ICONS = {
    TransactionKind.EXPENSE: "💸",
    TransactionKind.DEPOSIT: "💰",
    TransactionKind.INVESTMENT: "📈",
}


def parse_add_args(args: list[str], user_id: str, now: datetime | None = None) -> Transaction:
    if len(args) < 3:
        raise ValidationError("Missing arguments")
    kind = parse_kind(args[0])
    if kind is None:
        raise ValidationError(f"Unknown transaction type: {args[0]}")
    amount = to_decimal(args[1])
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    category = parse_category(args[2])
    if category is None:
        raise ValidationError(f"Unknown category: {args[2]}")
    name = " ".join(args[3:]) or category_label(category)
    return Transaction(
        id=None,
        user_id=user_id,
        name=name,
        amount=amount,
        kind=kind,
        category=category,
        occurred_at=now or datetime.now(),
    )


@router.message(Command("add"))
async def cmd_add(message: Message):
    user_id = user_key(message)
    try:
        transaction = parse_add_args(command_args(message), user_id)
    except ValidationError as exc:
        await message.answer(f"{exc}.\n{USAGE}{get_categories_str()}")
        return

    tx_id = await save_transaction(transaction)
    base = await get_base_currency(user_id)
    logger.info("Transaction saved", extra={"user_id": user_id, "handler": "add"})
    await message.answer(
        f"{KIND_ICONS[transaction.kind]} #{tx_id} {transaction.name}: "
        f"{format_amount(transaction.amount, base)} ({category_label(transaction.category)})"
    )


@router.message(Command("recent"))
async def cmd_recent(message: Message):
    user_id = user_key(message)
    transactions = await recent_transactions(user_id)
    if not transactions:
        await message.answer("No transactions yet. Use /add to log one.")
        return
    base = await get_base_currency(user_id)
    lines = [
        f"{KIND_ICONS[t.kind]} {t.occurred_at:%d/%m} {t.name}: {format_amount(t.amount, base)}"
        f" ({category_label(t.category)})"
        for t in transactions
    ]
    await message.answer("Recent transactions:\n\n" + "\n".join(lines))


@router.message(Command("undo"))
async def cmd_undo(message: Message):
    user_id = user_key(message)
    deleted = await delete_last_transaction(user_id)
    if not deleted:
        await message.answer("No transactions to undo.")
        return
    base = await get_base_currency(user_id)
    await message.answer(
        f"Removed: {deleted.name} {format_amount(deleted.amount, base)} ({deleted.occurred_at:%Y-%m-%d})"
    )
