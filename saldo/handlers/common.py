import logging
from collections import defaultdict, deque
from datetime import UTC, datetime

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from saldo.assistant.gateway import chat, get_gateway
from saldo.currency import CURRENCY_SYMBOLS, set_base_currency
from saldo.db.models import ChatMessage

logger = logging.getLogger(__name__)
router = Router()

HISTORY_SIZE = 10

_histories: dict[int, deque[ChatMessage]] = defaultdict(lambda: deque(maxlen=HISTORY_SIZE))


def user_key(message: Message) -> str:
    """Owner id for every record created from this message."""
    if message.from_user is not None:
        return str(message.from_user.id)
    return str(message.chat.id)


def command_args(message: Message, maxsplit: int = -1) -> list[str]:
    parts = message.text.split(maxsplit=maxsplit) if message.text else []
    return parts[1:]


@router.message(Command("start"))
async def cmd_start(message: Message):
    await message.answer(
        "Welcome to Saldo — your personal finance assistant!\n\n"
        "Log what comes in and goes out:\n"
        "  /add expense 42.90 food Lunch\n"
        "  /add income 3000 salary\n\n"
        "Then ask for /insights or a /projection of your month.\n"
        'You can also just ask: "how much have I spent?"\n\n'
        "Type /help for all commands."
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(
        "Transactions:\n"
        "  /add <expense|income|investment> <amount> <category> [name]\n"
        "  /recent — latest transactions\n"
        "  /undo — remove the last transaction\n\n"
        "Reports:\n"
        "  /insights [week|month|YYYY-MM] — insights with chart\n"
        "  /projection [YYYY-MM] — projected balance\n"
        "  /trend — income vs expenses, last 6 months\n\n"
        "Obligations:\n"
        "  /subs, /addsub <name> <amount> [YYYY-MM-DD], /removesub <name>\n"
        "  /fixed, /addfixed <amount> <daily|weekly|monthly> <name>, /removefixed <name>\n\n"
        "Limits:\n"
        "  /limits, /setlimit [category] <amount>, /removelimit [category]\n\n"
        "Setup:\n"
        "  /setcurrency <code>\n\n"
        "Anything else you type goes to the assistant."
    )


@router.message(Command("setcurrency"))
async def cmd_setcurrency(message: Message):
    args = command_args(message)
    if not args:
        await message.answer("Usage: /setcurrency BRL")
        return
    code = args[0].upper()
    if code not in CURRENCY_SYMBOLS:
        await message.answer(f"Unsupported currency. Use one of: {', '.join(CURRENCY_SYMBOLS)}")
        return
    await set_base_currency(user_key(message), code)
    await message.answer(f"Base currency set to {code}.")


@router.message(F.text & ~F.text.startswith("/"))
async def handle_chat(message: Message):
    history = _histories[message.chat.id]
    response = await chat(get_gateway(), message.text, user_key(message), list(history))
    if not response.ok:
        await message.answer(response.error or "Sorry, I didn't get that.")
        return

    history.append(ChatMessage(role="user", content=message.text, timestamp=datetime.now(UTC)))
    history.append(response.message)
    logger.debug(
        "Chat answered",
        extra={"chat_id": message.chat.id, "handler": "chat", "provider": response.message.metadata.get("source")},
    )
    await message.answer(response.message.content)
