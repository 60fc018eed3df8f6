import asyncio
import json
import logging
import time
from collections import defaultdict

from aiogram import Bot, Dispatcher
from aiogram.types import CallbackQuery, Message

from saldo.config import settings
from saldo.db.database import close_db, get_db, init_db
from saldo.handlers import (
    common,
    fixed_costs,
    insights,
    limits,
    projection,
    subscriptions,
    transactions,
)
from saldo.logging import setup_logging

setup_logging(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

_rate_limit_windows: dict[str, list[float]] = defaultdict(list)


def check_rate_limit(user_id: str) -> bool:
    now = time.monotonic()
    window = _rate_limit_windows[user_id]
    cutoff = now - 3600
    _rate_limit_windows[user_id] = [t for t in window if t > cutoff]
    return len(_rate_limit_windows[user_id]) < settings.rate_limit_per_hour


def record_rate_limit(user_id: str) -> None:
    _rate_limit_windows[user_id].append(time.monotonic())


async def auth_middleware(handler, event, data: dict):
    chat = event.chat if isinstance(event, Message) else getattr(event.message, "chat", None)
    if settings.allowed_chat_ids and (chat is None or chat.id not in settings.allowed_chat_ids):
        logger.warning("Unauthorized access", extra={"chat_id": chat.id if chat else None})
        return
    return await handler(event, data)


async def error_boundary_middleware(handler, event, data: dict):
    try:
        return await handler(event, data)
    except Exception:
        chat = event.chat if isinstance(event, Message) else getattr(event.message, "chat", None)
        chat_id = chat.id if chat else None
        logger.error("Handler error", exc_info=True, extra={"chat_id": chat_id})
        try:
            if isinstance(event, Message):
                await event.answer("Something went wrong. Please try again.")
            elif isinstance(event, CallbackQuery):
                await event.answer("Something went wrong.", show_alert=True)
        except Exception:
            logger.error("Failed to send error message", exc_info=True, extra={"chat_id": chat_id})


def _provider_status() -> str:
    from saldo.assistant.gateway import get_gateway

    return get_gateway().provider.name


async def _health_check(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
    await reader.read(4096)
    checks: dict[str, str] = {}
    try:
        db = await get_db()
        await db.execute("SELECT 1")
        checks["db"] = "ok"
    except Exception as e:
        checks["db"] = f"error: {e}"
    checks["completion_provider"] = _provider_status()
    healthy = checks["db"] == "ok"
    body = json.dumps({"status": "healthy" if healthy else "unhealthy", "checks": checks})
    status = "200 OK" if healthy else "503 Service Unavailable"
    response = f"HTTP/1.1 {status}\r\nContent-Type: application/json\r\nContent-Length: {len(body)}\r\n\r\n{body}"
    writer.write(response.encode())
    await writer.drain()
    writer.close()
    await writer.wait_closed()


async def main():
    await init_db()

    bot = Bot(token=settings.telegram_bot_token)
    dp = Dispatcher()

    dp.message.outer_middleware(error_boundary_middleware)
    dp.callback_query.outer_middleware(error_boundary_middleware)
    dp.message.middleware(auth_middleware)
    dp.callback_query.middleware(auth_middleware)

    dp.include_router(transactions.router)
    dp.include_router(insights.router)
    dp.include_router(projection.router)
    dp.include_router(subscriptions.router)
    dp.include_router(fixed_costs.router)
    dp.include_router(limits.router)
    dp.include_router(common.router)

    health_server = await asyncio.start_server(_health_check, "0.0.0.0", settings.health_check_port)
    logger.info("Health check listening on :%d", settings.health_check_port)

    logger.info("Starting Saldo bot (completion provider: %s)", _provider_status())
    try:
        await dp.start_polling(bot)
    finally:
        logger.info("Shutting down gracefully...")
        health_server.close()
        await health_server.wait_closed()
        await close_db()
        logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
