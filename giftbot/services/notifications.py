import asyncio
import logging
from collections import defaultdict

from aiogram import Bot, html
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardMarkup
from aiolimiter import AsyncLimiter

from giftbot.models.users import User
from giftbot.utils.keyboards import open_gift_keyboard

logger = logging.getLogger(__name__)


def display_name(user: User | None, fallback: str = "the user") -> str:
    """Имя пользователя для HTML-сообщения, со ссылкой на профиль если есть username."""
    if user is None:
        return fallback
    name = html.quote(user.first_name or fallback)
    if user.username:
        return html.link(name, f"https://t.me/{user.username}")
    return name


class Notifier:
    """
    Канал уведомлений поверх Bot.send_message.
    Отправка не блокирует вызывающего: каждое сообщение отправляется отдельной задачей,
    ошибки только логируются.

    Учитывает:
    1. Глобальный лимит бота (25/сек)
    2. Лимит на чат (1/сек)
    """

    def __init__(self, bot: Bot, webapp_url: str, rate: int = 25, time_period: int = 1, chat_rate: int = 1):
        self.bot = bot
        self.webapp_url = webapp_url
        self.global_limiter = AsyncLimiter(rate, time_period)
        self.chat_limiters: dict[int, AsyncLimiter] = defaultdict(lambda: AsyncLimiter(chat_rate, time_period))
        self._tasks: set[asyncio.Task] = set()

    def dispatch(self, chat_id: int, text: str, reply_markup: InlineKeyboardMarkup | None = None) -> asyncio.Task:
        task = asyncio.create_task(self._send(chat_id, text, reply_markup))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send(self, chat_id: int, text: str, reply_markup: InlineKeyboardMarkup | None) -> bool:
        try:
            async with self.global_limiter:
                async with self.chat_limiters[chat_id]:
                    await self.bot.send_message(chat_id, text, parse_mode="HTML", reply_markup=reply_markup)
        except (TelegramAPIError, asyncio.TimeoutError) as e:
            logger.warning("Failed to send notification to %s: %s", chat_id, e)
            return False
        except Exception:
            logger.warning("Unexpected error sending notification to %s", chat_id, exc_info=True)
            return False
        return True

    async def drain(self) -> None:
        """Дожидается всех отправок в полёте (остановка процесса, тесты)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- Сообщения ---

    def gift_purchased(self, buyer_id: int, gift_name: str) -> asyncio.Task:
        return self.dispatch(
            buyer_id,
            f"The {html.bold(html.quote(gift_name))} has been purchased successfully! 🎉",
            open_gift_keyboard(self.webapp_url),
        )

    def gift_received(self, receiver_id: int, gift_name: str, sender: User | None) -> asyncio.Task:
        return self.dispatch(
            receiver_id,
            f"You got the gift {html.bold(html.quote(gift_name))} from {html.bold(display_name(sender, 'a friend'))}! 🎉",
            open_gift_keyboard(self.webapp_url),
        )

    def gift_delivered(self, sender_id: int, gift_name: str, receiver: User | None) -> asyncio.Task:
        return self.dispatch(
            sender_id,
            f"Your gift {html.bold(html.quote(gift_name))} to {html.bold(display_name(receiver))} is successfully delivered! 🎉",
        )
