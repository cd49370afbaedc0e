from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message

from giftbot.context import AppContext
from giftbot.utils.keyboards import open_webapp_keyboard

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message, ctx: AppContext):
    await message.answer(
        "Welcome to the Gift Mini App! Use our webapp to send and receive gifts.",
        reply_markup=open_webapp_keyboard(ctx.settings.webapp_url),
    )
