import logging

from aiogram import Router
from aiogram.types import InlineQuery, InlineQueryResultArticle, InputTextMessageContent
from sqlalchemy.ext.asyncio import AsyncSession

from giftbot.context import AppContext
from giftbot.services.share import lookup_share
from giftbot.utils.keyboards import receive_gift_keyboard

logger = logging.getLogger(__name__)

router = Router()


@router.inline_query()
async def share_gift(inline_query: InlineQuery, session: AsyncSession, ctx: AppContext):
    """Inline-режим: токен транзакции → карточка «Send Gift» со ссылкой на получение."""
    preview = await lookup_share(
        session,
        inline_query.query.strip(),
        inline_query.from_user.id,
        ctx.settings.webapp_url,
    )
    if preview is None:
        await inline_query.answer([], cache_time=0, is_personal=True)
        return

    article = InlineQueryResultArticle(
        id=preview.transaction_id,
        title="Send Gift",
        description=f"Send a gift of {preview.gift_name}",
        input_message_content=InputTextMessageContent(
            message_text="🎁 I have a <b>gift</b> for you! Tap the button below to open it.",
            parse_mode="HTML",
        ),
        reply_markup=receive_gift_keyboard(preview.claim_link),
    )
    await inline_query.answer([article], cache_time=0, is_personal=True)
