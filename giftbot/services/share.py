import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from giftbot.services.users import UserDirectory, TRANSACTIONS
from giftbot.services.views import load_transaction
from giftbot.utils.generate_code import decode_share_token
from giftbot.utils.keyboards import build_claim_link

logger = logging.getLogger(__name__)


@dataclass
class SharePreview:
    transaction_id: str
    sender_id: int
    gift_name: str
    claim_link: str


async def lookup_share(session: AsyncSession, token: str, sender_id: int, webapp_url: str) -> SharePreview | None:
    """
    Токен из inline-запроса → ссылка на получение подарка.
    Любой неподходящий ввод даёт None, исключения наружу не выходят.
    """
    transaction_id = decode_share_token(token)
    if transaction_id is None:
        logger.debug("Malformed share token %r", token)
        return None

    # делиться можно только своей транзакцией
    if not await UserDirectory.has_member(session, TRANSACTIONS, sender_id, transaction_id):
        logger.debug("Transaction %s does not belong to %s", transaction_id, sender_id)
        return None

    tx = await load_transaction(session, transaction_id)
    if tx is None or tx.gift is None:
        return None

    return SharePreview(
        transaction_id=tx.id,
        sender_id=sender_id,
        gift_name=tx.gift.name,
        claim_link=build_claim_link(webapp_url, tx.id, sender_id),
    )
