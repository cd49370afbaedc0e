from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from giftbot.models.transaction import GiftTransaction
from giftbot.models.users import User
from giftbot.schemas import GiftOut, TransactionView, UserProfile


async def load_transaction(session: AsyncSession, transaction_id: str) -> GiftTransaction | None:
    """Свежее чтение транзакции вместе с подарком, мимо identity map."""
    result = await session.execute(
        select(GiftTransaction)
        .where(GiftTransaction.id == transaction_id)
        .options(selectinload(GiftTransaction.gift))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_transaction_view(session: AsyncSession, transaction_id: str) -> TransactionView | None:
    tx = await load_transaction(session, transaction_id)
    if tx is None:
        return None

    user_ids = [tx.sender_id] + ([tx.receiver_id] if tx.is_claimed else [])
    result = await session.execute(
        select(User).where(User.telegram_id.in_(user_ids)).execution_options(populate_existing=True)
    )
    users = {user.telegram_id: user for user in result.scalars().all()}

    sender = users.get(tx.sender_id)
    receiver = users.get(tx.receiver_id) if tx.is_claimed else None

    return TransactionView(
        id=tx.id,
        gift=GiftOut.model_validate(tx.gift),
        sender_id=tx.sender_id,
        receiver_id=tx.receiver_id,
        status=tx.status,
        payment_id=tx.payment_id,
        price=tx.price,
        currency=tx.currency,
        which=tx.which,
        created_at=tx.created_at,
        updated_at=tx.updated_at,
        sender=UserProfile.model_validate(sender) if sender else None,
        receiver=UserProfile.model_validate(receiver) if receiver else None,
    )
