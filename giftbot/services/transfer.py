import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from giftbot.exceptions import TransactionNotFound
from giftbot.models.transaction import GiftTransaction, TransactionStatus
from giftbot.schemas import TransactionView
from giftbot.services.notifications import Notifier
from giftbot.services.users import UserDirectory, GIFTS, PENDING_GIFTS, TRANSACTIONS
from giftbot.services.views import load_transaction_view

logger = logging.getLogger(__name__)


class ClaimOutcome(str, enum.Enum):
    CLAIMED = "claimed"
    ALREADY_CLAIMED = "already_claimed"


@dataclass
class ClaimResult:
    outcome: ClaimOutcome
    transaction: TransactionView


class TransferService:
    """
    Передача подарка по ссылке. Первый успешный claim привязывает получателя
    ровно один раз, все последующие открытия ссылки только читают.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], notifier: Notifier):
        self.session_factory = session_factory
        self.notifier = notifier

    async def claim(self, transaction_id: str, expected_sender_id: int, claiming_user_id: int) -> ClaimResult:
        async with self.session_factory() as session:
            result = await session.execute(
                select(GiftTransaction.receiver_id).where(
                    GiftTransaction.id == transaction_id,
                    GiftTransaction.sender_id == expected_sender_id,
                    GiftTransaction.status == TransactionStatus.COMPLETED,
                )
            )
            row = result.one_or_none()
            if row is None:
                raise TransactionNotFound()

            if row.receiver_id is not None:
                return await self._read(session, transaction_id)

            if not await self._bind_receiver(session, transaction_id, claiming_user_id):
                # другой claim успел первым
                logger.info("Transaction %s was claimed concurrently", transaction_id)
                await session.rollback()
                return await self._read(session, transaction_id)

            await UserDirectory.ensure(session, claiming_user_id)
            await UserDirectory.add_to_sets(session, claiming_user_id, transaction_id, GIFTS, TRANSACTIONS)
            await UserDirectory.recount_gifts(session, claiming_user_id)
            await UserDirectory.remove_from_set(session, PENDING_GIFTS, expected_sender_id, transaction_id)
            await session.commit()

            view = await load_transaction_view(session, transaction_id)
            sender = await UserDirectory.get(session, expected_sender_id)
            receiver = await UserDirectory.get(session, claiming_user_id)

        logger.info("Transaction %s claimed by %s from %s", transaction_id, claiming_user_id, expected_sender_id)

        self.notifier.gift_received(claiming_user_id, view.gift.name, sender)
        self.notifier.gift_delivered(expected_sender_id, view.gift.name, receiver)

        return ClaimResult(ClaimOutcome.CLAIMED, view)

    @staticmethod
    async def _bind_receiver(session: AsyncSession, transaction_id: str, claiming_user_id: int) -> bool:
        """receiver_id := claimer только если он всё ещё NULL."""
        result = await session.execute(
            update(GiftTransaction)
            .where(
                GiftTransaction.id == transaction_id,
                GiftTransaction.receiver_id.is_(None),
                GiftTransaction.status == TransactionStatus.COMPLETED,
            )
            .values(receiver_id=claiming_user_id, updated_at=datetime.now(timezone.utc))
            .returning(GiftTransaction.id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def _read(session: AsyncSession, transaction_id: str) -> ClaimResult:
        view = await load_transaction_view(session, transaction_id)
        return ClaimResult(ClaimOutcome.ALREADY_CLAIMED, view)
