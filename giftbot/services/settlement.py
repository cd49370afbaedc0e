import enum
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from giftbot.db import insert_for
from giftbot.models.transaction import GiftTransaction, TransactionStatus
from giftbot.schemas import PaymentCompletedEvent
from giftbot.services.catalog import GiftCatalog
from giftbot.services.notifications import Notifier
from giftbot.services.users import UserDirectory, PENDING_GIFTS, TRANSACTIONS
from giftbot.utils.generate_code import generate_object_id

logger = logging.getLogger(__name__)


class SettlementOutcome(str, enum.Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    GIFT_NOT_FOUND = "gift_not_found"
    SOLD_OUT = "sold_out"


@dataclass
class SettlementResult:
    outcome: SettlementOutcome
    payment_id: int
    transaction_id: str | None = None
    which: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (SettlementOutcome.SETTLED, SettlementOutcome.ALREADY_SETTLED)


class SettlementService:
    """
    Превращает оплаченный инвойс в COMPLETED-транзакцию, резерв экземпляра
    подарка и pending-подарок у покупателя. Безопасен при повторной доставке:
    ключ идемпотентности: payment_id.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], notifier: Notifier):
        self.session_factory = session_factory
        self.notifier = notifier

    async def settle(self, event: PaymentCompletedEvent) -> SettlementResult:
        async with self.session_factory() as session:
            # 1. Уже обработан?
            if await self._find_completed(session, event.payment_id):
                logger.info("Payment %s already settled", event.payment_id)
                return SettlementResult(SettlementOutcome.ALREADY_SETTLED, event.payment_id)

            # 2. Подарок и предварительная проверка ёмкости
            gift = await GiftCatalog.get(session, event.gift_id)
            if gift is None:
                logger.warning("Payment %s: gift %s not found", event.payment_id, event.gift_id)
                return SettlementResult(SettlementOutcome.GIFT_NOT_FOUND, event.payment_id)
            if gift.sold >= gift.total_available:
                logger.warning("Payment %s: gift %s sold out", event.payment_id, gift.id)
                return SettlementResult(SettlementOutcome.SOLD_OUT, event.payment_id)
            gift_name = gift.name

            # 3. Upsert транзакции по payment_id
            transaction_id = await self._upsert_completed(session, event, gift)
            if transaction_id is None:
                # параллельная доставка того же вебхука успела раньше
                await session.rollback()
                logger.info("Payment %s settled concurrently", event.payment_id)
                return SettlementResult(SettlementOutcome.ALREADY_SETTLED, event.payment_id)

            # 4. Резерв экземпляра с условием sold < total_available
            which = await GiftCatalog.reserve_unit(session, gift.id)
            if which is None:
                # проиграли гонку за последний экземпляр: транзакция не должна остаться COMPLETED
                await session.rollback()
                logger.warning("Payment %s: lost the race for gift %s, rolled back", event.payment_id, gift.id)
                return SettlementResult(SettlementOutcome.SOLD_OUT, event.payment_id)

            await session.execute(
                update(GiftTransaction)
                .where(GiftTransaction.id == transaction_id)
                .values(which=which)
                .execution_options(synchronize_session=False)
            )

            # 5. Pending-подарок покупателю
            await UserDirectory.ensure(session, event.buyer_id, event.buyer_first_name)
            await UserDirectory.add_to_sets(session, event.buyer_id, transaction_id, PENDING_GIFTS, TRANSACTIONS)

            await session.commit()

        logger.info(
            "Payment %s settled: transaction %s, gift %s #%s, buyer %s",
            event.payment_id, transaction_id, event.gift_id, which, event.buyer_id,
        )

        # 6. Уведомление, результат расчёта от него не зависит
        self.notifier.gift_purchased(event.buyer_id, gift_name)

        return SettlementResult(SettlementOutcome.SETTLED, event.payment_id, transaction_id, which)

    @staticmethod
    async def _find_completed(session: AsyncSession, payment_id: int) -> str | None:
        result = await session.execute(
            select(GiftTransaction.id).where(
                GiftTransaction.payment_id == payment_id,
                GiftTransaction.status == TransactionStatus.COMPLETED,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _upsert_completed(session: AsyncSession, event: PaymentCompletedEvent, gift) -> str | None:
        """
        Создаёт или переводит в COMPLETED транзакцию с данным payment_id.
        Уже COMPLETED запись не трогается, тогда возвращается None.
        """
        values = {
            "gift_id": gift.id,
            "sender_id": event.buyer_id,
            "receiver_id": None,
            "status": TransactionStatus.COMPLETED,
            "price": gift.price,
            "currency": gift.currency,
            "created_at": event.paid_at,
            "updated_at": event.paid_at,
        }
        stmt = insert_for(session, GiftTransaction).values(
            id=generate_object_id(),
            payment_id=event.payment_id,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["payment_id"],
            set_=values,
            where=GiftTransaction.status != TransactionStatus.COMPLETED,
        ).returning(GiftTransaction.id)

        result = await session.execute(stmt)
        return result.scalar_one_or_none()
