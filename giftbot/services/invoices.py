import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from giftbot.exceptions import GiftNotFound, TransactionNotFound
from giftbot.models.transaction import GiftTransaction, TransactionStatus
from giftbot.schemas import GiftInvoicePayload, InvoiceOut, InvoiceStatus
from giftbot.services.catalog import GiftCatalog
from giftbot.services.cryptopay import CryptoPayClient
from giftbot.services.users import UserDirectory, TRANSACTIONS

logger = logging.getLogger(__name__)


class InvoiceService:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cryptopay: CryptoPayClient,
        expires_in: int = 3600,
    ):
        self.session_factory = session_factory
        self.cryptopay = cryptopay
        self.expires_in = expires_in

    async def create_for_gift(self, gift_id: str, buyer_id: int, buyer_first_name: str | None = None) -> InvoiceOut:
        """Инвойс на покупку подарка + PENDING-транзакция под его invoice_id."""
        async with self.session_factory() as session:
            gift = await GiftCatalog.get(session, gift_id)
            if gift is None:
                raise GiftNotFound()
            price, currency, name = gift.price, gift.currency, gift.name
            # не держим транзакцию БД открытой на время запроса к провайдеру
            await session.rollback()

            payload = GiftInvoicePayload(gift_id=gift_id, user_id=buyer_id, first_name=buyer_first_name)
            invoice = await self.cryptopay.create_invoice(
                asset=currency.value,
                amount=format(price.normalize(), "f"),
                description=f"Purchasing a {name} gift",
                payload=payload.model_dump_json(by_alias=True, exclude_none=True),
                expires_in=self.expires_in,
            )

            now = datetime.now(timezone.utc)
            tx = GiftTransaction(
                gift_id=gift_id,
                sender_id=buyer_id,
                receiver_id=None,
                status=TransactionStatus.PENDING,
                payment_id=invoice.invoice_id,
                price=price,
                currency=currency,
                created_at=now,
                updated_at=now,
            )
            session.add(tx)
            await session.flush()

            await UserDirectory.ensure(session, buyer_id, buyer_first_name)
            await UserDirectory.add_to_sets(session, buyer_id, tx.id, TRANSACTIONS)
            await session.commit()

        logger.info("Invoice %s created for gift %s, buyer %s", invoice.invoice_id, gift_id, buyer_id)

        return InvoiceOut(
            payment_url=invoice.bot_invoice_url or "",
            web_app_url=invoice.web_app_invoice_url or "",
            mini_app_url=invoice.mini_app_invoice_url or "",
            payment_id=invoice.invoice_id,
        )

    async def status(self, invoice_id: int, buyer_id: int) -> InvoiceStatus:
        async with self.session_factory() as session:
            result = await session.execute(
                select(GiftTransaction).where(
                    GiftTransaction.payment_id == invoice_id,
                    GiftTransaction.sender_id == buyer_id,
                )
            )
            tx = result.scalar_one_or_none()
            if tx is None:
                raise TransactionNotFound()
            return InvoiceStatus.model_validate(tx)
