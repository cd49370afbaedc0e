import enum

from sqlalchemy import Column, BigInteger, Text, Integer, Numeric, Enum, TIMESTAMP, ForeignKey, Index, CheckConstraint, func
from sqlalchemy.orm import relationship

from giftbot.db import Base
from giftbot.models.gift import Currency
from giftbot.utils.generate_code import generate_object_id


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class GiftTransaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_transactions_price"),
        Index("ix_transactions_sender_status_created", "sender_id", "status", "created_at"),
        Index("ix_transactions_receiver_status_created", "receiver_id", "status", "created_at"),
        Index("ix_transactions_gift_created", "gift_id", "created_at"),
    )

    id = Column(Text, primary_key=True, default=generate_object_id)
    gift_id = Column(Text, ForeignKey("gifts.id"), nullable=False)

    # Telegram ID покупателя
    sender_id = Column(BigInteger, nullable=False)
    # Telegram ID получателя; NULL, пока подарок никто не забрал
    receiver_id = Column(BigInteger, nullable=True)

    status = Column(
        Enum(TransactionStatus, native_enum=False, length=16, name="transaction_status"),
        nullable=False,
        default=TransactionStatus.PENDING,
    )

    # invoice_id из Crypto Pay, ключ идемпотентности
    payment_id = Column(BigInteger, unique=True, nullable=False)

    # цена на момент продажи
    price = Column(Numeric(20, 8), nullable=False)
    currency = Column(Enum(Currency, native_enum=False, length=8, name="currency"), nullable=False)

    # порядковый номер проданного экземпляра
    which = Column(Integer, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    gift = relationship("Gift")

    @property
    def is_claimed(self) -> bool:
        return self.receiver_id is not None
