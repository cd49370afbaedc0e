# Наборы транзакций пользователя. Составной первичный ключ делает
# повторное добавление no-op (INSERT ... ON CONFLICT DO NOTHING).
from sqlalchemy import Column, BigInteger, Text, TIMESTAMP, ForeignKey, func

from giftbot.db import Base


class UserGiftLink(Base):
    """Подарки, которыми пользователь владеет (claim завершён)."""
    __tablename__ = "user_gifts"

    user_id = Column(BigInteger, ForeignKey("users.telegram_id", ondelete="CASCADE"), primary_key=True)
    transaction_id = Column(Text, ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class UserPendingGiftLink(Base):
    """Купленные пользователем подарки, которые ещё никто не забрал."""
    __tablename__ = "user_pending_gifts"

    user_id = Column(BigInteger, ForeignKey("users.telegram_id", ondelete="CASCADE"), primary_key=True)
    transaction_id = Column(Text, ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class UserTransactionLink(Base):
    """Все транзакции, где пользователь отправитель или получатель."""
    __tablename__ = "user_transactions"

    user_id = Column(BigInteger, ForeignKey("users.telegram_id", ondelete="CASCADE"), primary_key=True)
    transaction_id = Column(Text, ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
