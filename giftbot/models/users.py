from sqlalchemy import Column, BigInteger, Boolean, Integer, Text, TIMESTAMP, CheckConstraint, func

from giftbot.db import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("total_gifts_count >= 0", name="ck_users_total_gifts_count"),
    )

    telegram_id = Column(BigInteger, primary_key=True)
    username = Column(Text, nullable=True, index=True)
    first_name = Column(Text, nullable=False, default="Unknown")
    last_name = Column(Text, nullable=True)
    is_premium = Column(Boolean, nullable=False, default=False)

    # кэш размера набора gifts для рейтинга; пересчитывается, а не инкрементируется
    total_gifts_count = Column(Integer, nullable=False, default=0, server_default="0", index=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
