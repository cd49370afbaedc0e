import enum
import re

from sqlalchemy import Column, Text, Integer, Numeric, Enum, TIMESTAMP, CheckConstraint, func
from sqlalchemy.orm import validates

from giftbot.db import Base
from giftbot.utils.generate_code import generate_object_id

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")


class Currency(str, enum.Enum):
    USDT = "USDT"
    TON = "TON"
    ETH = "ETH"
    BTC = "BTC"
    USD = "USD"


class Gift(Base):
    __tablename__ = "gifts"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_gifts_price"),
        CheckConstraint("total_available >= 0", name="ck_gifts_total_available"),
        CheckConstraint("sold >= 0 AND sold <= total_available", name="ck_gifts_sold"),
    )

    id = Column(Text, primary_key=True, default=generate_object_id)
    name = Column(Text, nullable=False, index=True)
    slug = Column(Text, unique=True, nullable=False)
    price = Column(Numeric(20, 8), nullable=False)
    currency = Column(Enum(Currency, native_enum=False, length=8, name="currency"), nullable=False)

    # ёмкость и счётчик продаж; sold меняет только расчёт по вебхуку
    total_available = Column(Integer, nullable=False)
    sold = Column(Integer, nullable=False, default=0, server_default="0")

    color = Column(Text, nullable=False)
    pattern_id = Column(Text, nullable=False)
    lottie_id = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    @validates("slug")
    def _check_slug(self, key, value):
        if not SLUG_RE.fullmatch(value or ""):
            raise ValueError(f"invalid gift slug: {value!r}")
        return value

    @validates("color")
    def _check_color(self, key, value):
        if not COLOR_RE.fullmatch(value or ""):
            raise ValueError(f"invalid gift color: {value!r}")
        return value

    @property
    def remaining(self) -> int:
        return self.total_available - self.sold
