from decimal import Decimal
from datetime import datetime, timezone
import itertools

import pytest
import pytest_asyncio

from giftbot.config import Settings
from giftbot.context import AppContext
from giftbot.db import create_engine, create_session_factory, init_models
from giftbot.models.gift import Currency
from giftbot.schemas import PaymentCompletedEvent
from giftbot.services.catalog import GiftCatalog
from giftbot.services.notifications import Notifier

from tests.helpers import API_KEY, BOT_TOKEN, WEBAPP_URL, FakeBot, FakeCryptoPay


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        bot_token=BOT_TOKEN,
        db_dsn=f"sqlite+aiosqlite:///{tmp_path / 'giftbot.db'}",
        webapp_url=WEBAPP_URL,
        cryptopay_api_key=API_KEY,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_engine(settings.db_dsn)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def bot() -> FakeBot:
    return FakeBot()


@pytest.fixture
def cryptopay() -> FakeCryptoPay:
    return FakeCryptoPay()


@pytest_asyncio.fixture
async def ctx(settings, session_factory, bot, cryptopay):
    ctx = AppContext(
        settings=settings,
        session_factory=session_factory,
        notifier=Notifier(bot, WEBAPP_URL, rate=1000, chat_rate=1000),
        cryptopay=cryptopay,
    )
    yield ctx
    await ctx.close()


@pytest.fixture
def make_gift(session_factory):
    counter = itertools.count(1)

    async def factory(total_available: int = 5, sold: int = 0, name: str = "Delicious Cake", **fields):
        n = next(counter)
        async with session_factory() as session:
            gift = await GiftCatalog.create(
                session,
                name=name,
                slug=fields.pop("slug", f"gift-{n}"),
                price=fields.pop("price", Decimal("1.5")),
                currency=fields.pop("currency", Currency.USDT),
                total_available=total_available,
                color=fields.pop("color", "#FE9F41"),
                pattern_id=fields.pop("pattern_id", "pattern-cake"),
                lottie_id=fields.pop("lottie_id", "lottie-cake"),
                **fields,
            )
            if sold:
                gift.sold = sold
                await session.commit()
            return gift

    return factory


@pytest.fixture
def payment():
    def factory(payment_id: int, gift_id: str, buyer_id: int) -> PaymentCompletedEvent:
        return PaymentCompletedEvent(
            payment_id=payment_id,
            paid_at=datetime.now(timezone.utc),
            gift_id=gift_id,
            buyer_id=buyer_id,
            buyer_first_name=f"user{buyer_id}",
        )

    return factory
