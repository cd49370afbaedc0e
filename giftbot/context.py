from dataclasses import dataclass, field

from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from giftbot.config import Settings
from giftbot.services.cryptopay import CryptoPayClient
from giftbot.services.invoices import InvoiceService
from giftbot.services.notifications import Notifier
from giftbot.services.settlement import SettlementService
from giftbot.services.transfer import TransferService


@dataclass
class AppContext:
    """Всё, что нужно обработчикам; создаётся один раз при старте процесса."""
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    notifier: Notifier
    cryptopay: CryptoPayClient
    settlement: SettlementService = field(init=False)
    transfer: TransferService = field(init=False)
    invoices: InvoiceService = field(init=False)

    def __post_init__(self):
        self.settlement = SettlementService(self.session_factory, self.notifier)
        self.transfer = TransferService(self.session_factory, self.notifier)
        self.invoices = InvoiceService(self.session_factory, self.cryptopay, self.settings.invoice_expires_in)

    async def close(self) -> None:
        await self.notifier.drain()
        await self.cryptopay.close()


def build_context(
    settings: Settings,
    bot: Bot,
    session_factory: async_sessionmaker[AsyncSession],
    cryptopay: CryptoPayClient | None = None,
) -> AppContext:
    return AppContext(
        settings=settings,
        session_factory=session_factory,
        notifier=Notifier(bot, settings.webapp_url),
        cryptopay=cryptopay or CryptoPayClient(settings.cryptopay_api_key, settings.cryptopay_api_endpoint),
    )
