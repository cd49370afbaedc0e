from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from giftbot.models.gift import Currency
from giftbot.models.transaction import TransactionStatus


class ApiModel(BaseModel):
    # наружу отдаём camelCase, как ждёт мини-приложение
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class GiftOut(ApiModel):
    id: str
    name: str
    slug: str
    price: Decimal
    currency: Currency
    total_available: int
    sold: int
    color: str
    pattern_id: str
    lottie_id: str


class UserProfile(ApiModel):
    telegram_id: int
    username: str | None = None
    first_name: str
    last_name: str | None = None
    is_premium: bool = False
    total_gifts_count: int = 0


class TransactionView(ApiModel):
    """Транзакция вместе с подарком и публичными профилями участников."""
    id: str
    gift: GiftOut
    sender_id: int
    receiver_id: int | None
    status: TransactionStatus
    payment_id: int
    price: Decimal
    currency: Currency
    which: int | None = None
    created_at: datetime
    updated_at: datetime
    sender: UserProfile | None = None
    receiver: UserProfile | None = None


class InvoiceOut(ApiModel):
    payment_url: str
    web_app_url: str
    mini_app_url: str
    payment_id: int


class InvoiceStatus(ApiModel):
    status: TransactionStatus
    price: Decimal
    currency: Currency
    created_at: datetime
    updated_at: datetime


# --- Crypto Pay ---

class CryptoPayInvoice(BaseModel):
    invoice_id: int
    status: str | None = None
    hash: str | None = None
    amount: str | None = None
    asset: str | None = None
    bot_invoice_url: str | None = None
    web_app_invoice_url: str | None = None
    mini_app_invoice_url: str | None = None
    payload: str | None = None
    paid_at: datetime | None = None


class CryptoPayUpdate(BaseModel):
    update_id: int
    update_type: str
    request_date: datetime
    payload: CryptoPayInvoice


class GiftInvoicePayload(BaseModel):
    """Payload, который мы кладём в инвойс и получаем обратно в вебхуке."""
    model_config = ConfigDict(populate_by_name=True)

    gift_id: str = Field(alias="giftId")
    user_id: int = Field(alias="userId")
    first_name: str | None = Field(default=None, alias="firstName")


class PaymentCompletedEvent(BaseModel):
    payment_id: int
    paid_at: datetime
    gift_id: str
    buyer_id: int
    buyer_first_name: str | None = None
