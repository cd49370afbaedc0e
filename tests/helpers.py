import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import urlencode

from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage

from giftbot.schemas import CryptoPayInvoice
from giftbot.services.webhook import compute_signature

BOT_TOKEN = "123456:TEST-TOKEN"
API_KEY = "cryptopay-test-key"
WEBAPP_URL = "https://t.me/giftbot/app"


@dataclass
class SentMessage:
    chat_id: int
    text: str
    reply_markup: object = None


class FakeBot:
    """Вместо aiogram.Bot: копит отправленные сообщения, умеет «блокировать» чаты."""

    def __init__(self):
        self.sent: list[SentMessage] = []
        self.blocked: set[int] = set()

    async def send_message(self, chat_id, text, parse_mode=None, reply_markup=None, **kwargs):
        if chat_id in self.blocked:
            raise TelegramForbiddenError(
                method=SendMessage(chat_id=chat_id, text=text),
                message="Forbidden: bot was blocked by the user",
            )
        self.sent.append(SentMessage(chat_id, text, reply_markup))

    def messages_to(self, chat_id: int) -> list[SentMessage]:
        return [m for m in self.sent if m.chat_id == chat_id]


@dataclass
class FakeCryptoPay:
    next_invoice_id: int = 1000
    calls: list[dict] = field(default_factory=list)

    async def create_invoice(self, asset, amount, description, payload, expires_in=3600):
        self.calls.append({"asset": asset, "amount": amount, "description": description, "payload": payload})
        invoice_id = self.next_invoice_id
        self.next_invoice_id += 1
        return CryptoPayInvoice(
            invoice_id=invoice_id,
            status="active",
            bot_invoice_url=f"https://t.me/CryptoBot?start=IV{invoice_id}",
            web_app_invoice_url=f"https://app.send.tg/invoices/IV{invoice_id}",
            mini_app_invoice_url=f"https://t.me/CryptoBot/app?startapp=invoice-IV{invoice_id}",
            payload=payload,
        )

    async def close(self):
        pass


def make_init_data(user: dict, token: str = BOT_TOKEN, auth_date: int | None = None) -> str:
    """initData мини-приложения с корректной подписью для данного токена бота."""
    fields = {
        "auth_date": str(auth_date or int(time.time())),
        "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
        "user": json.dumps(user, separators=(",", ":")),
    }
    data_check_string = "\n".join(f"{k}={v}" for k, v in sorted(fields.items()))
    secret = hmac.new(b"WebAppData", token.encode(), hashlib.sha256).digest()
    fields["hash"] = hmac.new(secret, data_check_string.encode(), hashlib.sha256).hexdigest()
    return urlencode(fields)


def auth_headers(user_id: int, first_name: str = "Alice", username: str | None = None) -> dict:
    user = {"id": user_id, "first_name": first_name}
    if username:
        user["username"] = username
    return {"Authorization": f"TelegramWebApp {make_init_data(user)}"}


def make_webhook_body(
    invoice_id: int,
    gift_id: str,
    user_id: int,
    update_type: str = "invoice_paid",
    request_date: datetime | None = None,
) -> bytes:
    now = request_date or datetime.now(timezone.utc)
    body = {
        "update_id": invoice_id,
        "update_type": update_type,
        "request_date": now.isoformat(),
        "payload": {
            "invoice_id": invoice_id,
            "hash": f"IV{invoice_id}",
            "status": "paid",
            "asset": "USDT",
            "amount": "1.5",
            "paid_at": now.isoformat(),
            "payload": json.dumps({"giftId": gift_id, "userId": user_id}),
        },
    }
    return json.dumps(body).encode()


def sign(raw_body: bytes, api_key: str = API_KEY) -> dict:
    return {"crypto-pay-api-signature": compute_signature(raw_body, api_key)}
