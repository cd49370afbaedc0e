import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from giftbot.exceptions import AuthenticityFailure, InvalidUpdate, StaleEvent
from giftbot.schemas import CryptoPayUpdate, GiftInvoicePayload, PaymentCompletedEvent

logger = logging.getLogger(__name__)

INVOICE_PAID = "invoice_paid"


def compute_signature(raw_body: bytes, api_key: str) -> str:
    # ключ HMAC: sha256 от токена API
    secret = hashlib.sha256(api_key.encode()).digest()
    return hmac.new(secret, raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str | None, api_key: str) -> None:
    if not signature:
        raise AuthenticityFailure("Missing signature")
    if not hmac.compare_digest(compute_signature(raw_body, api_key), signature):
        raise AuthenticityFailure("Invalid signature")


def check_freshness(request_date: datetime, max_age: int, now: datetime | None = None) -> None:
    now = now or datetime.now(timezone.utc)
    if request_date.tzinfo is None:
        request_date = request_date.replace(tzinfo=timezone.utc)
    if (now - request_date).total_seconds() > max_age:
        raise StaleEvent()


def parse_update(raw_body: bytes) -> CryptoPayUpdate:
    try:
        return CryptoPayUpdate.model_validate_json(raw_body)
    except ValidationError as e:
        raise InvalidUpdate(f"Malformed update: {e.error_count()} error(s)") from e


def to_payment_event(update: CryptoPayUpdate) -> PaymentCompletedEvent:
    if update.update_type != INVOICE_PAID:
        raise InvalidUpdate()

    invoice = update.payload
    try:
        payload = GiftInvoicePayload.model_validate(json.loads(invoice.payload or ""))
    except (ValueError, ValidationError) as e:
        raise InvalidUpdate("Invalid invoice payload") from e

    return PaymentCompletedEvent(
        payment_id=invoice.invoice_id,
        paid_at=invoice.paid_at or update.request_date,
        gift_id=payload.gift_id,
        buyer_id=payload.user_id,
        buyer_first_name=payload.first_name,
    )


def verify_and_parse(raw_body: bytes, signature: str | None, api_key: str, max_age: int) -> PaymentCompletedEvent:
    """Подпись → свежесть → событие оплаты. До расчёта ничего не пишется."""
    verify_signature(raw_body, signature, api_key)
    update = parse_update(raw_body)
    check_freshness(update.request_date, max_age)
    return to_payment_event(update)
