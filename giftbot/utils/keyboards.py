from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def open_webapp_keyboard(webapp_url: str, text: str = "Open Webapp") -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text=text, url=webapp_url)]]
    )


def open_gift_keyboard(webapp_url: str) -> InlineKeyboardMarkup:
    return open_webapp_keyboard(webapp_url, text="Open Gift")


def receive_gift_keyboard(claim_link: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="Receive Gift", url=claim_link)]]
    )


def build_claim_link(webapp_url: str, transaction_id: str, sender_id: int) -> str:
    """Deep link мини-приложения: startapp=<transactionId>-<senderId>."""
    return f"{webapp_url}?startapp={transaction_id}-{sender_id}"
