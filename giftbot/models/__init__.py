from giftbot.models.gift import Gift, Currency
from giftbot.models.transaction import GiftTransaction, TransactionStatus
from giftbot.models.users import User
from giftbot.models.user_sets import UserGiftLink, UserPendingGiftLink, UserTransactionLink

__all__ = [
    "Gift",
    "Currency",
    "GiftTransaction",
    "TransactionStatus",
    "User",
    "UserGiftLink",
    "UserPendingGiftLink",
    "UserTransactionLink",
]
