class GiftAppError(Exception):
    """
    Базовая ошибка приложения.
    status: HTTP-код для клиента. code: стабильный идентификатор ошибки.
    """
    status = 500
    code = "internal_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    default_message = "Internal server error"


class AuthenticityFailure(GiftAppError):
    status = 401
    code = "invalid_signature"
    default_message = "Invalid signature"


class StaleEvent(GiftAppError):
    status = 401
    code = "stale_event"
    default_message = "Request too old"


class InvalidUpdate(GiftAppError):
    status = 400
    code = "invalid_update"
    default_message = "Invalid update type"


class AuthenticationFailed(GiftAppError):
    status = 401
    code = "unauthorized"
    default_message = "User not authenticated"


class GiftNotFound(GiftAppError):
    status = 404
    code = "gift_not_found"
    default_message = "Gift not found"


class SoldOut(GiftAppError):
    status = 400
    code = "sold_out"
    default_message = "Gift sold out"


class TransactionNotFound(GiftAppError):
    status = 404
    code = "transaction_not_found"
    default_message = "Transaction not found"


class PaymentProviderError(GiftAppError):
    status = 502
    code = "payment_provider_error"
    default_message = "Failed to create invoice"


class StorageUnavailable(GiftAppError):
    status = 503
    code = "storage_unavailable"
    default_message = "Database connection not available"


class BadRequest(GiftAppError):
    status = 400
    code = "bad_request"
    default_message = "Bad request"
