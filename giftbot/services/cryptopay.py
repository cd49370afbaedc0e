import logging

import aiohttp
from pydantic import ValidationError

from giftbot.exceptions import PaymentProviderError
from giftbot.schemas import CryptoPayInvoice

logger = logging.getLogger(__name__)

ACCEPTED_ASSETS = "USDT,TON,BTC,ETH"


class CryptoPayClient:
    """Минимальный клиент Crypto Pay API: только создание инвойсов."""

    def __init__(self, api_key: str, endpoint: str, timeout: float = 10):
        self.endpoint = endpoint.rstrip("/")
        self.headers = {
            "Crypto-Pay-API-Token": api_key,
            "Content-Type": "application/json",
        }
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers, timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def create_invoice(
        self,
        asset: str,
        amount: str,
        description: str,
        payload: str,
        expires_in: int = 3600,
    ) -> CryptoPayInvoice:
        body = {
            "currency_type": "crypto",
            "asset": asset,
            "accepted_assets": ACCEPTED_ASSETS,
            "amount": amount,
            "description": description,
            "payload": payload,
            "expires_in": expires_in,
            "allow_comments": False,
            "allow_anonymous": False,
        }
        try:
            async with self._get_session().post(f"{self.endpoint}/createInvoice", json=body) as response:
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("Crypto Pay request failed: %s", e)
            raise PaymentProviderError() from e

        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error") if isinstance(data, dict) else None
            logger.error("Crypto Pay rejected createInvoice: %s", error)
            raise PaymentProviderError(_error_text(error))

        try:
            return CryptoPayInvoice.model_validate(data["result"])
        except (KeyError, ValidationError) as e:
            raise PaymentProviderError("Unexpected Crypto Pay response") from e


def _error_text(error) -> str:
    if isinstance(error, dict):
        return error.get("name") or "Failed to create invoice"
    return error or "Failed to create invoice"
