import logging

from aiohttp import web

from giftbot.exceptions import GiftNotFound, SoldOut
from giftbot.services.settlement import SettlementOutcome
from giftbot.services.webhook import verify_and_parse
from giftbot.web.keys import CTX_KEY
from giftbot.web.responses import fail

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "crypto-pay-api-signature"

routes = web.RouteTableDef()


@routes.post("/webhook")
async def cryptopay_webhook(request: web.Request) -> web.Response:
    """
    Вебхук Crypto Pay.
    200: провайдер перестаёт слать повторно (в т.ч. уже обработанный платёж).
    4xx: отказ по существу. 5xx: временная ошибка, провайдер повторит.
    """
    ctx = request.app[CTX_KEY]
    raw_body = await request.read()

    event = verify_and_parse(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        ctx.settings.cryptopay_api_key,
        ctx.settings.webhook_max_age,
    )
    result = await ctx.settlement.settle(event)

    if result.outcome is SettlementOutcome.SETTLED:
        return web.json_response({"status": "success"})
    if result.outcome is SettlementOutcome.ALREADY_SETTLED:
        return web.json_response({"status": "already processed"})
    if result.outcome is SettlementOutcome.SOLD_OUT:
        return fail(SoldOut())
    # неизвестный подарок для провайдера тоже 400, как и распроданный
    return fail(GiftNotFound(), status=400)
