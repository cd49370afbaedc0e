import re

from aiohttp import web

from giftbot.exceptions import BadRequest, TransactionNotFound
from giftbot.web.keys import CTX_KEY, TG_USER
from giftbot.web.responses import ok

OBJECT_ID_RE = re.compile(r"^[0-9a-f]{24}$")

routes = web.RouteTableDef()


@routes.get("/transaction/{transaction_id}/{sender_id}")
async def claim_transaction(request: web.Request) -> web.Response:
    """Открытие ссылки на подарок: первый открывший становится получателем."""
    ctx = request.app[CTX_KEY]
    transaction_id = request.match_info["transaction_id"]
    try:
        sender_id = int(request.match_info["sender_id"])
    except ValueError:
        raise BadRequest("Invalid sender id")
    if not OBJECT_ID_RE.fullmatch(transaction_id):
        raise TransactionNotFound()

    result = await ctx.transfer.claim(transaction_id, sender_id, request[TG_USER].id)
    return ok(result.transaction.to_json())
