from aiohttp import web

from giftbot.exceptions import BadRequest
from giftbot.web.keys import CTX_KEY, TG_USER
from giftbot.web.responses import ok

routes = web.RouteTableDef()


@routes.post("/invoice/create-invoice/{gift_id}")
async def create_invoice(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    tg_user = request[TG_USER]
    invoice = await ctx.invoices.create_for_gift(request.match_info["gift_id"], tg_user.id, tg_user.first_name)
    return ok(invoice.to_json())


@routes.get("/invoice/status/{invoice_id}")
async def invoice_status(request: web.Request) -> web.Response:
    ctx = request.app[CTX_KEY]
    try:
        invoice_id = int(request.match_info["invoice_id"])
    except ValueError:
        raise BadRequest("Invalid invoice id")
    status = await ctx.invoices.status(invoice_id, request[TG_USER].id)
    return ok(status.to_json())
