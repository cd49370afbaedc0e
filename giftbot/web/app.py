from aiohttp import web

from giftbot.context import AppContext
from giftbot.web import invoices, transactions, webhook
from giftbot.web.keys import CTX_KEY
from giftbot.web.middlewares import auth_middleware, error_middleware
from giftbot.web.responses import ok


async def health(request: web.Request) -> web.Response:
    return ok({"status": "ok"})


def create_web_app(ctx: AppContext) -> web.Application:
    app = web.Application(middlewares=[error_middleware, auth_middleware])
    app[CTX_KEY] = ctx

    app.router.add_get("/health", health)
    app.add_routes(webhook.routes)
    app.add_routes(transactions.routes)
    app.add_routes(invoices.routes)
    return app
