from aiohttp import web

from giftbot.exceptions import GiftAppError


def ok(data=None, status: int = 200) -> web.Response:
    return web.json_response({"error": None, "success": True, "data": data}, status=status)


def fail(error: GiftAppError, status: int | None = None) -> web.Response:
    return web.json_response(
        {"error": error.message, "code": error.code, "success": False, "data": None},
        status=status or error.status,
    )
