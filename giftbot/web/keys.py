from aiogram.utils.web_app import WebAppUser
from aiohttp import web

from giftbot.context import AppContext

CTX_KEY = web.AppKey("ctx", AppContext)

# пользователь из initData, кладёт auth_middleware
TG_USER = web.RequestKey("tg_user", WebAppUser)
