import logging
from datetime import datetime, timezone

from aiogram.utils.web_app import safe_parse_webapp_init_data
from aiohttp import web
from sqlalchemy.exc import SQLAlchemyError

from giftbot.exceptions import AuthenticationFailed, GiftAppError, StorageUnavailable
from giftbot.services.users import UserDirectory
from giftbot.web.keys import CTX_KEY, TG_USER
from giftbot.web.responses import fail

logger = logging.getLogger(__name__)

AUTH_SCHEME = "TelegramWebApp "
PUBLIC_PATHS = ("/webhook", "/health")


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except GiftAppError as e:
        logger.warning("%s %s -> %s: %s", request.method, request.path, e.status, e.message)
        return fail(e)
    except (SQLAlchemyError, OSError):
        logger.exception("Storage unavailable on %s %s", request.method, request.path)
        return fail(StorageUnavailable())
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail(GiftAppError())


@web.middleware
async def auth_middleware(request: web.Request, handler):
    """Аутентификация мини-приложения по initData из заголовка Authorization."""
    if request.path.startswith(PUBLIC_PATHS):
        return await handler(request)

    ctx = request.app[CTX_KEY]
    header = request.headers.get("Authorization", "")
    if not header.startswith(AUTH_SCHEME):
        raise AuthenticationFailed("No authorization header")

    try:
        init_data = safe_parse_webapp_init_data(ctx.settings.bot_token, header[len(AUTH_SCHEME):])
    except ValueError:
        raise AuthenticationFailed("Invalid authentication")

    if init_data.user is None:
        raise AuthenticationFailed("No user data found")

    auth_date = init_data.auth_date
    if auth_date.tzinfo is None:
        auth_date = auth_date.replace(tzinfo=timezone.utc)
    if (datetime.now(timezone.utc) - auth_date).total_seconds() > ctx.settings.init_data_max_age:
        raise AuthenticationFailed("Authentication expired")

    async with ctx.session_factory() as session:
        await UserDirectory.upsert_profile(session, init_data.user)
        await session.commit()

    request[TG_USER] = init_data.user
    return await handler(request)
