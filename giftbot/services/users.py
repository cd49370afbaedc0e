from datetime import datetime, timezone

from aiogram.utils.web_app import WebAppUser
from sqlalchemy import select, delete, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from giftbot.db import insert_for
from giftbot.models.users import User
from giftbot.models.user_sets import UserGiftLink, UserPendingGiftLink, UserTransactionLink

GIFTS = UserGiftLink
PENDING_GIFTS = UserPendingGiftLink
TRANSACTIONS = UserTransactionLink


class UserDirectory:
    """
    Пользователи и их наборы транзакций.
    Все изменения наборов идемпотентны: повторное добавление или удаление ничего не меняет.
    """

    @staticmethod
    async def get(session: AsyncSession, telegram_id: int) -> User | None:
        return await session.get(User, telegram_id)

    @staticmethod
    async def ensure(session: AsyncSession, telegram_id: int, first_name: str | None = None) -> None:
        """Создаёт пользователя при первом контакте, существующего не трогает."""
        now = datetime.now(timezone.utc)
        stmt = insert_for(session, User).values(
            telegram_id=telegram_id,
            first_name=first_name or "Unknown",
            is_premium=False,
            total_gifts_count=0,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(index_elements=["telegram_id"])
        await session.execute(stmt)

    @staticmethod
    async def upsert_profile(session: AsyncSession, tg_user: WebAppUser) -> None:
        """Обновляет профиль по данным из initData мини-приложения."""
        now = datetime.now(timezone.utc)
        profile = {
            "username": tg_user.username,
            "first_name": tg_user.first_name,
            "last_name": tg_user.last_name,
            "is_premium": bool(tg_user.is_premium),
            "updated_at": now,
        }
        stmt = insert_for(session, User).values(
            telegram_id=tg_user.id,
            total_gifts_count=0,
            created_at=now,
            **profile,
        )
        stmt = stmt.on_conflict_do_update(index_elements=["telegram_id"], set_=profile)
        await session.execute(stmt)

    @staticmethod
    async def add_to_sets(session: AsyncSession, telegram_id: int, transaction_id: str, *sets) -> None:
        for link in sets:
            stmt = insert_for(session, link).values(
                user_id=telegram_id,
                transaction_id=transaction_id,
            ).on_conflict_do_nothing(index_elements=["user_id", "transaction_id"])
            await session.execute(stmt)

        await session.execute(
            update(User)
            .where(User.telegram_id == telegram_id)
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def remove_from_set(session: AsyncSession, link, telegram_id: int, transaction_id: str) -> None:
        await session.execute(
            delete(link)
            .where(link.user_id == telegram_id, link.transaction_id == transaction_id)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def recount_gifts(session: AsyncSession, telegram_id: int) -> int:
        """total_gifts_count := размер набора gifts, одним UPDATE."""
        gifts_count = (
            select(func.count())
            .select_from(UserGiftLink)
            .where(UserGiftLink.user_id == telegram_id)
            .scalar_subquery()
        )
        result = await session.execute(
            update(User)
            .where(User.telegram_id == telegram_id)
            .values(total_gifts_count=gifts_count)
            .returning(User.total_gifts_count)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    @staticmethod
    async def members(session: AsyncSession, link, telegram_id: int) -> set[str]:
        result = await session.execute(select(link.transaction_id).where(link.user_id == telegram_id))
        return set(result.scalars().all())

    @staticmethod
    async def has_member(session: AsyncSession, link, telegram_id: int, transaction_id: str) -> bool:
        result = await session.execute(
            select(link.transaction_id).where(link.user_id == telegram_id, link.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none() is not None
