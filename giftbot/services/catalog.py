from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from giftbot.models.gift import Gift


class GiftCatalog:

    @staticmethod
    async def create(session: AsyncSession, **fields) -> Gift:
        gift = Gift(sold=0, **fields)
        session.add(gift)
        await session.commit()
        await session.refresh(gift)
        return gift

    @staticmethod
    async def get(session: AsyncSession, gift_id: str) -> Gift | None:
        return await session.get(Gift, gift_id)

    @staticmethod
    async def get_by_slug(session: AsyncSession, slug: str) -> Gift | None:
        result = await session.execute(select(Gift).where(Gift.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    async def reserve_unit(session: AsyncSession, gift_id: str) -> int | None:
        """
        Атомарно резервирует один экземпляр: sold += 1 только пока sold < total_available.
        Возвращает новое значение sold или None, если ёмкость исчерпана.
        """
        result = await session.execute(
            update(Gift)
            .where(Gift.id == gift_id, Gift.sold < Gift.total_available)
            .values(sold=Gift.sold + 1)
            .returning(Gift.sold)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()
