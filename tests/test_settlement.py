"""
Расчёт по вебхуку: идемпотентность, ёмкость, гонки.
"""
import asyncio
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from giftbot.models.gift import Gift
from giftbot.models.transaction import GiftTransaction, TransactionStatus
from giftbot.models.users import User
from giftbot.services.catalog import GiftCatalog
from giftbot.services.settlement import SettlementOutcome
from giftbot.services.users import UserDirectory, PENDING_GIFTS, TRANSACTIONS, GIFTS


async def fetch_gift(session_factory, gift_id) -> Gift:
    async with session_factory() as session:
        return await session.get(Gift, gift_id)


async def fetch_by_payment(session_factory, payment_id) -> list[GiftTransaction]:
    async with session_factory() as session:
        result = await session.execute(select(GiftTransaction).where(GiftTransaction.payment_id == payment_id))
        return list(result.scalars().all())


@pytest.mark.asyncio
class TestIdempotentSettlement:

    async def test_settle_twice_increments_once(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=5)

        first = await ctx.settlement.settle(payment(1, gift.id, 101))
        second = await ctx.settlement.settle(payment(1, gift.id, 101))

        assert first.outcome is SettlementOutcome.SETTLED
        assert second.outcome is SettlementOutcome.ALREADY_SETTLED
        assert (await fetch_gift(session_factory, gift.id)).sold == 1

        transactions = await fetch_by_payment(session_factory, 1)
        assert len(transactions) == 1
        assert transactions[0].status is TransactionStatus.COMPLETED

        async with session_factory() as session:
            assert await UserDirectory.members(session, PENDING_GIFTS, 101) == {first.transaction_id}

    async def test_concurrent_duplicate_delivery(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=5)

        results = await asyncio.gather(*(ctx.settlement.settle(payment(7, gift.id, 101)) for _ in range(3)))

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == ["already_settled", "already_settled", "settled"]
        assert (await fetch_gift(session_factory, gift.id)).sold == 1

    async def test_settled_transaction_snapshot(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=3, price=Decimal("2.25"))

        result = await ctx.settlement.settle(payment(11, gift.id, 202))

        [tx] = await fetch_by_payment(session_factory, 11)
        assert tx.id == result.transaction_id
        assert tx.sender_id == 202
        assert tx.receiver_id is None
        assert not tx.is_claimed
        assert tx.price == Decimal("2.25")
        assert tx.which == 1
        assert result.which == 1

    async def test_ordinal_follows_sales(self, ctx, make_gift, payment):
        gift = await make_gift(total_available=3)

        results = [await ctx.settlement.settle(payment(20 + i, gift.id, 300 + i)) for i in range(3)]

        assert [r.which for r in results] == [1, 2, 3]

    async def test_pending_invoice_is_completed_in_place(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=2)
        invoice = await ctx.invoices.create_for_gift(gift.id, 404, "Dora")
        [pending] = await fetch_by_payment(session_factory, invoice.payment_id)
        assert pending.status is TransactionStatus.PENDING

        result = await ctx.settlement.settle(payment(invoice.payment_id, gift.id, 404))

        [tx] = await fetch_by_payment(session_factory, invoice.payment_id)
        assert tx.id == pending.id == result.transaction_id
        assert tx.status is TransactionStatus.COMPLETED


@pytest.mark.asyncio
class TestCapacity:

    async def test_sold_out(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=1, sold=1)

        result = await ctx.settlement.settle(payment(2, gift.id, 101))

        assert result.outcome is SettlementOutcome.SOLD_OUT
        assert not result.ok
        assert await fetch_by_payment(session_factory, 2) == []
        assert (await fetch_gift(session_factory, gift.id)).sold == 1

    async def test_unknown_gift(self, ctx, payment):
        result = await ctx.settlement.settle(payment(3, "0" * 24, 101))

        assert result.outcome is SettlementOutcome.GIFT_NOT_FOUND

    async def test_concurrent_race_for_last_unit(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift(total_available=1)

        p3, p4 = await asyncio.gather(
            ctx.settlement.settle(payment(3, gift.id, 101)),
            ctx.settlement.settle(payment(4, gift.id, 102)),
        )

        outcomes = {p3.outcome, p4.outcome}
        assert outcomes == {SettlementOutcome.SETTLED, SettlementOutcome.SOLD_OUT}
        assert (await fetch_gift(session_factory, gift.id)).sold == 1

        loser = p3 if p3.outcome is SettlementOutcome.SOLD_OUT else p4
        assert await fetch_by_payment(session_factory, loser.payment_id) == []

    async def test_lost_race_rolls_back_completed_transaction(
        self, ctx, make_gift, payment, session_factory, monkeypatch
    ):
        gift = await make_gift(total_available=1, sold=1)
        original_get = GiftCatalog.get

        async def stale_get(session, gift_id):
            # чтение «до» того, как конкурент забрал последний экземпляр
            fresh = await original_get(session, gift_id)
            return SimpleNamespace(
                id=fresh.id,
                name=fresh.name,
                price=fresh.price,
                currency=fresh.currency,
                total_available=fresh.total_available,
                sold=0,
            )

        monkeypatch.setattr(GiftCatalog, "get", staticmethod(stale_get))

        result = await ctx.settlement.settle(payment(5, gift.id, 101))

        assert result.outcome is SettlementOutcome.SOLD_OUT
        assert await fetch_by_payment(session_factory, 5) == []
        assert (await fetch_gift(session_factory, gift.id)).sold == 1
        async with session_factory() as session:
            assert await UserDirectory.get(session, 101) is None


@pytest.mark.asyncio
class TestBuyerCredit:

    async def test_buyer_created_on_first_contact(self, ctx, make_gift, payment, session_factory):
        gift = await make_gift()

        result = await ctx.settlement.settle(payment(30, gift.id, 555))

        async with session_factory() as session:
            user = await session.get(User, 555)
            assert user.first_name == "user555"
            assert user.total_gifts_count == 0
            assert await UserDirectory.members(session, TRANSACTIONS, 555) == {result.transaction_id}
            assert await UserDirectory.members(session, GIFTS, 555) == set()

    async def test_buyer_notified(self, ctx, bot, make_gift, payment):
        gift = await make_gift(name="Lucky Clover")

        await ctx.settlement.settle(payment(31, gift.id, 556))
        await ctx.notifier.drain()

        [message] = bot.messages_to(556)
        assert "<b>Lucky Clover</b> has been purchased successfully" in message.text

    async def test_notification_failure_does_not_fail_settlement(self, ctx, bot, make_gift, payment, session_factory):
        gift = await make_gift()
        bot.blocked.add(557)

        result = await ctx.settlement.settle(payment(32, gift.id, 557))
        await ctx.notifier.drain()

        assert result.outcome is SettlementOutcome.SETTLED
        assert bot.messages_to(557) == []
        assert (await fetch_gift(session_factory, gift.id)).sold == 1
