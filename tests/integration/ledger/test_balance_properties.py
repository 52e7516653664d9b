"""
잔액 불변식 통합 테스트

- 잔액 = 삭제되지 않은 거래 금액의 합
- 삭제된 거래는 잔액에서 제외
- 수정 시 잔액은 정확히 (new - old)만큼 변함
- 타인의 데이터 조회/변경은 Denied
"""

import random
from datetime import date, timedelta
from decimal import Decimal

import pytest

from core.errors import Denied
from core.ledger import LedgerStore, TransactionFilter, TransactionService
from core.types import Identity
from core.utils.timezone import today_utc

TODAY = today_utc()


async def _expected_balance(store: LedgerStore, identity: Identity) -> Decimal:
    """원천 거래를 직접 합산"""
    rows = await store.list_transactions(identity.user_id, TransactionFilter(include_deleted=True))
    return sum(
        (tx.amount for tx in rows if not tx.is_deleted and tx.currency == "USD"),
        Decimal("0"),
    )


class TestWorkedExample:
    """+1000.00, -250.50, -40.00 → 709.50, groceries 삭제 → 750.00"""

    @pytest.mark.asyncio
    async def test_salary_rent_groceries(
        self, service: TransactionService, alice: Identity
    ) -> None:
        await service.create_transaction(alice, "default-salary", Decimal("1000.00"), TODAY, "salary")
        await service.create_transaction(alice, "default-housing", Decimal("-250.50"), TODAY, "rent")
        groceries = await service.create_transaction(
            alice, "default-groceries", Decimal("-40.00"), TODAY, "groceries"
        )

        assert await service.get_balance(alice) == Decimal("709.50")

        await service.delete_transaction(alice, groceries.transaction_id)

        assert await service.get_balance(alice) == Decimal("750.00")

    @pytest.mark.asyncio
    async def test_summary_and_breakdown(
        self, service: TransactionService, alice: Identity
    ) -> None:
        await service.create_transaction(alice, "default-salary", "1000.00", TODAY)
        await service.create_transaction(alice, "default-housing", "-250.50", TODAY)
        await service.create_transaction(alice, "default-groceries", "-40.00", TODAY)
        await service.create_transaction(alice, "default-groceries", "-9.50", TODAY)

        summary = await service.aggregator.summary(alice)
        breakdown = await service.aggregator.category_breakdown(alice)

        assert summary.income == Decimal("1000.00")
        assert summary.expense == Decimal("-300.00")
        assert summary.net == Decimal("700.00")
        assert summary.count == 4
        assert summary.currency == "USD"

        assert [(item.name, item.total, item.count) for item in breakdown] == [
            ("salary", Decimal("1000.00"), 1),
            ("housing", Decimal("-250.50"), 1),
            ("groceries", Decimal("-49.50"), 2),
        ]


class TestSumInvariant:
    """잔액 = Σ 활성 거래"""

    @pytest.mark.asyncio
    async def test_random_mutations(
        self, service: TransactionService, store: LedgerStore, alice: Identity
    ) -> None:
        """무작위 생성/수정/삭제 후에도 합계 일치"""
        rng = random.Random(20261018)
        live: list[str] = []

        for step in range(60):
            op = rng.choice(["create", "create", "update", "delete"]) if live else "create"

            if op == "create":
                cents = rng.randint(1, 500_000)
                tx = await service.create_transaction(
                    alice,
                    "default-other-expense",
                    Decimal(-cents) / 100,
                    TODAY - timedelta(days=rng.randint(0, 90)),
                )
                live.append(tx.transaction_id)
            elif op == "update":
                target = rng.choice(live)
                await service.update_transaction(
                    alice, target, amount=Decimal(-rng.randint(1, 500_000)) / 100
                )
            else:
                target = live.pop(rng.randrange(len(live)))
                await service.delete_transaction(alice, target)

            if step % 5 == 0:
                assert await service.get_balance(alice) == await _expected_balance(store, alice)

        assert await service.get_balance(alice) == await _expected_balance(store, alice)

    @pytest.mark.asyncio
    async def test_update_changes_balance_by_delta(
        self, service: TransactionService, alice: Identity
    ) -> None:
        await service.create_transaction(alice, "default-salary", "1000.00", TODAY)
        tx = await service.create_transaction(alice, "default-groceries", "-40.00", TODAY)
        before = await service.get_balance(alice)

        updated = await service.update_transaction(alice, tx.transaction_id, amount="-65.25")
        after = await service.get_balance(alice)

        assert after - before == updated.amount - tx.amount == Decimal("-25.25")

    @pytest.mark.asyncio
    async def test_filters(self, service: TransactionService, alice: Identity) -> None:
        """날짜 / 카테고리 범위 잔액"""
        await service.create_transaction(alice, "default-salary", "1000.00", date(2026, 9, 30))
        await service.create_transaction(alice, "default-groceries", "-40.00", date(2026, 10, 1))
        await service.create_transaction(alice, "default-groceries", "-10.00", date(2026, 10, 2))

        october = TransactionFilter(start_date=date(2026, 10, 1), end_date=date(2026, 10, 31))
        groceries = TransactionFilter(category_id="default-groceries")

        assert await service.get_balance(alice, october) == Decimal("-50.00")
        assert await service.get_balance(alice, groceries) == Decimal("-50.00")

        months = await service.aggregator.monthly_totals(alice)
        assert [(m.month, m.inflow, m.outflow, m.net) for m in months] == [
            ("2026-09", Decimal("1000.00"), Decimal("0"), Decimal("1000.00")),
            ("2026-10", Decimal("0"), Decimal("-50.00"), Decimal("-50.00")),
        ]

    @pytest.mark.asyncio
    async def test_empty_balance_is_zero(self, service: TransactionService, alice: Identity) -> None:
        assert await service.get_balance(alice) == Decimal("0")


class TestCrossUserAccess:
    """사용자 간 격리"""

    @pytest.mark.asyncio
    async def test_balances_are_independent(
        self, service: TransactionService, alice: Identity, bob: Identity
    ) -> None:
        await service.create_transaction(alice, "default-salary", "1000.00", TODAY)
        await service.create_transaction(bob, "default-salary", "5.00", TODAY)

        assert await service.get_balance(alice) == Decimal("1000.00")
        assert await service.get_balance(bob) == Decimal("5.00")
        assert len(await service.list_transactions(bob)) == 1

    @pytest.mark.asyncio
    async def test_cross_user_operations_denied(
        self, service: TransactionService, alice: Identity, bob: Identity
    ) -> None:
        """타인 거래의 조회/수정/삭제/이력/필터 모두 Denied, 상태 불변"""
        tx = await service.create_transaction(alice, "default-groceries", "-40.00", TODAY)
        own_category = await service.create_category(alice, "pets", "expense")

        with pytest.raises(Denied):
            await service.get_transaction(bob, tx.transaction_id)
        with pytest.raises(Denied):
            await service.update_transaction(bob, tx.transaction_id, amount="-1.00")
        with pytest.raises(Denied):
            await service.delete_transaction(bob, tx.transaction_id)
        with pytest.raises(Denied):
            await service.get_history(bob, tx.transaction_id)
        with pytest.raises(Denied):
            await service.get_balance(bob, TransactionFilter(category_id=own_category.category_id))
        with pytest.raises(Denied):
            await service.list_transactions(bob, TransactionFilter(category_id=own_category.category_id))
        with pytest.raises(Denied):
            await service.rename_category(bob, own_category.category_id, "mine")

        unchanged = await service.get_transaction(alice, tx.transaction_id)
        assert unchanged.amount == Decimal("-40.00")
        assert unchanged.version == 1
        assert not unchanged.is_deleted
