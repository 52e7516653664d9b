"""
BalanceAggregator 캐시 테스트

Fake 저장소로 캐시 적중 / 무효화 / ledger_version 검증 / LRU 상한 확인
"""

from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable

import pytest

from core.config.loader import LedgerConfig
from core.errors import Denied, NotFound, StorageUnavailable
from core.ledger.balance import BalanceAggregator
from core.ledger.models import TransactionFilter, User
from core.types import Identity


class FakeStore:
    """sum_amounts 호출 횟수를 기록하는 저장소"""

    def __init__(self) -> None:
        self.users = {"alice": User("alice", "alice", "hash")}
        self.total = Decimal("100.00")
        self.sum_calls = 0
        self.error: Exception | None = None
        self.during_sum: Callable[[], Awaitable[None]] | None = None

    async def get_user(self, user_id: str) -> User:
        if user_id not in self.users:
            raise NotFound("User", user_id)
        return self.users[user_id]

    def commit_write(self, user_id: str, total: Decimal) -> None:
        """다른 연결에서 커밋된 변경 (저장소가 ledger_version 증가)"""
        self.total = total
        self.users[user_id].ledger_version += 1

    async def sum_amounts(self, user_id: str, flt: TransactionFilter) -> Decimal:
        self.sum_calls += 1
        if self.error is not None:
            raise self.error
        result = self.total
        if self.during_sum is not None:
            await self.during_sum()
        return result


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def aggregator(store: FakeStore) -> BalanceAggregator:
    return BalanceAggregator(store)  # type: ignore[arg-type]


@pytest.fixture
def alice() -> Identity:
    return Identity("alice")


class TestCache:
    """캐시 적중 / 무효화"""

    @pytest.mark.asyncio
    async def test_second_call_hits_cache(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        assert await aggregator.balance(alice) == Decimal("100.00")
        assert await aggregator.balance(alice) == Decimal("100.00")

        assert store.sum_calls == 1
        assert aggregator.cache_hits == 1
        assert aggregator.cache_misses == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_recompute(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        """무효화 후에는 새 값 반환 (read-your-own-writes)"""
        await aggregator.balance(alice)

        store.total = Decimal("60.00")
        aggregator.invalidate("alice")

        assert await aggregator.balance(alice) == Decimal("60.00")
        assert store.sum_calls == 2

    @pytest.mark.asyncio
    async def test_equivalent_filters_share_entry(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        """페이지 인자만 다른 필터는 같은 캐시 항목"""
        await aggregator.balance(alice, TransactionFilter(limit=10))
        await aggregator.balance(alice, TransactionFilter(offset=5, currency="usd"))

        assert store.sum_calls == 1

    @pytest.mark.asyncio
    async def test_different_filters_cached_separately(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        await aggregator.balance(alice)
        await aggregator.balance(alice, TransactionFilter(currency="EUR"))

        assert store.sum_calls == 2

    @pytest.mark.asyncio
    async def test_cache_disabled(self, store: FakeStore, alice: Identity) -> None:
        aggregator = BalanceAggregator(store, LedgerConfig(balance_cache=False))  # type: ignore[arg-type]

        await aggregator.balance(alice)
        await aggregator.balance(alice)

        assert store.sum_calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_only_affects_user(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        store.users["bob"] = User("bob", "bob", "hash")
        bob = Identity("bob")

        await aggregator.balance(alice)
        await aggregator.balance(bob)
        aggregator.invalidate("bob")
        await aggregator.balance(alice)

        assert store.sum_calls == 2


class TestStaleResult:
    """조회 도중 변경이 커밋된 경우"""

    @pytest.mark.asyncio
    async def test_result_not_cached_when_invalidated_midway(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        """조회 중 무효화되면 이전 값은 캐시에 남지 않음"""

        async def concurrent_write() -> None:
            store.commit_write("alice", Decimal("250.00"))
            aggregator.invalidate("alice")

        store.during_sum = concurrent_write
        stale = await aggregator.balance(alice)
        store.during_sum = None

        assert stale == Decimal("100.00")
        assert await aggregator.balance(alice) == Decimal("250.00")
        assert store.sum_calls == 2


class TestErrors:
    """오류 전파"""

    @pytest.mark.asyncio
    async def test_storage_error_propagates(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        """저장소 오류를 0으로 대체하지 않음"""
        store.error = StorageUnavailable("database is locked")

        with pytest.raises(StorageUnavailable):
            await aggregator.balance(alice)

        store.error = None
        assert await aggregator.balance(alice) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_deactivated_user_denied(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        store.users["alice"].is_active = False

        with pytest.raises(Denied):
            await aggregator.balance(alice)

    @pytest.mark.asyncio
    async def test_unknown_user_denied(self, aggregator: BalanceAggregator) -> None:
        with pytest.raises(Denied, match="Unknown user"):
            await aggregator.balance(Identity("mallory"))


class TestLedgerVersion:
    """다른 연결/프로세스의 커밋 감지"""

    @pytest.mark.asyncio
    async def test_version_change_without_invalidate(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        """invalidate 호출이 없어도 ledger_version이 바뀌면 재계산"""
        assert await aggregator.balance(alice) == Decimal("100.00")

        store.commit_write("alice", Decimal("40.00"))

        assert await aggregator.balance(alice) == Decimal("40.00")
        assert store.sum_calls == 2

    @pytest.mark.asyncio
    async def test_same_version_hits(
        self, aggregator: BalanceAggregator, store: FakeStore, alice: Identity
    ) -> None:
        store.commit_write("alice", Decimal("40.00"))

        await aggregator.balance(alice)
        await aggregator.balance(alice)

        assert store.sum_calls == 1


class TestCacheBound:
    """캐시 항목 수 상한 (LRU)"""

    @pytest.mark.asyncio
    async def test_entries_bounded(self, store: FakeStore, alice: Identity) -> None:
        aggregator = BalanceAggregator(store, LedgerConfig(balance_cache_size=3))  # type: ignore[arg-type]

        for day in range(1, 21):
            await aggregator.balance(alice, TransactionFilter(start_date=date(2026, 1, day)))

        assert len(aggregator._cache) == 3

    @pytest.mark.asyncio
    async def test_least_recently_used_evicted(self, store: FakeStore, alice: Identity) -> None:
        aggregator = BalanceAggregator(store, LedgerConfig(balance_cache_size=2))  # type: ignore[arg-type]
        jan = TransactionFilter(start_date=date(2026, 1, 1))
        feb = TransactionFilter(start_date=date(2026, 2, 1))
        mar = TransactionFilter(start_date=date(2026, 3, 1))

        await aggregator.balance(alice, jan)
        await aggregator.balance(alice, feb)
        await aggregator.balance(alice, jan)  # jan 최근 사용
        await aggregator.balance(alice, mar)  # feb 제거
        assert store.sum_calls == 3

        await aggregator.balance(alice, jan)
        assert store.sum_calls == 3

        await aggregator.balance(alice, feb)
        assert store.sum_calls == 4
