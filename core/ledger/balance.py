"""
Balance Aggregator

거래로부터 잔액 및 대시보드용 집계를 계산.
잔액은 저장된 원천 데이터가 아니라 항상 활성 거래의 합으로 유도된다.

캐시 정책:
- (user_id, 정규화된 필터) 단위 LRU 캐시, 최대 balance_cache_size 항목
- 항목은 계산 시작 전에 읽은 users.ledger_version과 함께 저장
- 조회마다 현재 ledger_version을 읽고 같을 때만 캐시 사용
  → 다른 연결/프로세스가 커밋한 변경도 다음 조회에서 반영
- invalidate()는 같은 프로세스의 항목을 즉시 비움 (메모리 정리)
- 저장소 오류는 그대로 전파 (0으로 대체 금지)
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from core.config.loader import LedgerConfig
from core.errors import Denied, NotFound
from core.ledger.guard import AccessGuard
from core.ledger.models import TransactionFilter, User
from core.types import CategoryKind, Identity, LedgerAction

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryTotal:
    """카테고리별 합계"""

    category_id: str
    name: str
    kind: CategoryKind
    total: Decimal
    count: int


@dataclass(frozen=True)
class LedgerSummary:
    """수입/지출 요약"""

    currency: str
    income: Decimal
    expense: Decimal
    net: Decimal
    count: int


@dataclass(frozen=True)
class MonthlyTotal:
    """월별 유입/유출"""

    month: str  # YYYY-MM
    inflow: Decimal
    outflow: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflow + self.outflow


class BalanceAggregator:
    """Balance Aggregator

    Args:
        store: Ledger 저장소
        config: Ledger 설정 (통화, 캐시 사용 여부)
        guard: 접근 검사기

    사용 예시:
    ```python
    aggregator = BalanceAggregator(store, settings.ledger)
    total = await aggregator.balance(identity)
    ```
    """

    def __init__(
        self,
        store: ILedgerStore,
        config: LedgerConfig | None = None,
        guard: AccessGuard | None = None,
    ):
        self.store = store
        self.config = config or LedgerConfig()
        self.guard = guard or AccessGuard()

        self._cache: OrderedDict[tuple[str, TransactionFilter], tuple[int, Decimal]] = OrderedDict()

        # 통계
        self.cache_hits = 0
        self.cache_misses = 0

    # -------------------------------------------------------------------------
    # 캐시
    # -------------------------------------------------------------------------

    def invalidate(self, user_id: str) -> None:
        """사용자의 모든 캐시 항목 제거 (변경 커밋 직후 호출)"""
        stale = [key for key in self._cache if key[0] == user_id]
        for key in stale:
            del self._cache[key]

        if stale:
            logger.debug(
                f"Balance cache invalidated: {user_id}",
                extra={"entries": len(stale)},
            )

    def _cache_enabled(self) -> bool:
        return self.config.balance_cache

    def _cached(self, key: tuple[str, TransactionFilter], version: int) -> Decimal | None:
        entry = self._cache.get(key)
        if entry is None:
            return None

        cached_version, total = entry
        if cached_version != version:
            del self._cache[key]
            return None

        self._cache.move_to_end(key)
        return total

    def _store(self, key: tuple[str, TransactionFilter], version: int, total: Decimal) -> None:
        existing = self._cache.get(key)
        if existing is not None and existing[0] > version:
            return

        self._cache[key] = (version, total)
        self._cache.move_to_end(key)
        while len(self._cache) > self.config.balance_cache_size:
            self._cache.popitem(last=False)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def balance(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> Decimal:
        """잔액 조회

        Σ amount (identity 소유, 삭제되지 않은, 필터 범위 내 거래).
        통화 필터가 없으면 기본 통화로 한정.

        Args:
            identity: 인증된 사용자
            flt: 조회 범위

        Returns:
            잔액 (Decimal)

        Raises:
            Denied: 비활성 사용자, 타인 카테고리/계좌 필터
            NotFound: 필터의 카테고리/계좌가 없음
            StorageUnavailable: 저장소 장애
        """
        user, flt = await self._prepare(identity, flt)
        key = (identity.user_id, flt)
        # 합계 계산 전에 읽은 버전 (이후 커밋은 다음 조회에서 버전 불일치로 감지)
        version = user.ledger_version

        if self._cache_enabled():
            cached = self._cached(key, version)
            if cached is not None:
                self.cache_hits += 1
                return cached

        self.cache_misses += 1
        total = await self.store.sum_amounts(identity.user_id, flt)

        if self._cache_enabled():
            self._store(key, version, total)

        return total

    async def category_breakdown(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> list[CategoryTotal]:
        """카테고리별 합계 (절대값 큰 순)"""
        _, flt = await self._prepare(identity, flt)
        totals = await self.store.sum_by_category(identity.user_id, flt)

        result: list[CategoryTotal] = []
        for category_id, (total, count) in totals.items():
            category = await self.store.get_category(category_id)
            result.append(
                CategoryTotal(
                    category_id=category_id,
                    name=category.name,
                    kind=category.kind,
                    total=total,
                    count=count,
                )
            )

        result.sort(key=lambda item: (-abs(item.total), item.name))
        return result

    async def summary(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> LedgerSummary:
        """수입/지출/순액 요약 (카테고리 종류 기준)"""
        breakdown = await self.category_breakdown(identity, flt)
        currency = ((flt.currency if flt else None) or self.config.default_currency).upper()

        income = sum(
            (item.total for item in breakdown if item.kind == CategoryKind.INCOME),
            Decimal("0"),
        )
        expense = sum(
            (item.total for item in breakdown if item.kind == CategoryKind.EXPENSE),
            Decimal("0"),
        )

        return LedgerSummary(
            currency=currency,
            income=income,
            expense=expense,
            net=income + expense,
            count=sum(item.count for item in breakdown),
        )

    async def monthly_totals(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> list[MonthlyTotal]:
        """월별 유입/유출 (오래된 월부터)"""
        _, flt = await self._prepare(identity, flt)
        totals = await self.store.sum_by_month(identity.user_id, flt)

        return [
            MonthlyTotal(month=month, inflow=inflow, outflow=outflow)
            for month, (inflow, outflow) in sorted(totals.items())
        ]

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    async def _prepare(
        self,
        identity: Identity,
        flt: TransactionFilter | None,
    ) -> tuple[User, TransactionFilter]:
        """사용자/필터 검증 후 (사용자, 집계용 필터) 반환"""
        try:
            user = await self.store.get_user(identity.user_id)
        except NotFound as e:
            raise Denied(f"Unknown user: {identity.user_id}") from e

        if not user.is_active:
            raise Denied(f"User is deactivated: {identity.user_id}")

        flt = (flt or TransactionFilter()).for_aggregation(self.config.default_currency)

        if flt.category_id:
            category = await self.store.get_category(flt.category_id)
            self.guard.authorize(identity, LedgerAction.READ, category.owner_id)

        if flt.account_id:
            account = await self.store.get_account(flt.account_id)
            self.guard.authorize(identity, LedgerAction.READ, account.user_id)

        return user, flt
