"""
core/ledger/models.py 테스트
"""

import json
from datetime import date
from decimal import Decimal

from core.ledger.models import Category, Transaction, TransactionFilter, new_id
from core.types import CategoryKind


def _transaction(**overrides) -> Transaction:
    data = dict(
        transaction_id="t1",
        user_id="alice",
        category_id="default-groceries",
        amount=Decimal("-40.00"),
        currency="USD",
        occurred_on=date(2026, 10, 3),
    )
    data.update(overrides)
    return Transaction(**data)


def test_new_id_unique() -> None:
    ids = {new_id() for _ in range(100)}

    assert len(ids) == 100
    assert all(len(value) == 32 for value in ids)


class TestTransaction:
    """Transaction 테스트"""

    def test_defaults(self) -> None:
        tx = _transaction()

        assert tx.version == 1
        assert tx.is_deleted is False
        assert tx.note is None

    def test_snapshot_is_json_compatible(self) -> None:
        """감사 기록용 스냅샷은 JSON 직렬화 가능"""
        snapshot = _transaction(note="milk").snapshot()

        assert snapshot["amount"] == "-40.00"
        assert snapshot["occurred_on"] == "2026-10-03"
        assert snapshot["note"] == "milk"
        json.dumps(snapshot)

    def test_evolve_keeps_original(self) -> None:
        """evolve는 새 인스턴스 반환"""
        tx = _transaction()
        changed = tx.evolve(amount=Decimal("-50.00"), version=2)

        assert changed.amount == Decimal("-50.00")
        assert changed.version == 2
        assert tx.amount == Decimal("-40.00")
        assert tx.version == 1


def test_category_is_shared() -> None:
    shared = Category("default-salary", None, "salary", CategoryKind.INCOME)
    owned = Category("c1", "alice", "side job", CategoryKind.INCOME)

    assert shared.is_shared
    assert not owned.is_shared


class TestTransactionFilter:
    """TransactionFilter 테스트"""

    def test_for_aggregation(self) -> None:
        """집계용 정규화: 페이지/삭제 포함 제거, 통화 확정"""
        flt = TransactionFilter(
            category_id="c1",
            include_deleted=True,
            limit=10,
            offset=20,
        )

        normalized = flt.for_aggregation("USD")

        assert normalized.currency == "USD"
        assert normalized.include_deleted is False
        assert normalized.limit is None
        assert normalized.offset == 0
        assert normalized.category_id == "c1"

    def test_for_aggregation_keeps_currency(self) -> None:
        assert TransactionFilter(currency="eur").for_aggregation("USD").currency == "EUR"

    def test_hashable(self) -> None:
        """캐시 키로 사용 가능"""
        a = TransactionFilter(start_date=date(2026, 1, 1)).for_aggregation("USD")
        b = TransactionFilter(start_date=date(2026, 1, 1), limit=5).for_aggregation("USD")

        assert a == b
        assert hash(a) == hash(b)
