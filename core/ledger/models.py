"""
Ledger 엔티티 정의

User / Account / Category / Transaction / AuditRecord.
엔티티 간 관계는 객체 참조가 아닌 ID로만 표현한다.
금액은 항상 Decimal (float 금지).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from core.types import CategoryKind
from core.utils.timezone import now_utc


def new_id() -> str:
    """엔티티 ID 생성 (uuid4 hex)"""
    return uuid4().hex


@dataclass
class User:
    """사용자

    credentials_hash는 외부 인증 제공자가 만든 불투명 문자열.
    삭제 시 is_active만 해제 (과거 거래 참조 보존).
    ledger_version은 거래가 바뀔 때마다 저장소가 올리는 값 (잔액 캐시 검증용).
    """

    user_id: str
    display_name: str
    credentials_hash: str
    is_active: bool = True
    created_at: datetime = field(default_factory=now_utc)
    ledger_version: int = 0


@dataclass
class Account:
    """사용자 계좌 (지갑, 은행 계좌 등)"""

    account_id: str
    user_id: str
    name: str
    currency: str
    is_active: bool = True
    created_at: datetime = field(default_factory=now_utc)


@dataclass
class Category:
    """거래 카테고리

    owner_id가 None이면 모든 사용자가 참조 가능한 공용 기본 카테고리.
    """

    category_id: str
    owner_id: str | None
    name: str
    kind: CategoryKind
    is_active: bool = True
    created_at: datetime = field(default_factory=now_utc)

    @property
    def is_shared(self) -> bool:
        return self.owner_id is None


@dataclass
class Transaction:
    """거래

    amount는 부호 있는 Decimal (수입 +, 지출 -).
    생성 후에는 update 연산(감사 기록 포함)으로만 변경된다.
    """

    transaction_id: str
    user_id: str
    category_id: str
    amount: Decimal
    currency: str
    occurred_on: date
    note: str | None = None
    account_id: str | None = None
    idempotency_key: str | None = None
    version: int = 1
    is_deleted: bool = False
    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    def snapshot(self) -> dict[str, Any]:
        """감사 기록용 직렬화 (JSON 호환)"""
        data = asdict(self)
        data["amount"] = str(self.amount)
        data["occurred_on"] = self.occurred_on.isoformat()
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    def evolve(self, **changes: Any) -> Transaction:
        """변경 사항을 적용한 새 인스턴스 반환 (원본 불변)"""
        return replace(self, **changes)


@dataclass
class AuditRecord:
    """거래 변경 이력 (old + new 값)"""

    audit_id: int | None
    transaction_id: str
    user_id: str
    action: str
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    ts: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class TransactionFilter:
    """거래 조회 / 잔액 집계 범위

    start_date, end_date는 양 끝 포함.
    include_deleted는 목록 조회에만 적용되며 집계에는 영향 없음.
    """

    category_id: str | None = None
    account_id: str | None = None
    currency: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    include_deleted: bool = False
    limit: int | None = None
    offset: int = 0

    def for_aggregation(self, default_currency: str) -> TransactionFilter:
        """집계용 필터로 정규화

        페이지/삭제 포함 여부를 제거하고 통화를 확정한다.
        서로 다른 통화는 합산하지 않는다.
        """
        return replace(
            self,
            currency=(self.currency or default_currency).upper(),
            include_deleted=False,
            limit=None,
            offset=0,
        )
