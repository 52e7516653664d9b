"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화
금액은 문자열로 반환 (Decimal 정밀도 유지)
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from core.ledger import (
    Account,
    AuditRecord,
    Category,
    CategoryTotal,
    LedgerSummary,
    MonthlyTotal,
    Transaction,
)


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    database: str = Field(..., description="DB 연결 상태")
    version: str = Field(..., description="API 버전")


class ErrorResponse(BaseModel):
    """오류 응답"""

    error: str = Field(..., description="오류 코드")
    detail: str = Field(..., description="오류 메시지")


class TransactionResponse(BaseModel):
    """거래 응답"""

    transaction_id: str
    category_id: str
    account_id: str | None = None
    amount: str
    currency: str
    occurred_on: date
    note: str | None = None
    version: int
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, tx: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=tx.transaction_id,
            category_id=tx.category_id,
            account_id=tx.account_id,
            amount=str(tx.amount),
            currency=tx.currency,
            occurred_on=tx.occurred_on,
            note=tx.note,
            version=tx.version,
            is_deleted=tx.is_deleted,
            created_at=tx.created_at,
            updated_at=tx.updated_at,
        )


class TransactionListResponse(BaseModel):
    """거래 목록 응답"""

    transactions: list[TransactionResponse]
    limit: int
    offset: int


class AuditResponse(BaseModel):
    """거래 변경 이력 응답"""

    audit_id: int
    action: str
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    ts: datetime

    @classmethod
    def from_entity(cls, record: AuditRecord) -> "AuditResponse":
        return cls(
            audit_id=record.audit_id or 0,
            action=record.action,
            old_values=record.old_values,
            new_values=record.new_values,
            ts=record.ts,
        )


class CategoryResponse(BaseModel):
    """카테고리 응답"""

    category_id: str
    name: str
    kind: str
    is_shared: bool

    @classmethod
    def from_entity(cls, category: Category) -> "CategoryResponse":
        return cls(
            category_id=category.category_id,
            name=category.name,
            kind=category.kind.value,
            is_shared=category.is_shared,
        )


class AccountResponse(BaseModel):
    """계좌 응답"""

    account_id: str
    name: str
    currency: str

    @classmethod
    def from_entity(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.account_id,
            name=account.name,
            currency=account.currency,
        )


class BalanceResponse(BaseModel):
    """잔액 응답"""

    currency: str = Field(..., description="통화")
    balance: str = Field(..., description="잔액")

    @classmethod
    def of(cls, currency: str, balance: Decimal) -> "BalanceResponse":
        return cls(currency=currency, balance=str(balance))


class SummaryResponse(BaseModel):
    """수입/지출 요약 응답"""

    currency: str
    income: str
    expense: str
    net: str
    count: int

    @classmethod
    def from_entity(cls, summary: LedgerSummary) -> "SummaryResponse":
        return cls(
            currency=summary.currency,
            income=str(summary.income),
            expense=str(summary.expense),
            net=str(summary.net),
            count=summary.count,
        )


class CategoryTotalResponse(BaseModel):
    """카테고리별 합계 응답"""

    category_id: str
    name: str
    kind: str
    total: str
    count: int

    @classmethod
    def from_entity(cls, item: CategoryTotal) -> "CategoryTotalResponse":
        return cls(
            category_id=item.category_id,
            name=item.name,
            kind=item.kind.value,
            total=str(item.total),
            count=item.count,
        )


class MonthlyTotalResponse(BaseModel):
    """월별 합계 응답"""

    month: str
    inflow: str
    outflow: str
    net: str

    @classmethod
    def from_entity(cls, item: MonthlyTotal) -> "MonthlyTotalResponse":
        return cls(
            month=item.month,
            inflow=str(item.inflow),
            outflow=str(item.outflow),
            net=str(item.net),
        )
