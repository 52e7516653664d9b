"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증
금액은 반드시 문자열로 전달 (JSON 숫자 → float 변환 방지)
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class TransactionCreateRequest(BaseModel):
    """거래 생성 요청"""

    category_id: str = Field(..., description="카테고리 ID (본인 소유 또는 공용)")
    amount: str = Field(..., description="부호 있는 금액 문자열 (수입 +, 지출 -)")
    occurred_on: date = Field(..., description="거래 날짜")
    note: str | None = Field(default=None, max_length=500, description="메모")
    account_id: str | None = Field(default=None, description="계좌 ID")
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="통화")
    idempotency_key: str | None = Field(default=None, description="멱등성 키")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "category_id": "default-groceries",
                    "amount": "-250.50",
                    "occurred_on": "2026-10-03",
                    "note": "weekly groceries",
                },
            ]
        }
    }


class TransactionUpdateRequest(BaseModel):
    """거래 수정 요청

    전달된 필드만 변경 (null 전달 시 note/account_id 제거).
    """

    category_id: str | None = Field(default=None, description="카테고리 ID")
    amount: str | None = Field(default=None, description="부호 있는 금액 문자열")
    occurred_on: date | None = Field(default=None, description="거래 날짜")
    note: str | None = Field(default=None, max_length=500, description="메모")
    account_id: str | None = Field(default=None, description="계좌 ID")
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="통화")
    expected_version: int | None = Field(
        default=None,
        ge=1,
        description="예상 버전 (낙관적 락, None이면 무시)",
    )


class CategoryCreateRequest(BaseModel):
    """카테고리 생성 요청"""

    name: str = Field(..., min_length=1, max_length=64, description="카테고리 이름")
    kind: Literal["income", "expense"] = Field(..., description="수입 / 지출")


class CategoryRenameRequest(BaseModel):
    """카테고리 이름 변경 요청"""

    name: str = Field(..., min_length=1, max_length=64, description="새 이름")


class AccountCreateRequest(BaseModel):
    """계좌 생성 요청"""

    name: str = Field(..., min_length=1, max_length=64, description="계좌 이름")
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="통화")
