"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AccountCreateRequest,
    CategoryCreateRequest,
    CategoryRenameRequest,
    TransactionCreateRequest,
    TransactionUpdateRequest,
)
from web.models.responses import (
    AccountResponse,
    AuditResponse,
    BalanceResponse,
    CategoryResponse,
    CategoryTotalResponse,
    ErrorResponse,
    HealthResponse,
    MonthlyTotalResponse,
    SummaryResponse,
    TransactionListResponse,
    TransactionResponse,
)

__all__ = [
    # Requests
    "AccountCreateRequest",
    "CategoryCreateRequest",
    "CategoryRenameRequest",
    "TransactionCreateRequest",
    "TransactionUpdateRequest",
    # Responses
    "AccountResponse",
    "AuditResponse",
    "BalanceResponse",
    "CategoryResponse",
    "CategoryTotalResponse",
    "ErrorResponse",
    "HealthResponse",
    "MonthlyTotalResponse",
    "SummaryResponse",
    "TransactionListResponse",
    "TransactionResponse",
]
