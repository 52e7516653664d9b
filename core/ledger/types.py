"""
Ledger 타입 정의

Ledger 시스템에서 사용하는 Enum 및 상수 정의
"""

from core.types import AuditAction, CategoryKind

__all__ = [
    "AuditAction",
    "CategoryKind",
    "DEFAULT_CATEGORIES",
]


# 공용 기본 카테고리 (스키마 초기화 시 생성, owner_id = NULL)
DEFAULT_CATEGORIES: list[tuple[str, str, str]] = [
    # (category_id, name, kind)

    # 수입
    ("default-salary", "salary", "income"),
    ("default-bonus", "bonus", "income"),
    ("default-interest", "interest", "income"),
    ("default-other-income", "other income", "income"),

    # 지출
    ("default-groceries", "groceries", "expense"),
    ("default-transit", "transit", "expense"),
    ("default-housing", "housing", "expense"),
    ("default-utilities", "utilities", "expense"),
    ("default-dining", "dining", "expense"),
    ("default-health", "health", "expense"),
    ("default-other-expense", "other expense", "expense"),
]
