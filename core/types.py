"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class CategoryKind(str, Enum):
    """카테고리 종류 (수입 / 지출)"""

    INCOME = "income"
    EXPENSE = "expense"


class LedgerAction(str, Enum):
    """접근 제어 대상 행위"""

    READ = "READ"  # 조회 및 참조 (공용 카테고리 사용 포함)
    WRITE = "WRITE"  # 생성/수정
    DELETE = "DELETE"  # soft delete


class AuditAction(str, Enum):
    """감사 기록 행위"""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Identity:
    """인증된 사용자 식별 정보 (불변)

    인증(JWT 검증 등)은 외부에서 수행하며,
    코어의 모든 호출에 명시적으로 전달된다.
    """

    user_id: str
    display_name: str | None = None
