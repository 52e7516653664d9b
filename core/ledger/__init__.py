"""
개인 재무 Ledger

카테고리별 거래, 잔액 집계, 사용자 범위 접근 제어.
잔액은 항상 삭제되지 않은 거래 금액의 합과 같다.

사용 예시:
```python
from core.ledger import LedgerStore, TransactionService, init_ledger_schema

# 초기화
await init_ledger_schema(db)
store = LedgerStore(db)
service = TransactionService(store, config=settings.ledger)

# 거래 생성
tx = await service.create_transaction(
    identity, "default-groceries", Decimal("-250.50"), date(2026, 10, 3)
)

# 잔액 조회
balance = await service.get_balance(identity)
```
"""

from core.ledger.balance import BalanceAggregator, CategoryTotal, LedgerSummary, MonthlyTotal
from core.ledger.guard import AccessGuard
from core.ledger.locks import UserLockRegistry
from core.ledger.models import (
    Account,
    AuditRecord,
    Category,
    Transaction,
    TransactionFilter,
    User,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.service import UNSET, TransactionService
from core.ledger.store import LedgerStore
from core.ledger.types import DEFAULT_CATEGORIES

__all__ = [
    # 핵심 클래스
    "LedgerStore",
    "TransactionService",
    "BalanceAggregator",
    "AccessGuard",
    "UserLockRegistry",
    "init_ledger_schema",
    # 엔티티
    "User",
    "Account",
    "Category",
    "Transaction",
    "AuditRecord",
    "TransactionFilter",
    # 집계 결과
    "CategoryTotal",
    "LedgerSummary",
    "MonthlyTotal",
    # 상수
    "DEFAULT_CATEGORIES",
    "UNSET",
]
