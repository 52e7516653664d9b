"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 Ledger 저장소 구현체는 이 Protocol을 준수해야 함.
"""

from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Protocol, runtime_checkable

from core.ledger.models import (
    Account,
    AuditRecord,
    Category,
    Transaction,
    TransactionFilter,
    User,
)


@runtime_checkable
class ILedgerStore(Protocol):
    """Ledger 저장소 인터페이스

    엔티티 ID 기반 get / list / put / soft_delete 제공.
    각 연산은 완전히 성공하거나 상태를 변경하지 않는다.

    실패 시:
    - NotFound: 존재하지 않는 ID
    - ConstraintViolation: 참조/유일성 규칙 위반
    - StorageUnavailable: 일시적 저장소 장애
    """

    def atomic(self) -> AbstractAsyncContextManager[None]:
        """작업 단위 트랜잭션

        같은 Task 안의 호출은 하나의 트랜잭션으로 묶여
        종료 시 커밋, 예외/취소 시 롤백된다.
        """
        ...

    # -------------------------------------------------------------------------
    # User
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User:
        ...

    async def put_user(self, user: User) -> User:
        ...

    async def soft_delete_user(self, user_id: str) -> None:
        ...

    # -------------------------------------------------------------------------
    # Account
    # -------------------------------------------------------------------------

    async def get_account(self, account_id: str) -> Account:
        ...

    async def list_accounts(self, user_id: str, include_inactive: bool = False) -> list[Account]:
        ...

    async def put_account(self, account: Account) -> Account:
        ...

    async def soft_delete_account(self, account_id: str) -> None:
        ...

    async def count_account_usage(self, account_id: str) -> int:
        ...

    # -------------------------------------------------------------------------
    # Category
    # -------------------------------------------------------------------------

    async def get_category(self, category_id: str) -> Category:
        ...

    async def list_categories(
        self,
        owner_id: str | None,
        include_shared: bool = True,
    ) -> list[Category]:
        ...

    async def put_category(self, category: Category) -> Category:
        ...

    async def soft_delete_category(self, category_id: str) -> None:
        ...

    async def count_category_usage(self, category_id: str) -> int:
        ...

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    async def get_transaction(self, transaction_id: str) -> Transaction:
        ...

    async def list_transactions(
        self,
        user_id: str,
        flt: TransactionFilter | None = None,
    ) -> list[Transaction]:
        ...

    async def put_transaction(
        self,
        transaction: Transaction,
        expected_version: int | None = None,
    ) -> Transaction:
        ...

    async def soft_delete_transaction(self, transaction_id: str) -> Transaction:
        ...

    async def find_by_idempotency_key(self, user_id: str, key: str) -> Transaction | None:
        ...

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def append_audit(self, record: AuditRecord) -> int:
        ...

    async def list_audit(self, transaction_id: str) -> list[AuditRecord]:
        ...

    # -------------------------------------------------------------------------
    # 집계
    # -------------------------------------------------------------------------

    async def sum_amounts(self, user_id: str, flt: TransactionFilter) -> Decimal:
        ...

    async def sum_by_category(
        self,
        user_id: str,
        flt: TransactionFilter,
    ) -> dict[str, tuple[Decimal, int]]:
        ...

    async def sum_by_month(
        self,
        user_id: str,
        flt: TransactionFilter,
    ) -> dict[str, tuple[Decimal, Decimal]]:
        ...
