"""
Ledger 저장소

User / Account / Category / Transaction / 감사 기록 저장 및 조회.
SQLite 기반 ILedgerStore 구현체.

- 모든 쓰기는 BEGIN IMMEDIATE 트랜잭션 안에서 수행 (부분 반영 없음)
- atomic() 안의 호출은 하나의 트랜잭션으로 묶임
- 거래를 쓰는 모든 연산은 같은 트랜잭션에서 users.ledger_version을 올림
  (연결/프로세스가 달라도 잔액 캐시가 변경을 감지)
- SQLite 예외는 Ledger 예외로 변환
  (IntegrityError → ConstraintViolation, OperationalError → StorageUnavailable)
"""

from __future__ import annotations

import functools
import json
import logging
from contextlib import asynccontextmanager, contextmanager
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Iterator, TypeVar

import aiosqlite

from core.errors import ConstraintViolation, NotFound, StorageUnavailable, VersionConflict
from core.ledger.models import (
    Account,
    AuditRecord,
    Category,
    Transaction,
    TransactionFilter,
    User,
)
from core.types import CategoryKind
from core.utils.timezone import month_key, now_utc, parse_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def _translate_errors() -> Iterator[None]:
    """SQLite 예외를 Ledger 예외로 변환"""
    try:
        yield
    except aiosqlite.IntegrityError as e:
        raise ConstraintViolation(f"Integrity error: {e}") from e
    except aiosqlite.OperationalError as e:
        raise StorageUnavailable(f"Storage error: {e}") from e


def _translated(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        with _translate_errors():
            return await func(*args, **kwargs)

    return wrapper


_USER_COLUMNS = "user_id, display_name, credentials_hash, is_active, created_at, ledger_version"
_ACCOUNT_COLUMNS = "account_id, user_id, name, currency, is_active, created_at"
_CATEGORY_COLUMNS = "category_id, owner_id, name, kind, is_active, created_at"
_TRANSACTION_COLUMNS = """
    transaction_id, user_id, category_id, account_id,
    amount, currency, occurred_on, note, idempotency_key,
    version, is_deleted, created_at, updated_at
"""


def _row_to_user(row: tuple[Any, ...]) -> User:
    return User(
        user_id=row[0],
        display_name=row[1],
        credentials_hash=row[2],
        is_active=bool(row[3]),
        created_at=parse_utc(row[4]),
        ledger_version=row[5],
    )


def _row_to_account(row: tuple[Any, ...]) -> Account:
    return Account(
        account_id=row[0],
        user_id=row[1],
        name=row[2],
        currency=row[3],
        is_active=bool(row[4]),
        created_at=parse_utc(row[5]),
    )


def _row_to_category(row: tuple[Any, ...]) -> Category:
    return Category(
        category_id=row[0],
        owner_id=row[1],
        name=row[2],
        kind=CategoryKind(row[3]),
        is_active=bool(row[4]),
        created_at=parse_utc(row[5]),
    )


def _row_to_transaction(row: tuple[Any, ...]) -> Transaction:
    return Transaction(
        transaction_id=row[0],
        user_id=row[1],
        category_id=row[2],
        account_id=row[3],
        amount=Decimal(row[4]),
        currency=row[5],
        occurred_on=date.fromisoformat(row[6]),
        note=row[7],
        idempotency_key=row[8],
        version=row[9],
        is_deleted=bool(row[10]),
        created_at=parse_utc(row[11]),
        updated_at=parse_utc(row[12]),
    )


def _filter_clause(
    user_id: str,
    flt: TransactionFilter,
    include_deleted: bool = False,
) -> tuple[str, list[Any]]:
    """거래 필터 WHERE 절 생성"""
    sql = "WHERE user_id = ?"
    params: list[Any] = [user_id]

    if not include_deleted:
        sql += " AND is_deleted = 0"

    if flt.category_id:
        sql += " AND category_id = ?"
        params.append(flt.category_id)

    if flt.account_id:
        sql += " AND account_id = ?"
        params.append(flt.account_id)

    if flt.currency:
        sql += " AND currency = ?"
        params.append(flt.currency.upper())

    if flt.start_date:
        sql += " AND occurred_on >= ?"
        params.append(flt.start_date.isoformat())

    if flt.end_date:
        sql += " AND occurred_on <= ?"
        params.append(flt.end_date.isoformat())

    return sql, params


class LedgerStore:
    """Ledger 저장소 (SQLite)

    엔티티는 ID로만 서로를 참조한다.
    외래 키는 SQLite가 강제한다 (PRAGMA foreign_keys=ON).

    Args:
        db: SQLite 어댑터

    사용 예시:
    ```python
    store = LedgerStore(db)

    async with store.atomic():
        await store.put_transaction(tx)
        await store.append_audit(record)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """작업 단위 트랜잭션 (커밋 또는 전체 롤백)"""
        with _translate_errors():
            async with self.db.transaction():
                yield

    # =========================================================================
    # User
    # =========================================================================

    @_translated
    async def get_user(self, user_id: str) -> User:
        """사용자 조회

        Raises:
            NotFound: 존재하지 않는 user_id
        """
        row = await self.db.fetchone(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        if not row:
            raise NotFound("User", user_id)
        return _row_to_user(row)

    @_translated
    async def put_user(self, user: User) -> User:
        """사용자 저장 (UPSERT, user_id 불변)"""
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO users (user_id, display_name, credentials_hash, is_active, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    credentials_hash = excluded.credentials_hash,
                    is_active = excluded.is_active
                """,
                (
                    user.user_id,
                    user.display_name,
                    user.credentials_hash,
                    int(user.is_active),
                    user.created_at.isoformat(),
                ),
            )
        return user

    @_translated
    async def soft_delete_user(self, user_id: str) -> None:
        """사용자 비활성화

        Raises:
            NotFound: 존재하지 않는 user_id
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                "UPDATE users SET is_active = 0 WHERE user_id = ?",
                (user_id,),
            )
            if cursor.rowcount == 0:
                raise NotFound("User", user_id)

    # =========================================================================
    # Account
    # =========================================================================

    @_translated
    async def get_account(self, account_id: str) -> Account:
        """계좌 조회

        Raises:
            NotFound: 존재하지 않는 account_id
        """
        row = await self.db.fetchone(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE account_id = ?",
            (account_id,),
        )
        if not row:
            raise NotFound("Account", account_id)
        return _row_to_account(row)

    @_translated
    async def list_accounts(self, user_id: str, include_inactive: bool = False) -> list[Account]:
        """사용자 계좌 목록"""
        sql = f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE user_id = ?"
        if not include_inactive:
            sql += " AND is_active = 1"
        sql += " ORDER BY name"

        rows = await self.db.fetchall(sql, (user_id,))
        return [_row_to_account(row) for row in rows]

    @_translated
    async def put_account(self, account: Account) -> Account:
        """계좌 저장 (UPSERT)

        Raises:
            ConstraintViolation: 존재하지 않는 user_id, 같은 이름의 활성 계좌 존재
        """
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO accounts (account_id, user_id, name, currency, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(account_id) DO UPDATE SET
                    name = excluded.name,
                    is_active = excluded.is_active
                """,
                (
                    account.account_id,
                    account.user_id,
                    account.name,
                    account.currency,
                    int(account.is_active),
                    account.created_at.isoformat(),
                ),
            )
        return account

    @_translated
    async def soft_delete_account(self, account_id: str) -> None:
        """계좌 비활성화

        Raises:
            NotFound: 존재하지 않는 account_id
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                "UPDATE accounts SET is_active = 0 WHERE account_id = ?",
                (account_id,),
            )
            if cursor.rowcount == 0:
                raise NotFound("Account", account_id)

    @_translated
    async def count_account_usage(self, account_id: str) -> int:
        """계좌를 참조하는 활성 거래 수"""
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM transactions WHERE account_id = ? AND is_deleted = 0",
            (account_id,),
        )
        return row[0] if row else 0

    # =========================================================================
    # Category
    # =========================================================================

    @_translated
    async def get_category(self, category_id: str) -> Category:
        """카테고리 조회 (비활성 포함)

        Raises:
            NotFound: 존재하지 않는 category_id
        """
        row = await self.db.fetchone(
            f"SELECT {_CATEGORY_COLUMNS} FROM categories WHERE category_id = ?",
            (category_id,),
        )
        if not row:
            raise NotFound("Category", category_id)
        return _row_to_category(row)

    @_translated
    async def list_categories(
        self,
        owner_id: str | None,
        include_shared: bool = True,
    ) -> list[Category]:
        """활성 카테고리 목록

        Args:
            owner_id: 소유자 (None이면 공용 카테고리만)
            include_shared: 공용 기본 카테고리 포함 여부
        """
        sql = f"SELECT {_CATEGORY_COLUMNS} FROM categories WHERE is_active = 1"
        params: list[Any] = []

        if owner_id is None:
            sql += " AND owner_id IS NULL"
        elif include_shared:
            sql += " AND (owner_id = ? OR owner_id IS NULL)"
            params.append(owner_id)
        else:
            sql += " AND owner_id = ?"
            params.append(owner_id)

        sql += " ORDER BY kind, name"

        rows = await self.db.fetchall(sql, tuple(params))
        return [_row_to_category(row) for row in rows]

    @_translated
    async def put_category(self, category: Category) -> Category:
        """카테고리 저장 (UPSERT, 소유자 불변)

        Raises:
            ConstraintViolation: 존재하지 않는 owner_id, 같은 이름/종류의 활성 카테고리 존재
        """
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO categories (category_id, owner_id, name, kind, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(category_id) DO UPDATE SET
                    name = excluded.name,
                    is_active = excluded.is_active
                """,
                (
                    category.category_id,
                    category.owner_id,
                    category.name,
                    CategoryKind(category.kind).value,
                    int(category.is_active),
                    category.created_at.isoformat(),
                ),
            )
        return category

    @_translated
    async def soft_delete_category(self, category_id: str) -> None:
        """카테고리 비활성화

        Raises:
            NotFound: 존재하지 않는 category_id
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                "UPDATE categories SET is_active = 0 WHERE category_id = ?",
                (category_id,),
            )
            if cursor.rowcount == 0:
                raise NotFound("Category", category_id)

    @_translated
    async def count_category_usage(self, category_id: str) -> int:
        """카테고리를 참조하는 활성 거래 수"""
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM transactions WHERE category_id = ? AND is_deleted = 0",
            (category_id,),
        )
        return row[0] if row else 0

    # =========================================================================
    # Transaction
    # =========================================================================

    @_translated
    async def get_transaction(self, transaction_id: str) -> Transaction:
        """거래 단건 조회 (삭제 포함)

        Raises:
            NotFound: 존재하지 않는 transaction_id
        """
        row = await self.db.fetchone(
            f"SELECT {_TRANSACTION_COLUMNS} FROM transactions WHERE transaction_id = ?",
            (transaction_id,),
        )
        if not row:
            raise NotFound("Transaction", transaction_id)
        return _row_to_transaction(row)

    @_translated
    async def list_transactions(
        self,
        user_id: str,
        flt: TransactionFilter | None = None,
    ) -> list[Transaction]:
        """거래 목록 조회 (최근 날짜 순)

        Args:
            user_id: 소유자
            flt: 조회 범위 (None이면 전체)

        Returns:
            거래 목록
        """
        flt = flt or TransactionFilter()
        where, params = _filter_clause(user_id, flt, include_deleted=flt.include_deleted)

        sql = f"""
            SELECT {_TRANSACTION_COLUMNS}
            FROM transactions
            {where}
            ORDER BY occurred_on DESC, created_at DESC, transaction_id
        """

        if flt.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([flt.limit, flt.offset])
        elif flt.offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(flt.offset)

        rows = await self.db.fetchall(sql, tuple(params))
        return [_row_to_transaction(row) for row in rows]

    @_translated
    async def put_transaction(
        self,
        transaction: Transaction,
        expected_version: int | None = None,
    ) -> Transaction:
        """거래 저장

        신규면 INSERT, 기존이면 UPDATE.
        expected_version이 주어지면 저장된 버전과 일치할 때만 UPDATE.

        Raises:
            ConstraintViolation: 존재하지 않는 user/category/account 참조,
                idempotency_key 중복, 소유자 변경 시도
            VersionConflict: expected_version 불일치
        """
        async with self.db.transaction():
            row = await self.db.fetchone(
                "SELECT version, user_id FROM transactions WHERE transaction_id = ?",
                (transaction.transaction_id,),
            )

            if row is None:
                await self._insert_transaction(transaction)
            else:
                current_version, owner_id = row[0], row[1]
                if owner_id != transaction.user_id:
                    raise ConstraintViolation(
                        f"Transaction owner is immutable: {transaction.transaction_id}"
                    )
                if expected_version is not None and current_version != expected_version:
                    raise VersionConflict(
                        transaction.transaction_id, expected_version, current_version
                    )
                await self._update_transaction(transaction, current_version)

            await self._bump_ledger_version(transaction.user_id)

        logger.debug(
            f"Saved transaction: {transaction.transaction_id}",
            extra={"version": transaction.version},
        )
        return transaction

    async def _insert_transaction(self, tx: Transaction) -> None:
        await self.db.execute(
            """
            INSERT INTO transactions (
                transaction_id, user_id, category_id, account_id,
                amount, currency, occurred_on, note, idempotency_key,
                version, is_deleted, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tx.transaction_id,
                tx.user_id,
                tx.category_id,
                tx.account_id,
                str(tx.amount),
                tx.currency,
                tx.occurred_on.isoformat(),
                tx.note,
                tx.idempotency_key,
                tx.version,
                int(tx.is_deleted),
                tx.created_at.isoformat(),
                tx.updated_at.isoformat(),
            ),
        )

    async def _update_transaction(self, tx: Transaction, current_version: int) -> None:
        cursor = await self.db.execute(
            """
            UPDATE transactions SET
                category_id = ?,
                account_id = ?,
                amount = ?,
                currency = ?,
                occurred_on = ?,
                note = ?,
                version = ?,
                is_deleted = ?,
                updated_at = ?
            WHERE transaction_id = ? AND version = ?
            """,
            (
                tx.category_id,
                tx.account_id,
                str(tx.amount),
                tx.currency,
                tx.occurred_on.isoformat(),
                tx.note,
                tx.version,
                int(tx.is_deleted),
                tx.updated_at.isoformat(),
                tx.transaction_id,
                current_version,
            ),
        )
        if cursor.rowcount == 0:
            # 다른 연결이 먼저 버전을 올린 경우
            raise VersionConflict(tx.transaction_id, current_version, current_version + 1)

    @_translated
    async def soft_delete_transaction(self, transaction_id: str) -> Transaction:
        """거래 soft delete

        이미 삭제된 거래는 그대로 반환 (멱등).

        Returns:
            삭제 상태의 거래

        Raises:
            NotFound: 존재하지 않는 transaction_id
        """
        async with self.db.transaction():
            current = await self.get_transaction(transaction_id)
            if current.is_deleted:
                return current

            deleted = current.evolve(
                is_deleted=True,
                version=current.version + 1,
                updated_at=now_utc(),
            )
            await self._update_transaction(deleted, current.version)
            await self._bump_ledger_version(current.user_id)

        return deleted

    async def _bump_ledger_version(self, user_id: str) -> None:
        """사용자 ledger_version 증가 (호출자의 트랜잭션 안에서 실행)"""
        await self.db.execute(
            "UPDATE users SET ledger_version = ledger_version + 1 WHERE user_id = ?",
            (user_id,),
        )

    @_translated
    async def find_by_idempotency_key(self, user_id: str, key: str) -> Transaction | None:
        """idempotency_key로 거래 조회 (사용자 범위)"""
        row = await self.db.fetchone(
            f"""
            SELECT {_TRANSACTION_COLUMNS} FROM transactions
            WHERE user_id = ? AND idempotency_key = ?
            """,
            (user_id, key),
        )
        return _row_to_transaction(row) if row else None

    # =========================================================================
    # Audit
    # =========================================================================

    @_translated
    async def append_audit(self, record: AuditRecord) -> int:
        """감사 기록 추가

        Returns:
            생성된 audit_id
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO transaction_audit (
                    transaction_id, user_id, action, old_json, new_json, ts
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.transaction_id,
                    record.user_id,
                    record.action,
                    json.dumps(record.old_values, ensure_ascii=False) if record.old_values else None,
                    json.dumps(record.new_values, ensure_ascii=False) if record.new_values else None,
                    record.ts.isoformat(),
                ),
            )
            audit_id = cursor.lastrowid

        record.audit_id = audit_id
        return audit_id

    @_translated
    async def list_audit(self, transaction_id: str) -> list[AuditRecord]:
        """거래 변경 이력 (오래된 순)"""
        rows = await self.db.fetchall(
            """
            SELECT audit_id, transaction_id, user_id, action, old_json, new_json, ts
            FROM transaction_audit
            WHERE transaction_id = ?
            ORDER BY audit_id
            """,
            (transaction_id,),
        )
        return [
            AuditRecord(
                audit_id=row[0],
                transaction_id=row[1],
                user_id=row[2],
                action=row[3],
                old_values=json.loads(row[4]) if row[4] else None,
                new_values=json.loads(row[5]) if row[5] else None,
                ts=parse_utc(row[6]),
            )
            for row in rows
        ]

    # =========================================================================
    # 집계 (삭제된 거래 제외, Decimal 합산)
    # =========================================================================

    @_translated
    async def sum_amounts(self, user_id: str, flt: TransactionFilter) -> Decimal:
        """범위 내 활성 거래 금액 합계

        단일 SELECT로 조회하여 일관된 시점의 합계를 보장.
        """
        where, params = _filter_clause(user_id, flt)
        rows = await self.db.fetchall(
            f"SELECT amount FROM transactions {where}",
            tuple(params),
        )
        return sum((Decimal(row[0]) for row in rows), Decimal("0"))

    @_translated
    async def sum_by_category(
        self,
        user_id: str,
        flt: TransactionFilter,
    ) -> dict[str, tuple[Decimal, int]]:
        """카테고리별 (합계, 건수)"""
        where, params = _filter_clause(user_id, flt)
        rows = await self.db.fetchall(
            f"SELECT category_id, amount FROM transactions {where}",
            tuple(params),
        )

        totals: dict[str, tuple[Decimal, int]] = {}
        for category_id, amount in rows:
            total, count = totals.get(category_id, (Decimal("0"), 0))
            totals[category_id] = (total + Decimal(amount), count + 1)
        return totals

    @_translated
    async def sum_by_month(
        self,
        user_id: str,
        flt: TransactionFilter,
    ) -> dict[str, tuple[Decimal, Decimal]]:
        """월별 (유입 합계, 유출 합계)

        유입은 양수 금액, 유출은 음수 금액의 합.
        """
        where, params = _filter_clause(user_id, flt)
        rows = await self.db.fetchall(
            f"SELECT occurred_on, amount FROM transactions {where} ORDER BY occurred_on",
            tuple(params),
        )

        totals: dict[str, tuple[Decimal, Decimal]] = {}
        for occurred_on, raw_amount in rows:
            key = month_key(date.fromisoformat(occurred_on))
            inflow, outflow = totals.get(key, (Decimal("0"), Decimal("0")))
            amount = Decimal(raw_amount)
            if amount > 0:
                inflow += amount
            else:
                outflow += amount
            totals[key] = (inflow, outflow)
        return totals
