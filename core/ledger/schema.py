"""
Ledger 스키마 초기화

Web 시작 시 자동으로 Ledger 테이블과 인덱스 생성.
CREATE IF NOT EXISTS / INSERT OR IGNORE 패턴으로 안전하게 동작.

금액은 TEXT(Decimal 문자열)로 저장하고 합산은 Python Decimal로 수행한다.
"""

import logging
from typing import TYPE_CHECKING

from core.ledger.types import DEFAULT_CATEGORIES

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스 + 기본 카테고리)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: 연결된 SQLiteAdapter
    """
    async with db.transaction():
        await _create_ledger_tables(db)
        await _migrate_users_ledger_version(db)
        await _create_ledger_indexes(db)
        await _insert_default_categories(db)
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # users 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS users (
            user_id          TEXT PRIMARY KEY,
            display_name     TEXT NOT NULL,
            credentials_hash TEXT NOT NULL,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            ledger_version   INTEGER NOT NULL DEFAULT 0
        )
    """)

    # accounts 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            account_id       TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            name             TEXT NOT NULL,
            currency         TEXT NOT NULL,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(user_id)
        )
    """)

    # categories 테이블 (owner_id NULL = 공용 기본 카테고리)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            category_id      TEXT PRIMARY KEY,
            owner_id         TEXT,
            name             TEXT NOT NULL,
            kind             TEXT NOT NULL CHECK (kind IN ('income', 'expense')),
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            FOREIGN KEY (owner_id) REFERENCES users(user_id)
        )
    """)

    # transactions 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            transaction_id   TEXT PRIMARY KEY,
            user_id          TEXT NOT NULL,
            category_id      TEXT NOT NULL,
            account_id       TEXT,
            amount           TEXT NOT NULL,
            currency         TEXT NOT NULL,
            occurred_on      TEXT NOT NULL,
            note             TEXT,
            idempotency_key  TEXT,
            version          INTEGER NOT NULL DEFAULT 1,
            is_deleted       INTEGER NOT NULL DEFAULT 0,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL,
            UNIQUE (user_id, idempotency_key),
            FOREIGN KEY (user_id) REFERENCES users(user_id),
            FOREIGN KEY (category_id) REFERENCES categories(category_id),
            FOREIGN KEY (account_id) REFERENCES accounts(account_id)
        )
    """)

    # transaction_audit 테이블 (변경 이력)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS transaction_audit (
            audit_id         INTEGER PRIMARY KEY AUTOINCREMENT,
            transaction_id   TEXT NOT NULL,
            user_id          TEXT NOT NULL,
            action           TEXT NOT NULL,
            old_json         TEXT,
            new_json         TEXT,
            ts               TEXT NOT NULL,
            FOREIGN KEY (transaction_id) REFERENCES transactions(transaction_id)
        )
    """)


async def _migrate_users_ledger_version(db: "SQLiteAdapter") -> None:
    """ledger_version 컬럼이 없는 기존 DB에 컬럼 추가"""
    columns = await db.fetchall("PRAGMA table_info(users)")
    if any(column[1] == "ledger_version" for column in columns):
        return

    await db.execute(
        "ALTER TABLE users ADD COLUMN ledger_version INTEGER NOT NULL DEFAULT 0"
    )
    logger.info("users.ledger_version 컬럼 추가")


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성 (유일성 규칙 포함)"""

    # 활성 계좌 이름은 사용자별로 유일
    await db.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_accounts_user_name
        ON accounts(user_id, name) WHERE is_active = 1
    """)

    # 활성 카테고리는 (소유자, 이름, 종류)별로 유일
    await db.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_categories_owner_name_kind
        ON categories(COALESCE(owner_id, ''), name, kind) WHERE is_active = 1
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_user_date
        ON transactions(user_id, occurred_on)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_category
        ON transactions(category_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_transaction_audit_tx
        ON transaction_audit(transaction_id)
    """)


async def _insert_default_categories(db: "SQLiteAdapter") -> None:
    """공용 기본 카테고리 생성 (이미 있으면 무시)"""
    for category_id, name, kind in DEFAULT_CATEGORIES:
        await db.execute(
            """
            INSERT OR IGNORE INTO categories (category_id, owner_id, name, kind)
            VALUES (?, NULL, ?, ?)
            """,
            (category_id, name, kind),
        )
