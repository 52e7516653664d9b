"""
SQLite 어댑터

Ledger 저장소용 WAL 연결. Web 워커 여러 개가 같은 파일을 열 수 있고,
쓰기는 BEGIN IMMEDIATE로 파일 단위 잠금을 먼저 잡는다.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import SQLiteLimits

logger = logging.getLogger(__name__)


async def create_connection(db_path: Path | str) -> aiosqlite.Connection:
    """WAL + busy_timeout + foreign_keys 가 설정된 연결 생성

    상위 디렉토리가 없으면 만든다.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # 암묵적 BEGIN 없음: 여러 문장은 SQLiteAdapter.transaction()으로만 묶는다
    conn = await aiosqlite.connect(str(path), isolation_level=None)

    for pragma in (
        "PRAGMA journal_mode=WAL",
        f"PRAGMA busy_timeout={SQLiteLimits.BUSY_TIMEOUT_MS}",
        "PRAGMA foreign_keys=ON",
    ):
        await conn.execute(pragma)

    logger.info("SQLite 연결 생성", extra={"db_path": str(path)})

    return conn


class SQLiteAdapter:
    """공유 SQLite 연결

    한 연결을 여러 코루틴이 쓰므로, 트랜잭션을 연 Task 외의 SQL은
    커밋/롤백이 끝날 때까지 대기한다.

    Args:
        db_path: DB 파일 경로

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        async with db.transaction():
            await db.execute("UPDATE transactions SET ...", (...))
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """현재 Task가 트랜잭션을 보유 중인지 확인"""
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    @asynccontextmanager
    async def _serialized(self) -> AsyncIterator[None]:
        """트랜잭션 보유 Task는 그대로 통과, 그 외에는 잠금 대기"""
        if self.in_transaction:
            yield
            return

        async with self._lock:
            yield

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        conn = self._require_conn()

        async with self._serialized():
            if parameters:
                return await conn.execute(sql, parameters)
            return await conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        conn = self._require_conn()

        async with self._serialized():
            cursor = await conn.execute(sql, parameters or ())
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        conn = self._require_conn()

        async with self._serialized():
            cursor = await conn.execute(sql, parameters or ())
            return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        BEGIN IMMEDIATE로 쓰기 잠금을 먼저 잡고, 성공 시 커밋,
        예외(취소 포함) 시 롤백. 같은 Task에서 중첩 호출하면 바깥 트랜잭션에 합류한다.
        커밋/롤백은 이 컨텍스트를 연 Task만 수행할 수 있다.
        """
        conn = self._require_conn()

        if self.in_transaction:
            yield conn
            return

        async with self._lock:
            self._tx_owner = asyncio.current_task()
            try:
                await conn.execute("BEGIN IMMEDIATE")
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            finally:
                self._tx_owner = None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
