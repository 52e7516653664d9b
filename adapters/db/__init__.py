"""
데이터베이스 어댑터

Ledger가 사용하는 공유 SQLite(WAL) 연결.
"""

from adapters.db.sqlite_adapter import SQLiteAdapter, create_connection

__all__ = ["SQLiteAdapter", "create_connection"]
