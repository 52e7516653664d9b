"""
pytest 공통 fixture 정의

임시 DB, Ledger 서비스, 테스트 사용자 fixture
"""

import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import LedgerConfig
from core.ledger import BalanceAggregator, LedgerStore, TransactionService, init_ledger_schema
from core.types import Identity


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    settings_content = f"""# 테스트용 settings.yaml
database:
  path: {temp_dir / "ledger.db"}

ledger:
  default_currency: usd
  amount_scale: 2
  max_abs_amount: "5000000"
  future_tolerance_days: 2
  enforce_category_sign: false
  balance_cache: true
  storage_retry_attempts: 5
  storage_retry_base_delay: 0.01

web:
  secret_key: "test_jwt_secret_key_xyz"
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """테스트용 Ledger 설정 (재시도 대기 최소화)"""
    return LedgerConfig(storage_retry_base_delay=0.0)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    return temp_dir / "test_ledger.db"


@pytest_asyncio.fixture
async def db(db_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()
    await init_ledger_schema(adapter)

    yield adapter

    await adapter.close()


@pytest_asyncio.fixture
async def store(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


@pytest_asyncio.fixture
async def service(store: LedgerStore, ledger_config: LedgerConfig) -> TransactionService:
    aggregator = BalanceAggregator(store, ledger_config)
    return TransactionService(store, aggregator, ledger_config)


@pytest_asyncio.fixture
async def alice(service: TransactionService) -> Identity:
    """테스트 사용자 A"""
    user = await service.register_user("alice", "hash-alice")
    return Identity(user_id=user.user_id, display_name=user.display_name)


@pytest_asyncio.fixture
async def bob(service: TransactionService) -> Identity:
    """테스트 사용자 B"""
    user = await service.register_user("bob", "hash-bob")
    return Identity(user_id=user.user_id, display_name=user.display_name)
