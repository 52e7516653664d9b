"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수

    settings.yaml에 값이 없을 때 사용.
    """

    CURRENCY: str = "USD"
    AMOUNT_SCALE: int = 2
    MAX_ABS_AMOUNT: Decimal = Decimal("1000000000000")
    FUTURE_TOLERANCE_DAYS: int = 1
    ENFORCE_CATEGORY_SIGN: bool = True
    BALANCE_CACHE: bool = True
    BALANCE_CACHE_SIZE: int = 1024  # 프로세스당 최대 캐시 항목 수

    STORAGE_RETRY_ATTEMPTS: int = 3
    STORAGE_RETRY_BASE_DELAY: float = 0.05

    JWT_ALGORITHM: str = "HS256"

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    PAGE_LIMIT: int = 100


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "ledger.db"


class SQLiteLimits:
    """SQLite 연결 관련 값"""

    BUSY_TIMEOUT_MS: int = 30000  # 30초 대기
