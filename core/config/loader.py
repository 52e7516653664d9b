"""
설정 로더

settings.yaml 로드 및 DB / Ledger / Web 설정 생성
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths

# Decimal 기본 컨텍스트 정밀도
MAX_AMOUNT_DIGITS = 28


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 연결 설정"""

    path: Path = Paths.LEDGER_DB


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger 동작 설정

    금액 정밀도, 미래 날짜 허용 범위, 잔액 캐시 등.
    """

    default_currency: str = Defaults.CURRENCY
    amount_scale: int = Defaults.AMOUNT_SCALE
    max_abs_amount: Decimal = Defaults.MAX_ABS_AMOUNT
    future_tolerance_days: int = Defaults.FUTURE_TOLERANCE_DAYS
    enforce_category_sign: bool = Defaults.ENFORCE_CATEGORY_SIGN
    balance_cache: bool = Defaults.BALANCE_CACHE
    balance_cache_size: int = Defaults.BALANCE_CACHE_SIZE
    storage_retry_attempts: int = Defaults.STORAGE_RETRY_ATTEMPTS
    storage_retry_base_delay: float = Defaults.STORAGE_RETRY_BASE_DELAY


@dataclass(frozen=True)
class WebConfig:
    """Web API 설정"""

    secret_key: str
    jwt_algorithm: str = Defaults.JWT_ALGORITHM


@dataclass(frozen=True)
class Settings:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    web: WebConfig
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)

    @property
    def db_path(self) -> Path:
        """DB 파일 경로"""
        return self.database.path


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _parse_database(data: dict[str, Any]) -> DatabaseConfig:
    raw_path = data.get("path")
    if not raw_path:
        return DatabaseConfig()

    path = Path(raw_path)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return DatabaseConfig(path=path)


def _parse_ledger(data: dict[str, Any]) -> LedgerConfig:
    """ledger 섹션 파싱

    Raises:
        SettingsLoadError: 값 형식이 잘못된 경우
    """
    try:
        max_abs_amount = Decimal(str(data.get("max_abs_amount", Defaults.MAX_ABS_AMOUNT)))
    except InvalidOperation as e:
        raise SettingsLoadError(
            f"ledger.max_abs_amount 형식이 잘못되었습니다: {data.get('max_abs_amount')}"
        ) from e

    if max_abs_amount <= 0:
        raise SettingsLoadError("ledger.max_abs_amount는 0보다 커야 합니다")

    currency = str(data.get("default_currency", Defaults.CURRENCY)).upper()
    if len(currency) != 3 or not currency.isalpha():
        raise SettingsLoadError(f"ledger.default_currency 형식이 잘못되었습니다: {currency}")

    amount_scale = int(data.get("amount_scale", Defaults.AMOUNT_SCALE))
    if not 0 <= amount_scale <= 8:
        raise SettingsLoadError(f"ledger.amount_scale 범위 초과: {amount_scale}")

    balance_cache_size = int(data.get("balance_cache_size", Defaults.BALANCE_CACHE_SIZE))
    if balance_cache_size < 1:
        raise SettingsLoadError(
            f"ledger.balance_cache_size는 1 이상이어야 합니다: {balance_cache_size}"
        )

    # 정수부 + 소수부 자릿수가 Decimal 기본 정밀도 안에 들어와야 함
    if max_abs_amount.adjusted() + 1 + amount_scale > MAX_AMOUNT_DIGITS:
        raise SettingsLoadError(
            f"ledger.max_abs_amount({max_abs_amount})와 amount_scale({amount_scale})의 "
            f"자릿수 합이 {MAX_AMOUNT_DIGITS}자리를 초과합니다"
        )

    return LedgerConfig(
        default_currency=currency,
        amount_scale=amount_scale,
        max_abs_amount=max_abs_amount,
        future_tolerance_days=int(
            data.get("future_tolerance_days", Defaults.FUTURE_TOLERANCE_DAYS)
        ),
        enforce_category_sign=bool(
            data.get("enforce_category_sign", Defaults.ENFORCE_CATEGORY_SIGN)
        ),
        balance_cache=bool(data.get("balance_cache", Defaults.BALANCE_CACHE)),
        balance_cache_size=balance_cache_size,
        storage_retry_attempts=int(
            data.get("storage_retry_attempts", Defaults.STORAGE_RETRY_ATTEMPTS)
        ),
        storage_retry_base_delay=float(
            data.get("storage_retry_base_delay", Defaults.STORAGE_RETRY_BASE_DELAY)
        ),
    )


def load_settings(path: Path | None = None) -> Settings:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml이 비어 있습니다")

    web_data = data.get("web") or {}
    secret_key = web_data.get("secret_key")
    if not secret_key:
        raise SettingsLoadError("settings.yaml의 web 섹션에 'secret_key'가 없습니다")

    return Settings(
        web=WebConfig(
            secret_key=secret_key,
            jwt_algorithm=web_data.get("jwt_algorithm", Defaults.JWT_ALGORITHM),
        ),
        database=_parse_database(data.get("database") or {}),
        ledger=_parse_ledger(data.get("ledger") or {}),
    )


_settings: Settings | None = None


def get_settings(path: Path | None = None) -> Settings:
    """Settings 싱글턴 반환

    Args:
        path: settings.yaml 경로 (최초 호출 시에만 사용)

    Returns:
        Settings 인스턴스
    """
    global _settings
    if _settings is None:
        _settings = load_settings(path)
    return _settings


def reset_settings() -> None:
    """싱글턴 인스턴스 초기화 (테스트용)"""
    global _settings
    _settings = None
