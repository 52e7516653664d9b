"""
core/config/loader.py 테스트

settings.yaml 로드, 검증, 기본값 적용 테스트
"""

from decimal import Decimal
from pathlib import Path

import pytest

from core.config.loader import (
    DatabaseConfig,
    LedgerConfig,
    Settings,
    SettingsLoadError,
    WebConfig,
    get_settings,
    load_settings,
    reset_settings,
)
from core.constants import PROJECT_ROOT, Defaults, Paths


class TestDataclasses:
    """설정 데이터클래스 테스트"""

    def test_ledger_defaults(self) -> None:
        """기본값"""
        config = LedgerConfig()

        assert config.default_currency == Defaults.CURRENCY
        assert config.amount_scale == 2
        assert config.max_abs_amount == Decimal("1000000000000")
        assert config.enforce_category_sign is True
        assert config.balance_cache_size == Defaults.BALANCE_CACHE_SIZE

    def test_frozen(self) -> None:
        """불변성 확인"""
        config = LedgerConfig()

        with pytest.raises(AttributeError):
            config.amount_scale = 4  # type: ignore

    def test_settings_db_path(self) -> None:
        settings = Settings(web=WebConfig(secret_key="k"))

        assert settings.db_path == Paths.LEDGER_DB
        assert settings.database == DatabaseConfig()


class TestLoadSettings:
    """load_settings 테스트"""

    def test_load_valid_file(self, temp_settings_file: Path, temp_dir: Path) -> None:
        """정상 파일 로드"""
        settings = load_settings(temp_settings_file)

        assert settings.web.secret_key == "test_jwt_secret_key_xyz"
        assert settings.web.jwt_algorithm == "HS256"
        assert settings.db_path == temp_dir / "ledger.db"

        ledger = settings.ledger
        assert ledger.default_currency == "USD"  # 대문자 정규화
        assert ledger.max_abs_amount == Decimal("5000000")
        assert ledger.future_tolerance_days == 2
        assert ledger.enforce_category_sign is False
        assert ledger.storage_retry_attempts == 5
        assert ledger.storage_retry_base_delay == 0.01

    def test_missing_sections_use_defaults(self, temp_dir: Path) -> None:
        """web 외 섹션이 없으면 기본값"""
        path = temp_dir / "minimal.yaml"
        path.write_text("web:\n  secret_key: abc\n", encoding="utf-8")

        settings = load_settings(path)

        assert settings.ledger == LedgerConfig()
        assert settings.db_path == Paths.LEDGER_DB

    def test_relative_db_path(self, temp_dir: Path) -> None:
        """상대 경로는 프로젝트 루트 기준"""
        path = temp_dir / "relative.yaml"
        path.write_text(
            "database:\n  path: data/other.db\nweb:\n  secret_key: abc\n",
            encoding="utf-8",
        )

        settings = load_settings(path)

        assert settings.db_path == PROJECT_ROOT / "data" / "other.db"

    def test_file_not_found(self, temp_dir: Path) -> None:
        with pytest.raises(SettingsLoadError, match="찾을 수 없습니다"):
            load_settings(temp_dir / "nope.yaml")

    def test_empty_file(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="비어 있습니다"):
            load_settings(path)

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.yaml"
        path.write_text("web: [unclosed\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="파싱 실패"):
            load_settings(path)

    def test_missing_secret_key(self, temp_dir: Path) -> None:
        path = temp_dir / "nosecret.yaml"
        path.write_text("ledger:\n  amount_scale: 2\n", encoding="utf-8")

        with pytest.raises(SettingsLoadError, match="secret_key"):
            load_settings(path)

    @pytest.mark.parametrize(
        "ledger_yaml",
        [
            "max_abs_amount: abc",
            "max_abs_amount: -1",
            "default_currency: DOLLARS",
            "amount_scale: 12",
            "balance_cache_size: 0",
            "max_abs_amount: \"1e30\"",
        ],
    )
    def test_invalid_ledger_values(self, temp_dir: Path, ledger_yaml: str) -> None:
        """ledger 섹션 값 검증"""
        path = temp_dir / "invalid.yaml"
        path.write_text(
            f"ledger:\n  {ledger_yaml}\nweb:\n  secret_key: abc\n",
            encoding="utf-8",
        )

        with pytest.raises(SettingsLoadError):
            load_settings(path)


class TestGetSettings:
    """싱글턴 테스트"""

    def setup_method(self) -> None:
        reset_settings()

    def teardown_method(self) -> None:
        reset_settings()

    def test_singleton(self, temp_settings_file: Path) -> None:
        first = get_settings(temp_settings_file)
        second = get_settings()

        assert first is second

    def test_reset(self, temp_settings_file: Path) -> None:
        first = get_settings(temp_settings_file)
        reset_settings()
        second = get_settings(temp_settings_file)

        assert first is not second
        assert first == second
