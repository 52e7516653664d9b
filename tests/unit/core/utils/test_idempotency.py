"""
core/utils/idempotency.py 테스트

idempotency_key 정규화 및 검증 테스트
"""

import pytest

from core.errors import ValidationError
from core.utils.idempotency import MAX_IDEMPOTENCY_KEY_LENGTH, normalize_idempotency_key


class TestNormalizeIdempotencyKey:
    """normalize_idempotency_key 함수 테스트"""

    def test_none_passthrough(self) -> None:
        assert normalize_idempotency_key(None) is None

    def test_strip(self) -> None:
        """앞뒤 공백 제거"""
        assert normalize_idempotency_key("  req-001 ") == "req-001"

    def test_deterministic(self) -> None:
        """동일 입력 → 동일 출력"""
        assert normalize_idempotency_key("abc") == normalize_idempotency_key(" abc")

    def test_empty(self) -> None:
        with pytest.raises(ValidationError):
            normalize_idempotency_key("   ")

    def test_max_length(self) -> None:
        """최대 길이까지 허용"""
        key = "k" * MAX_IDEMPOTENCY_KEY_LENGTH
        assert normalize_idempotency_key(key) == key

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError, match="길이 초과"):
            normalize_idempotency_key("k" * (MAX_IDEMPOTENCY_KEY_LENGTH + 1))

    def test_non_printable(self) -> None:
        with pytest.raises(ValidationError):
            normalize_idempotency_key("req\x00001")
