"""
core/utils/retry.py 테스트
"""

import pytest

from core.errors import Denied, StorageUnavailable
from core.utils.retry import retry_on_unavailable


class Flaky:
    """지정 횟수만큼 StorageUnavailable 후 성공"""

    def __init__(self, failures: int, error: Exception | None = None):
        self.failures = failures
        self.error = error or StorageUnavailable("database is locked")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestRetryOnUnavailable:
    """retry_on_unavailable 테스트"""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        operation = Flaky(failures=0)

        assert await retry_on_unavailable(operation, attempts=3, base_delay=0) == "ok"
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self) -> None:
        """일시 장애 후 성공"""
        operation = Flaky(failures=2)

        assert await retry_on_unavailable(operation, attempts=3, base_delay=0) == "ok"
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted(self) -> None:
        """재시도 소진 시 마지막 예외 전파"""
        operation = Flaky(failures=5)

        with pytest.raises(StorageUnavailable):
            await retry_on_unavailable(operation, attempts=3, base_delay=0)
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self) -> None:
        """StorageUnavailable 외에는 즉시 전파"""
        operation = Flaky(failures=5, error=Denied("nope"))

        with pytest.raises(Denied):
            await retry_on_unavailable(operation, attempts=3, base_delay=0)
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_attempts_at_least_one(self) -> None:
        operation = Flaky(failures=0)

        assert await retry_on_unavailable(operation, attempts=0, base_delay=0) == "ok"
        assert operation.calls == 1
