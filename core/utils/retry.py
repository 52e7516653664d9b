"""
재시도 유틸리티

StorageUnavailable(일시 장애)만 지수 backoff로 재시도.
그 외 예외는 즉시 전파한다.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_unavailable(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 0.05,
    label: str = "operation",
) -> T:
    """일시적 저장소 장애 시 재시도

    재시도해도 안전한(idempotent) 연산에만 사용해야 한다.

    Args:
        operation: 매 시도마다 새로 호출할 코루틴 팩토리
        attempts: 최대 시도 횟수 (1이면 재시도 없음)
        base_delay: 첫 대기 시간(초), 시도마다 2배

    Returns:
        operation 결과

    Raises:
        StorageUnavailable: 모든 시도 실패 시 마지막 예외
    """
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return await operation()
        except StorageUnavailable as e:
            if attempt >= attempts - 1:
                logger.error(
                    f"{label} 실패 (재시도 소진): {e}",
                    extra={"attempts": attempts},
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{label} 저장소 장애, {delay:.2f}초 후 재시도",
                extra={"attempt": attempt + 1, "error": str(e)},
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
