"""
사용자별 변경 직렬화

같은 사용자의 변경 연산은 한 번에 하나씩 실행되고
서로 다른 사용자는 서로를 기다리지 않는다.
프로세스 간 직렬화는 DB 트랜잭션(BEGIN IMMEDIATE)이 담당.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class UserLockRegistry:
    """user_id별 asyncio.Lock 관리

    대기 중인 Task가 없는 잠금은 해제 시 제거하여 메모리 누수 방지.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        """user_id 잠금 획득 후 실행"""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._waiters[user_id] -= 1
            if self._waiters[user_id] == 0:
                del self._waiters[user_id]
                del self._locks[user_id]

    def __len__(self) -> int:
        return len(self._locks)
