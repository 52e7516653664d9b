"""
Access Guard

인증된 Identity가 접근할 수 있는 Ledger 데이터 범위 결정.
(identity, action, 리소스 소유자)만으로 판단하는 상태 없는 검사.

규칙:
- 본인 소유 리소스: 모든 행위 허용
- 공용 기본 리소스 (owner_id = None): READ(조회/참조)만 허용
- 타인 소유 리소스: 모두 거부
"""

import logging

from core.errors import Denied
from core.types import Identity, LedgerAction

logger = logging.getLogger(__name__)


class AccessGuard:
    """Access Guard

    사용 예시:
    ```python
    guard = AccessGuard()
    guard.authorize(identity, LedgerAction.WRITE, tx.user_id)  # 거부 시 Denied
    ```
    """

    def is_allowed(
        self,
        identity: Identity,
        action: LedgerAction | str,
        owner_id: str | None,
    ) -> bool:
        """접근 허용 여부

        Args:
            identity: 인증된 사용자
            action: 수행하려는 행위
            owner_id: 리소스 소유자 (None = 공용 기본 리소스)

        Returns:
            허용이면 True
        """
        action = LedgerAction(action)

        if owner_id is None:
            return action == LedgerAction.READ

        return owner_id == identity.user_id

    def authorize(
        self,
        identity: Identity,
        action: LedgerAction | str,
        owner_id: str | None,
    ) -> None:
        """접근 검사

        Raises:
            Denied: 허용되지 않는 접근
        """
        if self.is_allowed(identity, action, owner_id):
            return

        action = LedgerAction(action)
        logger.warning(
            "Access denied",
            extra={
                "user_id": identity.user_id,
                "action": action.value,
                "owner_id": owner_id,
            },
        )
        if owner_id is None:
            raise Denied(f"Shared default resources are read-only ({action.value})")
        raise Denied(f"{action.value} on another user's resource is not allowed")
