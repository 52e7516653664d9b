"""
Idempotency 유틸리티

호출자가 전달하는 idempotency_key 검증.
같은 사용자 범위에서 같은 키로 재요청하면 최초 결과를 그대로 돌려준다.
"""

from core.errors import ValidationError

# idempotency_key 최대 길이
MAX_IDEMPOTENCY_KEY_LENGTH: int = 128


def normalize_idempotency_key(key: str | None) -> str | None:
    """idempotency_key 정규화 및 검증

    Args:
        key: 호출자 제공 키 (None 허용)

    Returns:
        앞뒤 공백이 제거된 키 또는 None

    Raises:
        ValidationError: 빈 문자열, 길이 초과, 출력 불가 문자 포함

    Example:
        >>> normalize_idempotency_key("  req-001 ")
        'req-001'
        >>> normalize_idempotency_key(None) is None
        True
    """
    if key is None:
        return None

    key = key.strip()
    if not key:
        raise ValidationError("idempotency_key는 비어 있을 수 없습니다")

    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"idempotency_key 길이 초과: {len(key)} > {MAX_IDEMPOTENCY_KEY_LENGTH}"
        )

    if not key.isprintable():
        raise ValidationError("idempotency_key에 출력 불가 문자가 포함되어 있습니다")

    return key
