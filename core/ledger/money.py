"""
금액 / 통화 검증

금액은 Decimal로만 다룬다.
- float 입력 거부 (반올림 오차 방지)
- 허용 소수 자릿수 초과 시 거부 (임의 반올림 금지)
- 0, NaN, Infinity, 범위 초과 거부
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from core.errors import InvalidAmount, ValidationError
from core.types import CategoryKind


def parse_amount(
    value: Any,
    scale: int = 2,
    max_abs: Decimal = Decimal("1000000000000"),
) -> Decimal:
    """금액 파싱 및 검증

    Args:
        value: Decimal, int 또는 숫자 문자열
        scale: 허용 소수 자릿수
        max_abs: 허용 절대값 상한 (포함)

    Returns:
        scale 자릿수로 정규화된 Decimal

    Raises:
        InvalidAmount: 형식/범위/정밀도 오류

    Example:
        >>> parse_amount("-250.5")
        Decimal('-250.50')
        >>> parse_amount(0.1)
        Traceback (most recent call last):
        ...
        core.errors.InvalidAmount: float 금액은 허용되지 않습니다: 0.1
    """
    if isinstance(value, float):
        raise InvalidAmount(f"float 금액은 허용되지 않습니다: {value}")

    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise InvalidAmount(f"지원하지 않는 금액 타입: {type(value).__name__}")

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise InvalidAmount(f"금액 형식이 잘못되었습니다: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmount(f"유한한 금액이어야 합니다: {value!r}")

    if amount.is_zero():
        raise InvalidAmount("금액은 0일 수 없습니다")

    if abs(amount) > max_abs:
        raise InvalidAmount(f"금액 범위 초과: |{amount}| > {max_abs}")

    quantum = Decimal(1).scaleb(-scale)
    try:
        quantized = amount.quantize(quantum)
    except InvalidOperation as e:
        # 자릿수가 Decimal 정밀도(28자리)를 넘는 경우
        raise InvalidAmount(f"금액 자릿수 초과: {amount}") from e

    if quantized != amount:
        raise InvalidAmount(f"소수 {scale}자리를 초과하는 금액: {amount}")

    return quantized


def normalize_currency(code: str) -> str:
    """통화 코드 정규화 (대문자 3자리)

    Raises:
        ValidationError: 형식 오류
    """
    normalized = (code or "").strip().upper()
    if len(normalized) != 3 or not normalized.isalpha() or not normalized.isascii():
        raise ValidationError(f"통화 코드 형식이 잘못되었습니다: {code!r}")
    return normalized


def check_sign(amount: Decimal, kind: CategoryKind | str) -> None:
    """카테고리 종류와 금액 부호 일치 확인

    수입(income)은 양수, 지출(expense)은 음수.

    Raises:
        InvalidAmount: 부호 불일치
    """
    kind = CategoryKind(kind)

    if kind == CategoryKind.INCOME and amount < 0:
        raise InvalidAmount(f"수입 카테고리에는 양수 금액만 허용됩니다: {amount}")

    if kind == CategoryKind.EXPENSE and amount > 0:
        raise InvalidAmount(f"지출 카테고리에는 음수 금액만 허용됩니다: {amount}")
