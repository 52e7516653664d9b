"""
core/ledger/money.py 테스트

금액 파싱(Decimal only), 통화 코드, 부호 검증
"""

from decimal import Decimal

import pytest

from core.errors import InvalidAmount, ValidationError
from core.ledger.money import check_sign, normalize_currency, parse_amount
from core.types import CategoryKind


class TestParseAmount:
    """parse_amount 테스트"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("1000.00"), Decimal("1000.00")),
            ("-250.5", Decimal("-250.50")),
            (" 40 ", Decimal("40.00")),
            (7, Decimal("7.00")),
            ("0.01", Decimal("0.01")),
        ],
    )
    def test_valid(self, value: object, expected: Decimal) -> None:
        result = parse_amount(value)

        assert result == expected
        assert result.as_tuple().exponent == -2

    def test_float_rejected(self) -> None:
        """float은 정확하지 않으므로 거부"""
        with pytest.raises(InvalidAmount, match="float"):
            parse_amount(0.1)

    def test_bool_rejected(self) -> None:
        with pytest.raises(InvalidAmount):
            parse_amount(True)

    def test_unsupported_type(self) -> None:
        with pytest.raises(InvalidAmount):
            parse_amount([1])

    @pytest.mark.parametrize("value", ["0", "0.00", Decimal("-0"), 0])
    def test_zero_rejected(self, value: object) -> None:
        with pytest.raises(InvalidAmount, match="0일 수 없습니다"):
            parse_amount(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_rejected(self, value: str) -> None:
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(InvalidAmount, match="형식"):
            parse_amount("12,50")

    def test_extra_precision_rejected(self) -> None:
        """임의 반올림 없이 거부"""
        with pytest.raises(InvalidAmount, match="소수 2자리"):
            parse_amount("10.005")

    def test_trailing_zeros_allowed(self) -> None:
        """값이 같으면 자릿수가 많아도 허용"""
        assert parse_amount("10.500") == Decimal("10.50")

    def test_custom_scale(self) -> None:
        assert parse_amount("0.001", scale=3) == Decimal("0.001")
        assert parse_amount("5", scale=0) == Decimal("5")

    def test_max_abs_inclusive(self) -> None:
        """상한은 포함"""
        assert parse_amount("100", max_abs=Decimal("100")) == Decimal("100.00")
        assert parse_amount("-100", max_abs=Decimal("100")) == Decimal("-100.00")

        with pytest.raises(InvalidAmount, match="범위 초과"):
            parse_amount("100.01", max_abs=Decimal("100"))

    def test_beyond_decimal_precision(self) -> None:
        """28자리를 넘는 금액은 InvalidAmount (decimal 예외 누출 없음)"""
        with pytest.raises(InvalidAmount, match="자릿수 초과"):
            parse_amount("1e27", scale=8, max_abs=Decimal("1e30"))


class TestNormalizeCurrency:
    """normalize_currency 테스트"""

    def test_uppercase(self) -> None:
        assert normalize_currency(" eur ") == "EUR"

    @pytest.mark.parametrize("code", ["", "US", "USDT", "U$D", "12A"])
    def test_invalid(self, code: str) -> None:
        with pytest.raises(ValidationError):
            normalize_currency(code)


class TestCheckSign:
    """check_sign 테스트"""

    def test_income_positive(self) -> None:
        check_sign(Decimal("10"), CategoryKind.INCOME)

    def test_expense_negative(self) -> None:
        check_sign(Decimal("-10"), "expense")

    def test_income_negative_rejected(self) -> None:
        with pytest.raises(InvalidAmount, match="수입"):
            check_sign(Decimal("-10"), CategoryKind.INCOME)

    def test_expense_positive_rejected(self) -> None:
        with pytest.raises(InvalidAmount, match="지출"):
            check_sign(Decimal("10"), CategoryKind.EXPENSE)
