"""
test_pricing_rules.py - 벌크 가격 규칙 엔진 테스트

테스트 항목:
1. 연산별 결과 (free/fixed/add/subtract/multiply/percentage)
2. 배수 적용 순서와 반올림 (마지막 1회)
3. 활성 판정 (피연산자 미입력은 0이 아님)
4. 피연산자 파싱
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.exceptions import ValidationError
from src.domain.models import BulkOperation, OperationType
from src.domain.pricing import (
    apply_multiplier,
    apply_operation,
    compute_new_price,
    is_active,
    multiplied_price,
    parse_operand,
    round_money,
)

D = Decimal


class TestApplyOperation:
    """기본 연산 테스트"""

    def test_free_ignores_operand(self):
        """free는 항상 0"""
        assert apply_operation(D("89.00"), OperationType.FREE, D("50")) == 0
        assert apply_operation(D("89.00"), OperationType.FREE, None) == 0

    def test_fixed(self):
        """fixed는 피연산자 그대로"""
        assert apply_operation(D("89.00"), OperationType.FIXED, D("75")) == D("75")

    def test_add(self):
        assert apply_operation(D("89.00"), OperationType.ADD, D("11")) == D("100.00")

    def test_subtract(self):
        assert apply_operation(D("100.00"), OperationType.SUBTRACT, D("25.50")) == D("74.50")

    def test_subtract_floors_at_zero(self):
        """빼기 결과는 0 미만이 되지 않음"""
        assert apply_operation(D("100.00"), OperationType.SUBTRACT, D("150")) == 0

    def test_multiply(self):
        assert apply_operation(D("40.00"), OperationType.MULTIPLY, D("1.5")) == D("60.000")

    def test_percentage_discount(self):
        """-10% 할인"""
        assert apply_operation(D("100.00"), OperationType.PERCENTAGE, D("-10")) == D("90")

    def test_percentage_full_discount(self):
        """-100% -> 0"""
        assert apply_operation(D("100.00"), OperationType.PERCENTAGE, D("-100")) == 0

    def test_percentage_zero_is_identity(self):
        assert apply_operation(D("100.00"), OperationType.PERCENTAGE, D("0")) == D("100.00")

    def test_missing_operand_passes_through(self):
        """피연산자 없음 -> 현재 가격 유지 (0으로 취급하지 않음)"""
        for op in (OperationType.FIXED, OperationType.ADD, OperationType.MULTIPLY):
            assert apply_operation(D("89.00"), op, None) == D("89.00")


class TestMultiplierAndRounding:
    """배수 / 반올림 테스트"""

    def test_no_multiplier_is_passthrough(self):
        assert apply_multiplier(D("12.345"), None) == D("12.345")

    def test_round_half_up(self):
        """센트 반올림 (half-up)"""
        assert round_money(D("10.005")) == D("10.01")
        assert round_money(D("10.004")) == D("10.00")
        assert round_money(D("2.675")) == D("2.68")

    def test_multiplier_applied_after_operation(self):
        """(100 + 10) x 2 = 220"""
        op = BulkOperation(OperationType.ADD, D("10"))
        assert compute_new_price(D("100"), op, D("2")) == D("220.00")

    def test_rounding_only_once(self):
        """연산 결과를 반올림하지 않고 배수까지 곱한 뒤 반올림"""
        # 10.005 * 3 = 30.015 -> 30.02 (중간 반올림 시 10.01 * 3 = 30.03)
        op = BulkOperation(OperationType.FIXED, D("10.005"))
        assert compute_new_price(D("0"), op, D("3")) == D("30.02")

    def test_factor_one_is_identity(self):
        """배수 1.0 == 배수 없음"""
        op = BulkOperation(OperationType.PERCENTAGE, D("7.5"))
        assert compute_new_price(D("89.99"), op, D("1.0")) == compute_new_price(D("89.99"), op)

    def test_scenario_percentage_discount(self):
        """$100, -10% -> $90.00"""
        op = BulkOperation(OperationType.PERCENTAGE, D("-10"))
        assert compute_new_price(D("100.00"), op) == D("90.00")

    def test_scenario_subtract_floor(self):
        """$100, -150 -> $0.00"""
        op = BulkOperation(OperationType.SUBTRACT, D("150"))
        assert compute_new_price(D("100.00"), op) == D("0.00")

    def test_multiplier_only(self):
        """피연산자 없이 배수만 -> 현재가 x 배수"""
        op = BulkOperation(OperationType.FIXED, None, multiplier_id="m1")
        assert compute_new_price(D("50.00"), op, D("1.8")) == D("90.00")

    def test_multiplied_price(self):
        """배수 계산기"""
        assert multiplied_price(D("89.00"), D("1.15")) == D("102.35")
        assert multiplied_price(D("89.00"), None) == D("89.00")


class TestIsActive:
    """활성 판정 테스트"""

    def test_free_always_active(self):
        assert is_active(BulkOperation(OperationType.FREE))

    def test_operand_present(self):
        assert is_active(BulkOperation(OperationType.ADD, D("0")))

    def test_missing_operand_inactive(self):
        """피연산자도 배수도 없으면 비활성"""
        assert not is_active(BulkOperation(OperationType.ADD))

    def test_multiplier_selected(self):
        assert is_active(BulkOperation(OperationType.ADD, multiplier_id="m1"))

    def test_explicit_has_multiplier_overrides_id(self):
        """해결되지 않은 배수 ID는 배수 없음으로 판정 가능"""
        op = BulkOperation(OperationType.ADD, multiplier_id="deleted")
        assert not is_active(op, has_multiplier=False)


class TestParseOperand:
    """피연산자 파싱 테스트"""

    def test_blank_is_none(self):
        assert parse_operand(None) is None
        assert parse_operand("") is None
        assert parse_operand("   ") is None

    def test_numbers(self):
        assert parse_operand("12.5") == D("12.5")
        assert parse_operand(" -10 ") == D("-10")
        assert parse_operand(3) == D("3")

    def test_not_a_number(self):
        with pytest.raises(ValidationError) as exc:
            parse_operand("abc")
        assert exc.value.field == "value"

    def test_not_finite(self):
        with pytest.raises(ValidationError):
            parse_operand("NaN")
        with pytest.raises(ValidationError):
            parse_operand("Infinity")
