"""
pricing.py - 벌크 가격 규칙 엔진 (v1.0)

계산 순서:
1. 기본 연산 (free/fixed/add/subtract/multiply/percentage)
2. 배수 적용 (선택 시)
3. 소수 둘째 자리 반올림 (ROUND_HALF_UP, 마지막에 한 번만)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from ..core.exceptions import ValidationError
from .models import BulkOperation, OperationType

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def round_money(amount: Decimal) -> Decimal:
    """센트 단위 반올림 (half-up)"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_operand(raw: Any, field: str = "value") -> Optional[Decimal]:
    """사용자 입력을 피연산자로 변환

    빈 값은 None (미입력). 숫자가 아니면 ValidationError.
    """
    if raw is None:
        return None
    if isinstance(raw, Decimal):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Not a number: {raw!r}", field=field, value=raw)
    if not value.is_finite():
        raise ValidationError(f"Not a finite number: {raw!r}", field=field, value=raw)
    return value


def apply_operation(
    current_price: Decimal,
    operation: OperationType,
    operand: Optional[Decimal],
) -> Decimal:
    """기본 연산 적용 (반올림 없음)

    operand가 None이면 free를 제외하고 현재 가격을 그대로 반환한다.
    """
    if operation is OperationType.FREE:
        return ZERO
    if operand is None:
        return current_price

    if operation is OperationType.FIXED:
        return operand
    if operation is OperationType.ADD:
        return current_price + operand
    if operation is OperationType.SUBTRACT:
        return max(ZERO, current_price - operand)
    if operation is OperationType.MULTIPLY:
        return current_price * operand
    if operation is OperationType.PERCENTAGE:
        return current_price * (1 + operand / HUNDRED)

    raise ValidationError(f"Unknown operation: {operation}", field="type", value=operation)


def apply_multiplier(price: Decimal, factor: Optional[Decimal]) -> Decimal:
    """배수 적용 (None = 배수 없음)"""
    if factor is None:
        return price
    return price * factor


def is_active(operation: BulkOperation, has_multiplier: bool = None) -> bool:
    """미리보기/적용 가능한 연산인지

    free이거나, 피연산자가 있거나, 배수가 선택된 경우만 활성.
    """
    if has_multiplier is None:
        has_multiplier = bool(operation.multiplier_id)
    return (
        operation.type is OperationType.FREE
        or operation.value is not None
        or has_multiplier
    )


def compute_new_price(
    current_price: Decimal,
    operation: BulkOperation,
    factor: Optional[Decimal] = None,
) -> Decimal:
    """최종 가격 = round(연산(current) * 배수)"""
    result = apply_operation(current_price, operation.type, operation.value)
    result = apply_multiplier(result, factor)
    return round_money(result)


def multiplied_price(base_price: Decimal, factor: Optional[Decimal]) -> Decimal:
    """배수 계산기: round(base * factor)"""
    return round_money(apply_multiplier(base_price, factor))
