"""
combinations.py - 자전거 조합 생성기 (v1.0)

자전거 타입(무게/단가) 목록과 최대 대수로부터
1대 ~ max_bikes대까지 가능한 모든 중복 조합을 생성한다.

순서 규칙 (고정):
1. 총 대수 오름차순
2. 타입 인덱스 순서
3. 타입별 수량 오름차순

사용자 라벨은 앞뒤 공백을 제거한 값이 이름 접두어로 들어간다.
"""

from decimal import Decimal
from math import comb
from typing import Iterator, List, Optional, Sequence, Tuple

from .models import (
    BikeTypeUnit,
    BreakdownItem,
    GeneratedCombination,
    format_weight,
)

# (타입 인덱스, 수량) 쌍의 불변 튜플
Assignment = Tuple[Tuple[int, int], ...]


def _distributions(
    type_count: int,
    remaining: int,
    start: int = 0,
    current: Assignment = (),
) -> Iterator[Assignment]:
    """remaining대를 start 이후 타입들에 나눠 담는 모든 경우"""
    if remaining == 0:
        if current:
            yield current
        return

    for index in range(start, type_count):
        for count in range(1, remaining + 1):
            yield from _distributions(
                type_count,
                remaining - count,
                index + 1,
                current + ((index, count),),
            )


def _build(
    units: Sequence[BikeTypeUnit],
    assignment: Assignment,
    label: str,
) -> GeneratedCombination:
    breakdown = tuple(
        BreakdownItem(
            type_id=units[index].id,
            type_name=units[index].name,
            unit_weight=units[index].weight,
            count=count,
            weight=units[index].weight * count,
            price=units[index].price * count,
        )
        for index, count in assignment
    )

    total_weight = sum(b.weight for b in breakdown)
    total_price = sum((b.price for b in breakdown), Decimal("0"))
    bike_count = sum(b.count for b in breakdown)

    desc_parts = " + ".join(f"{b.count}x {b.type_name}" for b in breakdown)
    description = f"{desc_parts} | Total: {format_weight(total_weight)}kg"

    if label:
        name = f"{label} | {desc_parts}"
    else:
        weight_parts = " + ".join(
            f"{b.count}x {format_weight(b.unit_weight)}kg" for b in breakdown
        )
        bike_word = "Bike" if bike_count == 1 else "Bikes"
        name = f"{bike_count} {bike_word} ({format_weight(total_weight)}kg): {weight_parts}"

    combo_id = "combo-{}-{}".format(
        bike_count,
        "-".join(f"{index}-{count}" for index, count in assignment),
    )

    return GeneratedCombination(
        id=combo_id,
        name=name,
        description=description,
        total_price=total_price,
        total_weight=total_weight,
        bike_count=bike_count,
        breakdown=breakdown,
    )


def iter_combinations(
    units: Sequence[BikeTypeUnit],
    max_bikes: int,
    label: Optional[str] = None,
) -> Iterator[GeneratedCombination]:
    """조합을 하나씩 생성 (지연 평가)

    Args:
        units: 자전거 타입 목록 (비활성/가격 0 타입은 제외됨)
        max_bikes: 최대 총 대수
        label: 사용자 지정 이름 접두어 (공백 제거 후 비어 있으면 자동 이름)
    """
    qualifying = [u for u in units if u.qualifies]
    if not qualifying:
        return

    label = (label or "").strip()
    for total in range(1, max_bikes + 1):
        for assignment in _distributions(len(qualifying), total):
            yield _build(qualifying, assignment, label)


def enumerate_combinations(
    units: Sequence[BikeTypeUnit],
    max_bikes: int,
    label: Optional[str] = None,
) -> List[GeneratedCombination]:
    """모든 조합 리스트 반환"""
    return list(iter_combinations(units, max_bikes, label))


def count_combinations(type_count: int, max_bikes: int) -> int:
    """생성될 조합 수 (stars and bars): sum C(n+k-1, k-1), n=1..max"""
    if type_count <= 0 or max_bikes <= 0:
        return 0

    return sum(comb(n + type_count - 1, type_count - 1) for n in range(1, max_bikes + 1))
