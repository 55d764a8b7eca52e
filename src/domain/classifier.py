"""
classifier.py - 무게 기반 카테고리 추론 (v1.0)

단일 무게:
1. 기준 무게와 정확히 일치
2. 기준 무게의 정수배 (무거운 기준부터 확인)
3. 두 대 조합 무게표
범위 무게: 범위 안에 들어가는 기준 타입을 " / "로 연결
"""

from typing import Optional

from ..core.config import RateConfig, DEFAULT_CONFIG


class WeightClassifier:
    """무게 -> 카테고리 분류기"""

    def __init__(self, config: Optional[RateConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def classify_single(self, weight: Optional[float]) -> Optional[str]:
        """단일 무게 분류"""
        if not weight:
            return None

        weights = self.config.bike_weights
        if weight in weights:
            return weights[weight]

        for base in sorted(weights, reverse=True):
            if weight % base == 0:
                return weights[base]

        return self.config.paired_weights.get(weight)

    def classify_range(
        self,
        min_weight: Optional[float],
        max_weight: Optional[float],
    ) -> Optional[str]:
        """범위 분류 (min == max 이거나 한쪽만 있으면 단일 분류)"""
        low = min_weight or 0
        high = max_weight or low

        if not low and not high:
            return None

        if low == high or not low or not high:
            return self.classify_single(high or low)

        # 기준 무게 오름차순: Road / Mountain / E-Bike
        matched = [
            category
            for base, category in sorted(self.config.bike_weights.items())
            if low <= base <= high
        ]
        return " / ".join(matched) if matched else None


_default_classifier = WeightClassifier()


def classify_weight_range(
    min_weight: Optional[float],
    max_weight: Optional[float],
) -> Optional[str]:
    """기본 분류표로 범위 분류"""
    return _default_classifier.classify_range(min_weight, max_weight)
