"""
catalog_merge.py - Shopify 요금 + 로컬 오버레이 병합

우선순위: 오버레이 값 > 무게 추론 카테고리 > Shopify 값
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .classifier import WeightClassifier
from .models import Rate, RateKey, RateOverlay, Zone


def _pick(*values):
    for value in values:
        if value is not None:
            return value
    return None


def merge_rate(
    rate: Rate,
    overlay: Optional[RateOverlay],
    classifier: WeightClassifier,
) -> Rate:
    """요금 1건 병합"""
    if overlay is None:
        if rate.category:
            return rate
        return replace(rate, category=classifier.classify_range(rate.min_weight, rate.max_weight))

    min_weight = _pick(overlay.min_weight, rate.min_weight)
    max_weight = _pick(overlay.max_weight, rate.max_weight)
    inferred = classifier.classify_range(min_weight, max_weight)

    return replace(
        rate,
        min_weight=min_weight,
        max_weight=max_weight,
        estimated_days=_pick(overlay.estimated_days, rate.estimated_days),
        description=_pick(overlay.description, rate.description),
        category=_pick(overlay.category, inferred, rate.category),
    )


def merge_catalog(
    zones: Iterable[Zone],
    overlays: Dict[RateKey, RateOverlay],
    classifier: Optional[WeightClassifier] = None,
) -> List[Zone]:
    """존 목록 전체 병합 (입력 순서 유지)"""
    classifier = classifier or WeightClassifier()
    return [
        replace(
            zone,
            rates=tuple(
                merge_rate(rate, overlays.get(RateKey(zone.id, rate.id)), classifier)
                for rate in zone.rates
            ),
        )
        for zone in zones
    ]
