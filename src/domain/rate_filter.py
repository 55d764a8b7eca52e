"""
rate_filter.py - 벌크 편집 대상 필터

존/국가/카테고리 세 단계 AND, 단계 내부는 OR.
빈 선택자는 "제한 없음".
"""

from typing import Iterable, List, Tuple

from .models import Rate, RateSelectors, Zone


def zone_matches(zone: Zone, selectors: RateSelectors) -> bool:
    """존 ID / 국가 단계 통과 여부"""
    if selectors.zone_ids and zone.id not in selectors.zone_ids:
        return False
    if selectors.countries and not selectors.countries.intersection(zone.countries):
        return False
    return True


def rate_matches(rate: Rate, selectors: RateSelectors) -> bool:
    """카테고리 단계 통과 여부"""
    if not selectors.categories:
        return True
    return bool(rate.category) and rate.category in selectors.categories


def filter_rates(
    zones: Iterable[Zone],
    selectors: RateSelectors,
) -> List[Tuple[Zone, Rate]]:
    """조건에 맞는 (존, 요금) 쌍 목록 (입력 순서 유지)"""
    return [
        (zone, rate)
        for zone in zones
        if zone_matches(zone, selectors)
        for rate in zone.rates
        if rate_matches(rate, selectors)
    ]
