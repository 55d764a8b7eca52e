"""rate_filter.py 테스트"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.models import Rate, RateSelectors, Zone
from src.domain.rate_filter import filter_rates, rate_matches, zone_matches


@pytest.fixture
def zones():
    return [
        Zone("z-de", "Germany", ("DE",), (
            Rate("r1", "Road", Decimal("89"), category="Road Bike"),
            Rate("r2", "E-Bike", Decimal("119"), category="E-Bike"),
        )),
        Zone("z-eu", "Europe", ("FR", "NL"), (
            Rate("r3", "Standard", Decimal("129"), category=None),
            Rate("r4", "Mountain", Decimal("99"), category="Mountain Bike"),
        )),
        Zone("z-us", "United States", ("US",), (
            Rate("r5", "Road", Decimal("149"), category="Road Bike"),
        )),
    ]


def _ids(pairs):
    return [rate.id for _, rate in pairs]


class TestZoneMatches:
    """존 / 국가 단계"""

    def test_empty_selectors(self, zones):
        assert all(zone_matches(z, RateSelectors()) for z in zones)

    def test_zone_id(self, zones):
        selectors = RateSelectors.of(zone_ids=["z-eu"])
        assert [z.id for z in zones if zone_matches(z, selectors)] == ["z-eu"]

    def test_country_intersection(self, zones):
        """국가 중 하나라도 겹치면 통과"""
        selectors = RateSelectors.of(countries=["NL", "US"])
        assert [z.id for z in zones if zone_matches(z, selectors)] == ["z-eu", "z-us"]


class TestRateMatches:
    """카테고리 단계"""

    def test_uncategorized_excluded_when_filtering(self):
        """카테고리 없는 요금은 카테고리 필터에서 제외"""
        rate = Rate("r", "Standard", Decimal("10"))
        assert not rate_matches(rate, RateSelectors.of(categories=["Road Bike"]))

    def test_uncategorized_included_without_filter(self):
        rate = Rate("r", "Standard", Decimal("10"))
        assert rate_matches(rate, RateSelectors())


class TestFilterRates:
    """전체 필터 테스트"""

    def test_identity(self, zones):
        """선택자가 모두 비어 있으면 전체 (입력 순서)"""
        assert _ids(filter_rates(zones, RateSelectors())) == ["r1", "r2", "r3", "r4", "r5"]

    def test_category_or(self, zones):
        """단계 내부는 OR"""
        selectors = RateSelectors.of(categories=["Road Bike", "Mountain Bike"])
        assert _ids(filter_rates(zones, selectors)) == ["r1", "r4", "r5"]

    def test_stages_and(self, zones):
        """단계 간 AND"""
        selectors = RateSelectors.of(categories=["Road Bike"], countries=["DE"])
        assert _ids(filter_rates(zones, selectors)) == ["r1"]

    def test_no_match(self, zones):
        selectors = RateSelectors.of(categories=["Road Bike"], zone_ids=["z-eu"])
        assert filter_rates(zones, selectors) == []

    def test_idempotent(self, zones):
        """필터 결과를 다시 필터링해도 같음"""
        selectors = RateSelectors.of(categories=["Road Bike", "E-Bike"], countries=["DE", "US"])
        once = filter_rates(zones, selectors)

        regrouped = [Zone(z.id, z.name, z.countries, tuple(r for zz, r in once if zz.id == z.id))
                     for z in zones]
        twice = filter_rates(regrouped, selectors)

        assert _ids(twice) == _ids(once)

    def test_returns_zone_with_rate(self, zones):
        pairs = filter_rates(zones, RateSelectors.of(zone_ids=["z-us"]))
        zone, rate = pairs[0]
        assert zone.name == "United States"
        assert rate.price == Decimal("149")
