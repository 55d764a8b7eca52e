"""
test_weight_classifier.py - 무게 기반 카테고리 추론 / 카탈로그 병합 테스트
"""

import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import RateConfig
from src.domain.catalog_merge import merge_catalog, merge_rate
from src.domain.classifier import WeightClassifier, classify_weight_range
from src.domain.models import Rate, RateKey, RateOverlay, Zone


class TestClassifySingle:
    """단일 무게 분류"""

    def setup_method(self):
        self.classifier = WeightClassifier()

    def test_exact_match(self):
        assert self.classifier.classify_single(15) == "Road Bike"
        assert self.classifier.classify_single(18.0) == "Mountain Bike"
        assert self.classifier.classify_single(25) == "E-Bike"

    def test_multiples(self):
        """정수배"""
        assert self.classifier.classify_single(30) == "Road Bike"
        assert self.classifier.classify_single(36) == "Mountain Bike"
        assert self.classifier.classify_single(50) == "E-Bike"

    def test_multiple_checks_largest_first(self):
        """여러 기준의 배수면 무거운 기준 우선"""
        # 75 = 25x3 = 15x5
        assert self.classifier.classify_single(75) == "E-Bike"
        # 90 = 18x5 = 15x6
        assert self.classifier.classify_single(90) == "Mountain Bike"

    def test_paired_table(self):
        """두 대 조합 무게"""
        assert self.classifier.classify_single(33) == "Road Bike + Mountain Bike"
        assert self.classifier.classify_single(40) == "E-Bike + Road Bike"
        assert self.classifier.classify_single(43) == "E-Bike + Mountain Bike"

    def test_unmatched(self):
        assert self.classifier.classify_single(7) is None
        assert self.classifier.classify_single(0) is None
        assert self.classifier.classify_single(None) is None

    def test_custom_table(self):
        """설정으로 분류표 교체"""
        config = RateConfig(bike_weights={10: "Kids Bike"}, paired_weights={})
        assert WeightClassifier(config).classify_single(20) == "Kids Bike"


class TestClassifyRange:
    """범위 분류"""

    def test_equal_bounds_use_single(self):
        assert classify_weight_range(33, 33) == "Road Bike + Mountain Bike"

    def test_one_sided(self):
        """한쪽만 있으면 단일 분류"""
        assert classify_weight_range(None, 25) == "E-Bike"
        assert classify_weight_range(15, None) == "Road Bike"
        assert classify_weight_range(0, 18) == "Mountain Bike"

    def test_range_joins_categories(self):
        """범위 안의 기준 타입을 가벼운 순으로 연결"""
        assert classify_weight_range(10, 20) == "Road Bike / Mountain Bike"
        assert classify_weight_range(10, 30) == "Road Bike / Mountain Bike / E-Bike"

    def test_inclusive_bounds(self):
        assert classify_weight_range(18, 25) == "Mountain Bike / E-Bike"

    def test_range_without_match(self):
        assert classify_weight_range(1, 10) is None

    def test_no_weights(self):
        assert classify_weight_range(None, None) is None
        assert classify_weight_range(0, 0) is None


class TestMergeRate:
    """요금 + 오버레이 병합"""

    def setup_method(self):
        self.classifier = WeightClassifier()

    def test_no_overlay_infers_category(self):
        rate = Rate("r1", "Road", Decimal("89"), min_weight=15, max_weight=15)
        assert merge_rate(rate, None, self.classifier).category == "Road Bike"

    def test_no_overlay_keeps_existing_category(self):
        rate = Rate("r1", "Road", Decimal("89"), min_weight=15, max_weight=15, category="Parts")
        assert merge_rate(rate, None, self.classifier) is rate

    def test_overlay_values_take_precedence(self):
        rate = Rate("r1", "Road", Decimal("89"), description="Shipping method for Germany",
                    min_weight=15, max_weight=15)
        overlay = RateOverlay("r1", "z1", min_weight=30, max_weight=30,
                              estimated_days="5-7", description="Crated", category="Wheels")

        merged = merge_rate(rate, overlay, self.classifier)

        assert merged.min_weight == 30
        assert merged.max_weight == 30
        assert merged.estimated_days == "5-7"
        assert merged.description == "Crated"
        assert merged.category == "Wheels"
        assert merged.price == Decimal("89")

    def test_overlay_without_category_infers_from_merged_weights(self):
        """오버레이 무게로 카테고리 추론"""
        rate = Rate("r1", "Road", Decimal("89"), min_weight=15, max_weight=15)
        overlay = RateOverlay("r1", "z1", min_weight=25, max_weight=25)
        assert merge_rate(rate, overlay, self.classifier).category == "E-Bike"

    def test_overlay_falls_back_to_external(self):
        """오버레이 값이 없으면 Shopify 값"""
        rate = Rate("r1", "Road", Decimal("89"), description="external",
                    min_weight=7, max_weight=7, category="Other")
        overlay = RateOverlay("r1", "z1", estimated_days="3")

        merged = merge_rate(rate, overlay, self.classifier)

        assert merged.description == "external"
        assert merged.min_weight == 7
        assert merged.category == "Other"


class TestMergeCatalog:
    """카탈로그 전체 병합"""

    def test_lookup_by_zone_and_rate(self):
        """같은 요금 ID라도 존이 다르면 다른 오버레이"""
        zones = [
            Zone("z1", "A", ("DE",), (Rate("r1", "x", Decimal("1")),)),
            Zone("z2", "B", ("FR",), (Rate("r1", "x", Decimal("1")),)),
        ]
        overlays = {RateKey("z2", "r1"): RateOverlay("r1", "z2", category="Parts")}

        merged = merge_catalog(zones, overlays)

        assert merged[0].rates[0].category is None
        assert merged[1].rates[0].category == "Parts"

    def test_preserves_order(self):
        zones = [
            Zone("z2", "B", (), (Rate("b", "b", Decimal("1")), Rate("a", "a", Decimal("1")))),
            Zone("z1", "A", (), ()),
        ]
        merged = merge_catalog(zones, {})
        assert [z.id for z in merged] == ["z2", "z1"]
        assert [r.id for r in merged[0].rates] == ["b", "a"]
