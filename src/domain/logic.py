"""
logic.py - 캐리어 서비스 요금 계산 (v1.0)

외부 의존성 없는 순수 파이썬 코드.
price = max(kg당 요금 x 무게, 최소 요금)
"""

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Mapping, Optional

from .models import CarrierBaseRate, CarrierQuote, to_decimal
from ..core.config import RateConfig, DEFAULT_CONFIG

GRAMS_PER_KG = Decimal("1000")


class CarrierRateCalculator:
    """무게 기반 캐리어 요금 계산기"""

    def __init__(self, config: Optional[RateConfig] = None):
        """
        Args:
            config: 요금 설정. None이면 기본값 사용.
        """
        self.config = config or DEFAULT_CONFIG

    @staticmethod
    def total_weight_kg(items: Iterable[Mapping]) -> Decimal:
        """장바구니 총 무게 (grams x quantity 합 / 1000)"""
        grams = sum(
            (to_decimal(item.get("grams")) * int(item.get("quantity", 1)) for item in items),
            Decimal("0"),
        )
        return grams / GRAMS_PER_KG

    def price_for(self, base_rate: CarrierBaseRate, weight_kg: Decimal) -> Decimal:
        """최종 요금 (통화 단위)"""
        return max(base_rate.price_per_kg * weight_kg, base_rate.min_price)

    def quote(
        self,
        base_rate: CarrierBaseRate,
        weight_kg: Decimal,
        today: Optional[date] = None,
    ) -> CarrierQuote:
        """요금 1건 견적

        Args:
            base_rate: 국가별 kg당 요금
            weight_kg: 총 무게 (kg)
            today: 기준일 (테스트용, 기본값 오늘)

        Returns:
            CarrierQuote: total_price는 센트 단위 문자열
        """
        today = today or date.today()
        price = self.price_for(base_rate, weight_kg)
        cents = (price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

        days_min = base_rate.estimated_days_min or self.config.default_days_min
        days_max = base_rate.estimated_days_max or self.config.default_days_max

        return CarrierQuote(
            service_name=base_rate.service_name or self.config.default_service_name,
            service_code=f"{base_rate.country_code}_{base_rate.id}",
            total_price=str(int(cents)),
            description=f"{weight_kg:.2f}kg - {days_min}-{days_max} days",
            currency=base_rate.currency,
            min_delivery_date=today + timedelta(days=days_min),
            max_delivery_date=today + timedelta(days=days_max),
        )

    def quote_all(
        self,
        base_rates: Iterable[CarrierBaseRate],
        weight_kg: Decimal,
        today: Optional[date] = None,
    ) -> List[CarrierQuote]:
        """활성 요금 전체 견적"""
        return [
            self.quote(rate, weight_kg, today)
            for rate in base_rates
            if rate.is_active
        ]
