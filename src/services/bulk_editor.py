"""
bulk_editor.py - 벌크 가격 편집 (v1.0)

1. preview(): 필터 + 연산 + 배수 -> 미리보기 행
2. apply(): 미리보기 가격을 순차 반영 (무게 조건 유지) 후 1회 refresh
"""

import logging
import threading
from functools import partial
from typing import List, Optional

from ..domain.models import (
    BatchResult,
    BulkOperation,
    PriceChangePreview,
    RatePatch,
    RateSelectors,
)
from ..domain.pricing import compute_new_price, is_active
from ..domain.rate_filter import filter_rates
from ..notifications.events import EventType
from .batch import BatchItem, BatchRunner, ProgressCallback

logger = logging.getLogger(__name__)


class BulkRateEditor:
    """필터링된 요금에 가격 연산 일괄 적용"""

    def __init__(self, catalog, multipliers, runner: Optional[BatchRunner] = None):
        """
        Args:
            catalog: RateCatalog
            multipliers: MultiplierService
            runner: 배치 실행기
        """
        self.catalog = catalog
        self.multipliers = multipliers
        self.runner = runner or BatchRunner()

    def preview(
        self,
        selectors: RateSelectors,
        operation: BulkOperation,
    ) -> List[PriceChangePreview]:
        """변경 미리보기

        연산이 비활성(free 아님, 피연산자 없음, 배수 없음)이면 빈 목록.
        """
        multiplier = self.multipliers.resolve(operation.multiplier_id)
        factor = multiplier.multiplier if multiplier else None

        if not is_active(operation, has_multiplier=multiplier is not None):
            return []

        return [
            PriceChangePreview(
                key=rate.key(zone.id),
                zone_name=zone.name,
                rate_name=rate.name,
                currency=rate.currency,
                current_price=rate.price,
                new_price=compute_new_price(rate.price, operation, factor),
            )
            for zone, rate in filter_rates(self.catalog.get_zones(), selectors)
        ]

    def apply(
        self,
        previews: List[PriceChangePreview],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """미리보기 가격 반영"""
        items = [
            BatchItem(
                label=f"{p.zone_name} / {p.rate_name}",
                call=partial(self.catalog.update_rate, p.key, RatePatch.of(price=p.new_price), refresh=False),
            )
            for p in previews
        ]

        result = self.runner.run(items, name="bulk price update",
                                 on_progress=on_progress, cancel_event=cancel_event)
        self.catalog.refresh()

        self.catalog.events.emit(
            EventType.BULK_COMPLETED,
            {"operation": "price_update", "total": result.total, "succeeded": result.succeeded},
            source="bulk_editor",
        )
        return result
