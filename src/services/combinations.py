"""
combinations.py - 조합 요금 생성/삭제 (v1.0)

선택된 조합 하나당 요금 하나 생성:
- 가격 = 조합 총액
- 최소/최대 무게 = 조합 총 무게
- 설명 = 조합 설명
"""

import logging
import threading
from functools import partial
from typing import Iterable, List, Optional, Sequence

from ..core.config import RateConfig, DEFAULT_CONFIG
from ..core.exceptions import ValidationError
from ..domain.combinations import enumerate_combinations
from ..domain.models import (
    BatchResult,
    BikeTypeUnit,
    GeneratedCombination,
    RateDraft,
    RateKey,
)
from ..notifications.events import EventType
from .batch import BatchItem, BatchRunner, ProgressCallback

logger = logging.getLogger(__name__)


class CombinationService:
    """조합 생성기 + 요금 일괄 생성/삭제"""

    def __init__(
        self,
        catalog,
        runner: Optional[BatchRunner] = None,
        config: Optional[RateConfig] = None,
    ):
        self.catalog = catalog
        self.runner = runner or BatchRunner()
        self.config = config or DEFAULT_CONFIG

    def generate(
        self,
        units: Sequence[BikeTypeUnit],
        max_bikes: int = None,
        label: Optional[str] = None,
    ) -> List[GeneratedCombination]:
        """조합 생성 (저장 안 함)"""
        max_bikes = self.config.default_max_bikes if max_bikes is None else max_bikes
        if max_bikes < 1:
            raise ValidationError("max_bikes must be at least 1", field="max_bikes", value=max_bikes)

        combinations = enumerate_combinations(units, max_bikes, label)
        logger.info(f"Generated {len(combinations)} combinations (max {max_bikes} bikes)")
        return combinations

    def create_rates(
        self,
        zone_id: str,
        combinations: Iterable[GeneratedCombination],
        currency: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """선택된 조합을 요금으로 생성"""
        currency = currency or self.catalog.default_currency(zone_id, self.config.default_currency)

        items = []
        for combo in combinations:
            if not combo.selected:
                continue
            draft = RateDraft(
                name=combo.name,
                price=combo.total_price,
                currency=currency,
                description=combo.description,
                min_weight=combo.total_weight,
                max_weight=combo.total_weight,
            )
            items.append(BatchItem(
                label=combo.name,
                call=partial(self.catalog.create_rate, zone_id, draft, refresh=False),
            ))

        result = self.runner.run(items, name="combination rate create",
                                 on_progress=on_progress, cancel_event=cancel_event)
        self.catalog.refresh()

        self.catalog.events.emit(
            EventType.BULK_COMPLETED,
            {"operation": "create", "zone_id": zone_id,
             "total": result.total, "succeeded": result.succeeded},
            source="combinations",
        )
        return result

    def delete_rates(
        self,
        zone_id: str,
        rate_ids: Iterable[str],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """요금 일괄 삭제"""
        items = [
            BatchItem(
                label=rate_id,
                call=partial(self.catalog.delete_rate, RateKey(zone_id, rate_id), refresh=False),
            )
            for rate_id in rate_ids
        ]

        result = self.runner.run(items, name="bulk rate delete",
                                 on_progress=on_progress, cancel_event=cancel_event)
        self.catalog.refresh()

        self.catalog.events.emit(
            EventType.BULK_COMPLETED,
            {"operation": "delete", "zone_id": zone_id,
             "total": result.total, "succeeded": result.succeeded},
            source="combinations",
        )
        return result
