"""
catalog.py - 요금 카탈로그 서비스 (v1.0)

Shopify 존/요금 + 로컬 오버레이를 병합한 스냅샷을 보관한다.
모든 변경은 Shopify 호출 후 refresh()로 다시 읽는다.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional, Tuple

from ..core.exceptions import NotFoundError, ValidationError
from ..domain.catalog_merge import merge_catalog
from ..domain.classifier import WeightClassifier
from ..domain.models import (
    Rate,
    RateDraft,
    RateKey,
    RateOverlay,
    RatePatch,
    Zone,
    to_decimal,
)
from ..notifications.events import EventEmitter, EventType, get_event_emitter

logger = logging.getLogger(__name__)


def validate_draft(draft: RateDraft):
    """이름/가격 검증"""
    if not draft.name or not draft.name.strip():
        raise ValidationError("Rate name is required", field="name", value=draft.name)
    if draft.price is None:
        raise ValidationError("Rate price is required", field="price", value=None)
    if to_decimal(draft.price) < 0:
        raise ValidationError("Rate price must be >= 0", field="price", value=draft.price)


class RateCatalog:
    """병합된 존/요금 카탈로그"""

    def __init__(
        self,
        shopify,
        repository,
        events: Optional[EventEmitter] = None,
        classifier: Optional[WeightClassifier] = None,
    ):
        """
        Args:
            shopify: ShopifyClient (또는 MockShopifyClient)
            repository: LocalRepository / SupabaseRepository
            events: 이벤트 이미터 (기본: 전역)
            classifier: 무게 분류기
        """
        self.shopify = shopify
        self.repository = repository
        self.events = events or get_event_emitter()
        self.classifier = classifier or WeightClassifier()
        self._zones: Tuple[Zone, ...] = ()
        self._loaded = False

    # ========== 조회 ==========

    def refresh(self) -> Tuple[Zone, ...]:
        """Shopify + 오버레이 다시 읽기"""
        external = self.shopify.list_zones()
        overlays = self.repository.list_overlays()
        self._zones = tuple(merge_catalog(external, overlays, self.classifier))
        self._loaded = True

        self.events.emit(
            EventType.CATALOG_REFRESHED,
            {"zones": len(self._zones), "rates": sum(len(z.rates) for z in self._zones)},
            source="catalog",
        )
        return self._zones

    def get_zones(self) -> Tuple[Zone, ...]:
        """현재 스냅샷 (최초 호출 시 로드)"""
        if not self._loaded:
            self.refresh()
        return self._zones

    def get_zone(self, zone_id: str) -> Zone:
        for zone in self.get_zones():
            if zone.id == zone_id:
                return zone
        raise NotFoundError(f"Zone {zone_id} not found", entity="zone", entity_id=zone_id)

    def find_rate(self, key: RateKey) -> Tuple[Zone, Rate]:
        """RateKey로 (존, 요금) 조회"""
        zone = self.get_zone(key.zone_id)
        rate = zone.find_rate(key.rate_id)
        if rate is None:
            raise NotFoundError(f"Rate {key} not found", entity="rate", entity_id=str(key))
        return zone, rate

    def default_currency(self, zone_id: str, fallback: str = "USD") -> str:
        """존의 첫 요금 통화 (요금 없으면 fallback)"""
        zone = self.get_zone(zone_id)
        return zone.rates[0].currency if zone.rates else fallback

    # ========== 변경 ==========

    def _overlay_for(self, key: RateKey, patch: RatePatch) -> RateOverlay:
        existing = self.repository.list_overlays().get(key) or RateOverlay(key.rate_id, key.zone_id)
        updates = {f: patch.value(f) for f in RatePatch.OVERLAY_FIELDS if patch.is_set(f)}
        return replace(existing, **updates)

    def update_rate(self, key: RateKey, patch: RatePatch, refresh: bool = True) -> Rate:
        """요금 수정

        가격/이름/무게는 Shopify로, 설명/무게/배송일/카테고리는 오버레이로 저장.
        무게는 패치에 지정된 경우에만 Shopify 조건을 교체한다.
        """
        _, rate = self.find_rate(key)
        updated = patch.apply_to(rate)
        validate_draft(RateDraft(updated.name, updated.price))

        if patch.touches_catalog:
            draft = RateDraft(
                name=updated.name,
                price=updated.price,
                currency=updated.currency,
                description=updated.description,
                min_weight=updated.min_weight,
                max_weight=updated.max_weight,
            )
            self.shopify.update_rate(key.zone_id, key.rate_id, draft, replace_weights=patch.sets_weights)

        if patch.touches_overlay:
            self.repository.upsert_overlay(self._overlay_for(key, patch))

        logger.info(f"Updated rate {key}: {', '.join(patch.changed_fields)}")
        self.events.emit(
            EventType.RATE_UPDATED,
            {"zone_id": key.zone_id, "rate_id": key.rate_id, "fields": patch.changed_fields,
             "price": str(updated.price)},
            source="catalog",
        )

        if refresh:
            self.refresh()
        return updated

    def create_rate(
        self,
        zone_id: str,
        draft: RateDraft,
        refresh: bool = True,
        estimated_days: Optional[str] = None,
        category: Optional[str] = None,
    ):
        """요금 생성

        estimated_days/category는 Shopify에 없는 필드라 생성된 요금을
        다시 읽어 새 ID로 오버레이를 저장한다.
        """
        validate_draft(draft)
        with_overlay = bool(estimated_days or category)
        before = {r.id for r in self.get_zone(zone_id).rates} if with_overlay else set()

        result = self.shopify.create_rate(zone_id, draft)

        logger.info(f"Created rate '{draft.name}' in zone {zone_id}")
        self.events.emit(
            EventType.RATE_CREATED,
            {"zone_id": zone_id, "name": draft.name, "price": str(draft.price)},
            source="catalog",
        )

        if with_overlay:
            self.refresh()
            created = [r for r in self.get_zone(zone_id).rates if r.id not in before]
            if len(created) == 1:
                self.repository.upsert_overlay(RateOverlay(
                    rate_id=created[0].id,
                    zone_id=zone_id,
                    min_weight=draft.min_weight,
                    max_weight=draft.max_weight,
                    estimated_days=estimated_days,
                    description=draft.description,
                    category=category,
                ))
            else:
                logger.warning(f"Could not identify new rate '{draft.name}' in zone {zone_id}; "
                               f"category/days not stored")
            refresh = True

        if refresh:
            self.refresh()
        return result

    def delete_rate(self, key: RateKey, refresh: bool = True):
        """요금 삭제 (오버레이 포함)"""
        result = self.shopify.delete_rate(key.zone_id, key.rate_id)
        self.repository.delete_overlay(key)

        logger.info(f"Deleted rate {key}")
        self.events.emit(
            EventType.RATE_DELETED,
            {"zone_id": key.zone_id, "rate_id": key.rate_id},
            source="catalog",
        )

        if refresh:
            self.refresh()
        return result

    def set_price(self, key: RateKey, price: Decimal, refresh: bool = True) -> Rate:
        """가격만 변경 (무게 조건 유지)"""
        return self.update_rate(key, RatePatch.of(price=price), refresh=refresh)

    def rates_for(self, zone_id: str) -> List[Rate]:
        return list(self.get_zone(zone_id).rates)
