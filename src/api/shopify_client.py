"""
shopify_client.py - Shopify 배송 프로필 연동 (v1.0)

기능:
1. 배송 존/요금 조회 (deliveryProfiles)
2. 요금 생성/수정/삭제 (deliveryProfileUpdate)
3. 무게 조건 관리 (기존 조건은 수정 불가 -> 삭제 후 재생성)
"""

import itertools
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from ..core.exceptions import (
    ExternalCallError,
    ExternalTimeoutError,
    NotFoundError,
    ShopifyError,
    ConfigurationError,
)
from ..domain.models import Rate, RateDraft, Zone, to_decimal

logger = logging.getLogger(__name__)


# Shopify 쿼리 비용 한도(1000) 안에서 페이지 크기 유지
ZONES_QUERY = """
query {
  deliveryProfiles(first: 3) {
    edges {
      node {
        id
        name
        profileLocationGroups {
          locationGroup { id }
          locationGroupZones(first: 100) {
            edges {
              node {
                zone {
                  id
                  name
                  countries { code { countryCode } name }
                }
                methodDefinitions(first: 20) {
                  edges {
                    node {
                      id
                      name
                      active
                      methodConditions {
                        id
                        conditionCriteria { ... on Weight { unit value } }
                        field
                        operator
                      }
                      rateProvider {
                        ... on DeliveryRateDefinition {
                          id
                          price { amount currencyCode }
                        }
                      }
                    }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

PROFILE_STRUCTURE_QUERY = """
query {
  deliveryProfiles(first: 5) {
    edges {
      node {
        id
        profileLocationGroups {
          locationGroup { id }
          locationGroupZones(first: 50) {
            edges {
              node {
                zone { id }
                methodDefinitions(first: 20) {
                  edges {
                    node {
                      id
                      methodConditions { id field }
                    }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

PROFILE_UPDATE_MUTATION = """
mutation deliveryProfileUpdate($id: ID!, $profile: DeliveryProfileInput!) {
  deliveryProfileUpdate(id: $id, profile: $profile) {
    profile { id name }
    userErrors { field message }
  }
}
"""

MIN_OPERATOR = "GREATER_THAN_OR_EQUAL_TO"
MAX_OPERATOR = "LESS_THAN_OR_EQUAL_TO"

# 응답 구조가 예상과 다를 때 나는 예외
_SHAPE_ERRORS = (KeyError, TypeError, AttributeError, ValueError, ArithmeticError)


@dataclass(frozen=True)
class ZoneLocation:
    """존이 속한 배송 프로필 / 위치 그룹"""
    profile_id: str
    location_group_id: str
    method_has_conditions: bool = False


def weight_conditions(min_weight: Optional[float], max_weight: Optional[float]) -> List[Dict[str, Any]]:
    """weightConditionsToCreate 입력 생성"""
    conditions = []
    if min_weight is not None:
        conditions.append({
            "criteria": {"unit": "KILOGRAMS", "value": min_weight},
            "operator": MIN_OPERATOR,
        })
    if max_weight is not None:
        conditions.append({
            "criteria": {"unit": "KILOGRAMS", "value": max_weight},
            "operator": MAX_OPERATOR,
        })
    return conditions


def _price_input(draft: RateDraft) -> Dict[str, Any]:
    return {"price": {"amount": str(draft.price), "currencyCode": draft.currency}}


class ShopifyClient:
    """Shopify Admin GraphQL 클라이언트"""

    def __init__(
        self,
        store: str,
        token: str,
        api_version: str = "2024-07",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            store: 스토어 도메인 (xxx.myshopify.com)
            token: Admin API 액세스 토큰
            api_version: Admin API 버전
            timeout: 요청 타임아웃 (초)
            session: 재사용할 requests 세션
        """
        if not store or not token:
            raise ConfigurationError(
                "Shopify credentials not configured",
                config_key="SHOPIFY_STORE" if not store else "SHOPIFY_TOKEN",
            )
        self.store = store
        self.token = token
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"https://{self.store}/admin/api/{self.api_version}/graphql.json"

    # ========== 저수준 호출 ==========

    def _execute(self, query: str, variables: Dict[str, Any] = None) -> Dict[str, Any]:
        """GraphQL 호출 후 data 반환"""
        payload = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Access-Token": self.token,
                },
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise ExternalTimeoutError(
                f"Shopify request timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                endpoint=self.endpoint,
                cause=e,
            )
        except requests.RequestException as e:
            raise ExternalCallError(
                f"Shopify request failed: {e}",
                endpoint=self.endpoint,
                cause=e,
            )

        if response.status_code >= 400:
            raise ExternalCallError(
                f"Shopify returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=response.text[:500],
                endpoint=self.endpoint,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ExternalCallError(
                "Shopify returned a non-JSON response",
                status_code=response.status_code,
                response_body=response.text[:500],
                endpoint=self.endpoint,
                cause=e,
            )
        if not isinstance(result, dict):
            raise self._malformed(f"expected an object, got {type(result).__name__}")

        if result.get("errors"):
            logger.error(f"Shopify errors: {result['errors']}")
            raise ShopifyError(
                result["errors"][0].get("message", "Unknown Shopify error"),
                endpoint=self.endpoint,
                details={"errors": result["errors"]},
            )
        return result.get("data") or {}

    def _malformed(self, reason) -> ExternalCallError:
        """응답 구조 오류 -> 외부 호출 실패"""
        return ExternalCallError(
            f"Unexpected Shopify response: {reason}",
            endpoint=self.endpoint,
            details={"reason": str(reason)},
        )

    def _update_profile(self, profile_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
        """deliveryProfileUpdate 실행 (userErrors -> ShopifyError)"""
        data = self._execute(PROFILE_UPDATE_MUTATION, {"id": profile_id, "profile": profile})
        update = data.get("deliveryProfileUpdate") or {}
        user_errors = update.get("userErrors") or []
        if user_errors:
            logger.error(f"Shopify user errors: {user_errors}")
            raise ShopifyError(
                user_errors[0].get("message", "Shopify rejected the update"),
                user_errors=user_errors,
                endpoint=self.endpoint,
            )
        return update.get("profile") or {}

    def _locate_zone(self, zone_id: str, method_id: str = None) -> ZoneLocation:
        """존 ID로 프로필/위치 그룹 탐색"""
        data = self._execute(PROFILE_STRUCTURE_QUERY)

        try:
            location = self._find_location(data, zone_id, method_id)
        except _SHAPE_ERRORS as e:
            raise self._malformed(f"missing {e}") from e
        if location is not None:
            return location

        raise NotFoundError(
            f"Could not find delivery profile structure for zone {zone_id}",
            entity="zone",
            entity_id=zone_id,
        )

    @staticmethod
    def _find_location(data: Dict[str, Any], zone_id: str, method_id: str = None) -> Optional[ZoneLocation]:
        for profile_edge in data["deliveryProfiles"]["edges"]:
            profile = profile_edge["node"]
            for group in profile["profileLocationGroups"]:
                for zone_edge in group["locationGroupZones"]["edges"]:
                    node = zone_edge["node"]
                    if node["zone"]["id"] != zone_id:
                        continue

                    has_conditions = False
                    if method_id:
                        for method_edge in node.get("methodDefinitions", {}).get("edges", []):
                            method = method_edge["node"]
                            if method["id"] == method_id:
                                has_conditions = bool(method.get("methodConditions"))
                                break

                    return ZoneLocation(
                        profile_id=profile["id"],
                        location_group_id=group["locationGroup"]["id"],
                        method_has_conditions=has_conditions,
                    )
        return None

    def _zone_update(self, location: ZoneLocation, zone_id: str, **zone_fields) -> Dict[str, Any]:
        return {
            "locationGroupsToUpdate": [
                {
                    "id": location.location_group_id,
                    "zonesToUpdate": [{"id": zone_id, **zone_fields}],
                }
            ]
        }

    # ========== 조회 ==========

    @staticmethod
    def _parse_method(method: Dict[str, Any], zone_name: str) -> Rate:
        min_weight = None
        max_weight = None
        for condition in method.get("methodConditions") or []:
            if condition.get("field") != "TOTAL_WEIGHT":
                continue
            value = (condition.get("conditionCriteria") or {}).get("value")
            if value is None:
                continue
            if condition.get("operator") == MIN_OPERATOR:
                min_weight = float(value)
            elif condition.get("operator") == MAX_OPERATOR:
                max_weight = float(value)

        price = (method.get("rateProvider") or {}).get("price") or {}
        return Rate(
            id=method["id"],
            name=method["name"],
            price=to_decimal(price.get("amount")),
            currency=price.get("currencyCode") or "USD",
            description=f"Shipping method for {zone_name}",
            min_weight=min_weight,
            max_weight=max_weight,
        )

    def list_zones(self) -> List[Zone]:
        """배송 존 + 활성 요금 목록"""
        data = self._execute(ZONES_QUERY)
        try:
            zones = self._parse_zones(data)
        except _SHAPE_ERRORS as e:
            raise self._malformed(f"missing {e}") from e

        logger.info(f"Fetched {len(zones)} zones from Shopify")
        return zones

    @classmethod
    def _parse_zones(cls, data: Dict[str, Any]) -> List[Zone]:
        zones = []
        for profile_edge in data["deliveryProfiles"]["edges"]:
            for group in profile_edge["node"]["profileLocationGroups"]:
                for zone_edge in group["locationGroupZones"]["edges"]:
                    node = zone_edge["node"]
                    zone = node["zone"]
                    rates = tuple(
                        cls._parse_method(edge["node"], zone["name"])
                        for edge in node["methodDefinitions"]["edges"]
                        if edge["node"].get("active")
                    )

                    # 국가가 하나면 국가명, 아니면 존 이름
                    country_names = [c["name"] for c in zone.get("countries", [])]
                    display_name = country_names[0] if len(country_names) == 1 else zone["name"]

                    zones.append(Zone(
                        id=zone["id"],
                        name=display_name,
                        countries=tuple(c["code"]["countryCode"] for c in zone.get("countries", [])),
                        rates=rates,
                    ))
        return zones

    # ========== 변경 ==========

    def create_rate(self, zone_id: str, draft: RateDraft) -> Dict[str, Any]:
        """요금 생성 (무게 조건 포함 가능)"""
        location = self._locate_zone(zone_id)

        method = {
            "name": draft.name,
            "description": draft.description or "",
            "active": True,
            "rateDefinition": _price_input(draft),
        }
        conditions = weight_conditions(draft.min_weight, draft.max_weight)
        if conditions:
            method["weightConditionsToCreate"] = conditions

        profile = self._zone_update(location, zone_id, methodDefinitionsToCreate=[method])
        result = self._update_profile(location.profile_id, profile)
        logger.info(f"Created rate '{draft.name}' in zone {zone_id}")
        return result

    def update_rate(
        self,
        zone_id: str,
        rate_id: str,
        draft: RateDraft,
        replace_weights: bool = False,
    ) -> Dict[str, Any]:
        """요금 수정

        replace_weights=True 이고 기존 무게 조건이 있으면
        한 번의 mutation으로 삭제 후 재생성한다 (요금 ID가 바뀜).
        """
        location = self._locate_zone(zone_id, method_id=rate_id)
        conditions = weight_conditions(draft.min_weight, draft.max_weight)

        if replace_weights and location.method_has_conditions:
            logger.info(f"Recreating rate {rate_id} to replace weight conditions")
            method = {
                "name": draft.name,
                "description": draft.description or "",
                "active": True,
                "rateDefinition": _price_input(draft),
                "weightConditionsToCreate": conditions,
            }
            profile = self._zone_update(location, zone_id, methodDefinitionsToCreate=[method])
            # methodDefinitionsToDelete는 프로필 레벨
            profile["methodDefinitionsToDelete"] = [rate_id]
            return self._update_profile(location.profile_id, profile)

        method = {
            "id": rate_id,
            "name": draft.name,
            "description": draft.description,
            "rateDefinition": _price_input(draft),
        }
        if replace_weights and conditions and not location.method_has_conditions:
            method["weightConditionsToCreate"] = conditions

        profile = self._zone_update(location, zone_id, methodDefinitionsToUpdate=[method])
        result = self._update_profile(location.profile_id, profile)
        logger.info(f"Updated rate {rate_id} in zone {zone_id}")
        return result

    def delete_rate(self, zone_id: str, rate_id: str) -> Dict[str, Any]:
        """요금 삭제"""
        location = self._locate_zone(zone_id)
        result = self._update_profile(
            location.profile_id,
            {"methodDefinitionsToDelete": [rate_id]},
        )
        logger.info(f"Deleted rate {rate_id} from zone {zone_id}")
        return result


class MockShopifyClient(ShopifyClient):
    """테스트용 Mock 클라이언트 (메모리 저장)"""

    def __init__(self, zones: List[Zone] = None):
        self._zones: Dict[str, Zone] = {z.id: z for z in (zones or [])}
        self._ids = itertools.count(1)
        self.calls: List[tuple] = []

    @classmethod
    def with_sample_data(cls) -> "MockShopifyClient":
        """샘플 존 (단일 국가 + 다국가)"""
        return cls([
            Zone(
                id="gid://shopify/DeliveryZone/1",
                name="Germany",
                countries=("DE",),
                rates=(
                    Rate("gid://shopify/DeliveryMethodDefinition/101", "1 Bike (15kg): 1x 15kg",
                         Decimal("89.00"), "EUR", min_weight=15, max_weight=15),
                    Rate("gid://shopify/DeliveryMethodDefinition/102", "1 Bike (25kg): 1x 25kg",
                         Decimal("119.00"), "EUR", min_weight=25, max_weight=25),
                ),
            ),
            Zone(
                id="gid://shopify/DeliveryZone/2",
                name="Europe",
                countries=("FR", "NL", "BE"),
                rates=(
                    Rate("gid://shopify/DeliveryMethodDefinition/201", "Standard",
                         Decimal("129.00"), "EUR", min_weight=10, max_weight=30),
                ),
            ),
        ])

    def _new_id(self) -> str:
        return f"gid://shopify/DeliveryMethodDefinition/mock-{next(self._ids)}"

    def _zone(self, zone_id: str) -> Zone:
        zone = self._zones.get(zone_id)
        if zone is None:
            raise NotFoundError(
                f"Could not find delivery profile structure for zone {zone_id}",
                entity="zone",
                entity_id=zone_id,
            )
        return zone

    def _rate_from_draft(self, rate_id: str, draft: RateDraft) -> Rate:
        return Rate(
            id=rate_id,
            name=draft.name,
            price=draft.price,
            currency=draft.currency,
            description=draft.description,
            min_weight=draft.min_weight,
            max_weight=draft.max_weight,
        )

    def list_zones(self) -> List[Zone]:
        self.calls.append(("list_zones",))
        return list(self._zones.values())

    def create_rate(self, zone_id: str, draft: RateDraft) -> Dict[str, Any]:
        self.calls.append(("create_rate", zone_id, draft))
        zone = self._zone(zone_id)
        rate = self._rate_from_draft(self._new_id(), draft)
        self._zones[zone_id] = replace(zone, rates=zone.rates + (rate,))
        return {"id": zone_id}

    def update_rate(
        self,
        zone_id: str,
        rate_id: str,
        draft: RateDraft,
        replace_weights: bool = False,
    ) -> Dict[str, Any]:
        self.calls.append(("update_rate", zone_id, rate_id, draft, replace_weights))
        zone = self._zone(zone_id)
        existing = zone.find_rate(rate_id)
        if existing is None:
            raise ShopifyError(f"Method definition {rate_id} does not exist")

        has_conditions = existing.min_weight is not None or existing.max_weight is not None
        if replace_weights:
            new_id = self._new_id() if has_conditions else rate_id
            updated = self._rate_from_draft(new_id, draft)
        else:
            updated = replace(
                self._rate_from_draft(rate_id, draft),
                min_weight=existing.min_weight,
                max_weight=existing.max_weight,
            )

        rates = tuple(updated if r.id == rate_id else r for r in zone.rates)
        self._zones[zone_id] = replace(zone, rates=rates)
        return {"id": zone_id}

    def delete_rate(self, zone_id: str, rate_id: str) -> Dict[str, Any]:
        self.calls.append(("delete_rate", zone_id, rate_id))
        zone = self._zone(zone_id)
        if zone.find_rate(rate_id) is None:
            raise ShopifyError(f"Method definition {rate_id} does not exist")
        rates = tuple(r for r in zone.rates if r.id != rate_id)
        self._zones[zone_id] = replace(zone, rates=rates)
        return {"id": zone_id}


# --- 팩토리 ---

def get_shopify_client(settings=None, use_mock: bool = False) -> ShopifyClient:
    """Shopify 클라이언트 반환"""
    if use_mock:
        return MockShopifyClient.with_sample_data()

    if settings is None:
        from config.settings import get_settings
        settings = get_settings()

    return ShopifyClient(
        store=settings.shopify_store,
        token=settings.shopify_token,
        api_version=settings.shopify_api_version,
        timeout=settings.request_timeout,
    )
