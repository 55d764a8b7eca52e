"""
test_shopify_client.py - Shopify GraphQL 클라이언트 테스트

requests 세션을 Mock으로 대체해 요청 본문과 에러 변환을 검증
"""

import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.api.shopify_client import (
    MAX_OPERATOR,
    MIN_OPERATOR,
    MockShopifyClient,
    ShopifyClient,
    get_shopify_client,
    weight_conditions,
)
from src.core.exceptions import (
    ConfigurationError,
    ExternalCallError,
    ExternalTimeoutError,
    NotFoundError,
    ShopifyError,
)
from src.domain.models import RateDraft
from src.services.batch import BatchItem, BatchRunner

ZONE_ID = "gid://shopify/DeliveryZone/1"
METHOD_ID = "gid://shopify/DeliveryMethodDefinition/101"


def _response(data=None, status_code=200, errors=None):
    response = Mock()
    response.status_code = status_code
    response.text = "error body"
    body = {"data": data}
    if errors:
        body["errors"] = errors
    response.json.return_value = body
    return response


def _structure(has_conditions=True):
    conditions = [{"id": "c1", "field": "TOTAL_WEIGHT"}] if has_conditions else []
    return {
        "deliveryProfiles": {"edges": [{"node": {
            "id": "gid://shopify/DeliveryProfile/1",
            "profileLocationGroups": [{
                "locationGroup": {"id": "gid://shopify/DeliveryLocationGroup/1"},
                "locationGroupZones": {"edges": [{"node": {
                    "zone": {"id": ZONE_ID},
                    "methodDefinitions": {"edges": [
                        {"node": {"id": METHOD_ID, "methodConditions": conditions}},
                    ]},
                }}]},
            }],
        }}]}
    }


def _zones_payload():
    return {
        "deliveryProfiles": {"edges": [{"node": {
            "id": "gid://shopify/DeliveryProfile/1",
            "name": "General",
            "profileLocationGroups": [{
                "locationGroup": {"id": "gid://shopify/DeliveryLocationGroup/1"},
                "locationGroupZones": {"edges": [
                    {"node": {
                        "zone": {"id": ZONE_ID, "name": "DE zone",
                                 "countries": [{"code": {"countryCode": "DE"}, "name": "Germany"}]},
                        "methodDefinitions": {"edges": [
                            {"node": {
                                "id": METHOD_ID,
                                "name": "1 Bike (15kg): 1x 15kg",
                                "active": True,
                                "methodConditions": [
                                    {"id": "c1", "field": "TOTAL_WEIGHT", "operator": MIN_OPERATOR,
                                     "conditionCriteria": {"unit": "KILOGRAMS", "value": 15.0}},
                                    {"id": "c2", "field": "TOTAL_WEIGHT", "operator": MAX_OPERATOR,
                                     "conditionCriteria": {"unit": "KILOGRAMS", "value": 15.0}},
                                ],
                                "rateProvider": {"id": "r1", "price": {"amount": "89.0", "currencyCode": "EUR"}},
                            }},
                            {"node": {
                                "id": "gid://shopify/DeliveryMethodDefinition/999",
                                "name": "Old",
                                "active": False,
                                "methodConditions": [],
                                "rateProvider": {"id": "r2", "price": {"amount": "1.0", "currencyCode": "EUR"}},
                            }},
                        ]},
                    }},
                    {"node": {
                        "zone": {"id": "gid://shopify/DeliveryZone/2", "name": "Benelux",
                                 "countries": [{"code": {"countryCode": "NL"}, "name": "Netherlands"},
                                               {"code": {"countryCode": "BE"}, "name": "Belgium"}]},
                        "methodDefinitions": {"edges": []},
                    }},
                ]},
            }],
        }}]}
    }


def _mutation_ok():
    return {"deliveryProfileUpdate": {"profile": {"id": "gid://shopify/DeliveryProfile/1"}, "userErrors": []}}


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return ShopifyClient("bikes.myshopify.com", "shpat_test", session=session)


class TestConstruction:
    """생성 테스트"""

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError) as exc:
            ShopifyClient("", "token")
        assert exc.value.config_key == "SHOPIFY_STORE"

    def test_endpoint(self, client):
        assert client.endpoint == "https://bikes.myshopify.com/admin/api/2024-07/graphql.json"

    def test_factory_mock(self):
        client = get_shopify_client(use_mock=True)
        assert isinstance(client, MockShopifyClient)
        assert len(client.list_zones()) == 2


class TestWeightConditions:
    def test_both_bounds(self):
        conditions = weight_conditions(15, 30)
        assert [c["operator"] for c in conditions] == [MIN_OPERATOR, MAX_OPERATOR]
        assert conditions[0]["criteria"] == {"unit": "KILOGRAMS", "value": 15}

    def test_no_bounds(self):
        assert weight_conditions(None, None) == []


class TestErrorMapping:
    """에러 변환 테스트"""

    def test_timeout(self, client, session):
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(ExternalTimeoutError):
            client.list_zones()

    def test_connection_error(self, client, session):
        session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(ExternalCallError) as exc:
            client.list_zones()
        assert not isinstance(exc.value, ExternalTimeoutError)

    def test_http_error(self, client, session):
        session.post.return_value = _response(status_code=401)
        with pytest.raises(ExternalCallError) as exc:
            client.list_zones()
        assert exc.value.status_code == 401

    def test_graphql_errors(self, client, session):
        session.post.return_value = _response(errors=[{"message": "Throttled"}])
        with pytest.raises(ShopifyError) as exc:
            client.list_zones()
        assert "Throttled" in str(exc.value)

    def test_user_errors(self, client, session):
        session.post.side_effect = [
            _response(_structure()),
            _response({"deliveryProfileUpdate": {
                "profile": None,
                "userErrors": [{"field": ["profile"], "message": "Price is invalid"}],
            }}),
        ]
        with pytest.raises(ShopifyError) as exc:
            client.create_rate(ZONE_ID, RateDraft("x", Decimal("1"), "EUR"))
        assert exc.value.user_errors[0]["message"] == "Price is invalid"

    def test_zone_not_found(self, client, session):
        session.post.return_value = _response(_structure())
        with pytest.raises(NotFoundError) as exc:
            client.delete_rate("gid://shopify/DeliveryZone/404", METHOD_ID)
        assert "Could not find delivery profile structure" in exc.value.message

    def test_non_json_body(self, client, session):
        """게이트웨이 HTML 응답 -> 외부 호출 오류"""
        response = Mock()
        response.status_code = 200
        response.text = "<html>502 Bad Gateway</html>"
        response.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
        session.post.return_value = response

        with pytest.raises(ExternalCallError) as exc:
            client.list_zones()
        assert exc.value.status_code == 200
        assert "non-JSON" in exc.value.message

    def test_missing_delivery_profiles(self, client, session):
        session.post.return_value = _response({})
        with pytest.raises(ExternalCallError) as exc:
            client.list_zones()
        assert "deliveryProfiles" in exc.value.message

    def test_malformed_structure_on_mutation(self, client, session):
        session.post.return_value = _response({"deliveryProfiles": {"edges": [{"node": {}}]}})
        with pytest.raises(ExternalCallError):
            client.delete_rate(ZONE_ID, METHOD_ID)

    def test_bad_reply_fails_items_without_aborting_batch(self, client, session):
        """잘못된 응답은 항목 단위 실패, 배치는 끝까지 진행"""
        response = Mock()
        response.status_code = 200
        response.text = "<html></html>"
        response.json.side_effect = ValueError("Expecting value")
        session.post.return_value = response

        items = [BatchItem(f"zone-{i}", client.list_zones) for i in range(3)]
        result = BatchRunner().run(items, name="list")

        assert result.succeeded == 0
        assert len(result.failures) == 3
        assert result.summary() == "0 of 3 succeeded"


class TestListZones:
    """존 조회 테스트"""

    def test_parses_zones(self, client, session):
        session.post.return_value = _response(_zones_payload())

        zones = client.list_zones()

        assert len(zones) == 2
        germany = zones[0]
        assert germany.name == "Germany"           # 단일 국가 -> 국가명
        assert germany.countries == ("DE",)
        assert len(germany.rates) == 1             # 비활성 제외
        rate = germany.rates[0]
        assert rate.price == Decimal("89.0")
        assert rate.currency == "EUR"
        assert rate.min_weight == 15.0
        assert rate.max_weight == 15.0

    def test_multi_country_zone_name(self, client, session):
        session.post.return_value = _response(_zones_payload())
        benelux = client.list_zones()[1]
        assert benelux.name == "Benelux"
        assert benelux.countries == ("NL", "BE")

    def test_sends_token_header(self, client, session):
        session.post.return_value = _response(_zones_payload())
        client.list_zones()

        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"]["X-Shopify-Access-Token"] == "shpat_test"
        assert kwargs["timeout"] == 30.0


class TestMutations:
    """생성 / 수정 / 삭제 요청 본문"""

    def _profile(self, session):
        return session.post.call_args.kwargs["json"]["variables"]["profile"]

    def test_create_with_weights(self, client, session):
        session.post.side_effect = [_response(_structure()), _response(_mutation_ok())]

        client.create_rate(ZONE_ID, RateDraft("2 Bikes", Decimal("150"), "EUR", min_weight=30, max_weight=30))

        zone_update = self._profile(session)["locationGroupsToUpdate"][0]["zonesToUpdate"][0]
        method = zone_update["methodDefinitionsToCreate"][0]
        assert method["rateDefinition"]["price"] == {"amount": "150", "currencyCode": "EUR"}
        assert len(method["weightConditionsToCreate"]) == 2

    def test_price_update_in_place(self, client, session):
        """무게 교체 없으면 methodDefinitionsToUpdate"""
        session.post.side_effect = [_response(_structure()), _response(_mutation_ok())]

        client.update_rate(ZONE_ID, METHOD_ID, RateDraft("Road", Decimal("95"), "EUR", min_weight=15, max_weight=15))

        profile = self._profile(session)
        method = profile["locationGroupsToUpdate"][0]["zonesToUpdate"][0]["methodDefinitionsToUpdate"][0]
        assert method["id"] == METHOD_ID
        assert "weightConditionsToCreate" not in method
        assert "methodDefinitionsToDelete" not in profile

    def test_weight_replace_recreates(self, client, session):
        """기존 조건 + 무게 교체 -> 삭제 후 재생성 (한 번의 mutation)"""
        session.post.side_effect = [_response(_structure(True)), _response(_mutation_ok())]

        client.update_rate(ZONE_ID, METHOD_ID, RateDraft("Road", Decimal("95"), "EUR", min_weight=30, max_weight=30),
                           replace_weights=True)

        assert session.post.call_count == 2
        profile = self._profile(session)
        assert profile["methodDefinitionsToDelete"] == [METHOD_ID]
        created = profile["locationGroupsToUpdate"][0]["zonesToUpdate"][0]["methodDefinitionsToCreate"][0]
        assert created["weightConditionsToCreate"][0]["criteria"]["value"] == 30

    def test_weight_add_without_existing_conditions(self, client, session):
        """조건이 없던 요금은 제자리 수정 + 조건 추가"""
        session.post.side_effect = [_response(_structure(False)), _response(_mutation_ok())]

        client.update_rate(ZONE_ID, METHOD_ID, RateDraft("Road", Decimal("95"), "EUR", min_weight=15, max_weight=15),
                           replace_weights=True)

        profile = self._profile(session)
        method = profile["locationGroupsToUpdate"][0]["zonesToUpdate"][0]["methodDefinitionsToUpdate"][0]
        assert len(method["weightConditionsToCreate"]) == 2

    def test_delete(self, client, session):
        session.post.side_effect = [_response(_structure()), _response(_mutation_ok())]
        client.delete_rate(ZONE_ID, METHOD_ID)
        assert self._profile(session) == {"methodDefinitionsToDelete": [METHOD_ID]}


class TestMockShopifyClient:
    """Mock 클라이언트 동작"""

    def test_missing_rate_raises(self):
        client = MockShopifyClient.with_sample_data()
        with pytest.raises(ShopifyError):
            client.delete_rate(ZONE_ID, "gid://shopify/DeliveryMethodDefinition/404")

    def test_missing_zone_raises(self):
        client = MockShopifyClient.with_sample_data()
        with pytest.raises(NotFoundError):
            client.create_rate("gid://shopify/DeliveryZone/404", RateDraft("x", Decimal("1")))
