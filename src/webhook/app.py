"""
app.py - 캐리어 서비스 웹훅 (FastAPI)

Shopify 체크아웃이 배송비를 요청하면 국가별 kg당 요금으로 견적을 돌려준다.
Shopify는 항상 HTTP 200을 기대하므로 실패해도 200 + error 필드로 응답한다.
"""

import logging
from datetime import date
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError

from ..domain.logic import CarrierRateCalculator
from .schemas import CarrierRateResponse, CarrierServiceRequest, CarrierServiceResponse

logger = logging.getLogger(__name__)


def _respond(response: CarrierServiceResponse) -> JSONResponse:
    return JSONResponse(status_code=200, content=response.model_dump(exclude_none=True))


def create_app(
    repository,
    calculator: Optional[CarrierRateCalculator] = None,
    today: Callable[[], date] = date.today,
) -> FastAPI:
    """
    웹훅 앱 생성

    Args:
        repository: carrier_base_rates 를 제공하는 저장소
        calculator: 요금 계산기
        today: 기준일 함수 (테스트용)
    """
    calculator = calculator or CarrierRateCalculator()
    app = FastAPI(title="Freight Rate Desk - Carrier Service")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/carrier-service")
    async def carrier_service(request: Request):
        try:
            body = CarrierServiceRequest.model_validate(await request.json())
            country = body.rate.destination.country
            items = [item.model_dump() for item in body.rate.items]
            weight_kg = calculator.total_weight_kg(items)

            logger.info(f"Carrier rate request: {country}, {weight_kg:.2f}kg")

            base_rates = repository.list_carrier_rates(country_code=country, active_only=True)
            if not base_rates:
                logger.info(f"No carrier rates configured for {country}")
                return _respond(CarrierServiceResponse(rates=[]))

            quotes = calculator.quote_all(base_rates, weight_kg, today())
            return _respond(CarrierServiceResponse(
                rates=[CarrierRateResponse(**q.to_dict()) for q in quotes]
            ))

        except SchemaValidationError as e:
            logger.warning(f"Malformed carrier request: {e.error_count()} errors")
            return _respond(CarrierServiceResponse(rates=[], error="Invalid carrier service request"))
        except Exception as e:
            logger.exception(f"Carrier service error: {e}")
            return _respond(CarrierServiceResponse(rates=[], error=str(e)))

    return app
