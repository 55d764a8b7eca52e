"""
schemas.py - Shopify CarrierService 요청/응답 스키마
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class CarrierItem(BaseModel):
    """장바구니 상품 1건"""
    grams: float = 0
    quantity: int = 1
    name: Optional[str] = None


class CarrierDestination(BaseModel):
    country: str
    postal_code: Optional[str] = None
    province: Optional[str] = None


class CarrierRateRequest(BaseModel):
    destination: CarrierDestination
    items: List[CarrierItem] = Field(default_factory=list)
    currency: Optional[str] = None


class CarrierServiceRequest(BaseModel):
    """Shopify가 보내는 요청 본문 ({"rate": {...}})"""
    rate: CarrierRateRequest


class CarrierRateResponse(BaseModel):
    service_name: str
    service_code: str
    total_price: str            # 센트 단위
    description: str
    currency: str
    min_delivery_date: str
    max_delivery_date: str


class CarrierServiceResponse(BaseModel):
    rates: List[CarrierRateResponse] = Field(default_factory=list)
    error: Optional[str] = None
