"""API 모듈"""
from .shopify_client import (
    ShopifyClient,
    MockShopifyClient,
    get_shopify_client,
    ZoneLocation,
)

__all__ = [
    "ShopifyClient",
    "MockShopifyClient",
    "get_shopify_client",
    "ZoneLocation",
]
