"""코어 모듈 (v1.0)"""
from .exceptions import (
    FreightDeskError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    ConfigurationError,
    ExternalCallError,
    ShopifyError,
    SupabaseError,
    ExternalTimeoutError,
    ConsistencyError,
    ErrorCodes,
)
from .error_handler import ErrorHandler, ErrorRecord, RecoveryAction
from .config import (
    RateConfig,
    DEFAULT_CONFIG,
    BikeTypeDefault,
    DEFAULT_BIKE_TYPES,
    BIKE_CATEGORIES,
)

__all__ = [
    # 예외
    "FreightDeskError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "ConfigurationError",
    "ExternalCallError",
    "ShopifyError",
    "SupabaseError",
    "ExternalTimeoutError",
    "ConsistencyError",
    "ErrorCodes",
    # 에러 처리
    "ErrorHandler",
    "ErrorRecord",
    "RecoveryAction",
    # 설정
    "RateConfig",
    "DEFAULT_CONFIG",
    "BikeTypeDefault",
    "DEFAULT_BIKE_TYPES",
    "BIKE_CATEGORIES",
]
