"""도메인 모듈 (v1.0) - 순수 비즈니스 로직"""
from .models import (
    Zone,
    Rate,
    RateKey,
    RateOverlay,
    RatePatch,
    RateDraft,
    SetTo,
    UNCHANGED,
    Multiplier,
    PendingChange,
    ChangeLogEntry,
    ChangeStatus,
    ChangeAction,
    OperationType,
    BikeTypeUnit,
    BreakdownItem,
    GeneratedCombination,
    BulkOperation,
    RateSelectors,
    PriceChangePreview,
    BatchFailure,
    BatchResult,
    CarrierBaseRate,
    CarrierQuote,
)
from .combinations import enumerate_combinations, iter_combinations, count_combinations
from .pricing import (
    apply_operation,
    apply_multiplier,
    compute_new_price,
    is_active,
    parse_operand,
    round_money,
)
from .rate_filter import filter_rates
from .classifier import WeightClassifier, classify_weight_range
from .catalog_merge import merge_catalog
from .logic import CarrierRateCalculator

__all__ = [
    # 카탈로그 모델
    "Zone",
    "Rate",
    "RateKey",
    "RateOverlay",
    "RatePatch",
    "RateDraft",
    "SetTo",
    "UNCHANGED",
    # 배수 / 승인
    "Multiplier",
    "PendingChange",
    "ChangeLogEntry",
    "ChangeStatus",
    "ChangeAction",
    # 조합 / 벌크
    "OperationType",
    "BikeTypeUnit",
    "BreakdownItem",
    "GeneratedCombination",
    "BulkOperation",
    "RateSelectors",
    "PriceChangePreview",
    "BatchFailure",
    "BatchResult",
    # 캐리어
    "CarrierBaseRate",
    "CarrierQuote",
    # 로직
    "enumerate_combinations",
    "iter_combinations",
    "count_combinations",
    "apply_operation",
    "apply_multiplier",
    "compute_new_price",
    "is_active",
    "parse_operand",
    "round_money",
    "filter_rates",
    "WeightClassifier",
    "classify_weight_range",
    "merge_catalog",
    "CarrierRateCalculator",
]
