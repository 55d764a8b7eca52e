"""
models.py - 도메인 모델 (v1.0)

순수 파이썬 데이터 클래스. 외부 의존성 없음.
Shopify/Supabase 어느 쪽이 바뀌어도 이 파일은 그대로 사용 가능.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
import uuid


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """숫자/문자열을 Decimal로 변환 (float 오차 방지를 위해 str 경유)"""
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def format_weight(weight: float) -> str:
    """15.0 -> '15', 12.5 -> '12.5'"""
    return f"{weight:g}"


class ChangeStatus(Enum):
    """변경 요청 상태"""
    PENDING = "pending"         # 검토 대기
    APPROVED = "approved"       # 승인됨 (종료)
    REJECTED = "rejected"       # 반려됨 (종료)

    @property
    def is_terminal(self) -> bool:
        return self is not ChangeStatus.PENDING


class ChangeAction(Enum):
    """감사 로그 액션"""
    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"         # Shopify 반영 완료


class OperationType(Enum):
    """벌크 가격 연산 종류"""
    FREE = "free"               # 무료 (0)
    FIXED = "fixed"             # 고정가
    ADD = "add"                 # 더하기
    SUBTRACT = "subtract"       # 빼기 (0 하한)
    MULTIPLY = "multiply"       # 곱하기
    PERCENTAGE = "percentage"   # 퍼센트 증감


# ========== 요금 카탈로그 ==========

@dataclass(frozen=True)
class RateKey:
    """요금 식별자 (존 ID + 요금 ID)"""
    zone_id: str
    rate_id: str

    def __str__(self) -> str:
        return f"{self.zone_id}/{self.rate_id}"


@dataclass(frozen=True)
class Rate:
    """배송 요금 (Shopify method definition + 로컬 오버레이)"""
    id: str
    name: str
    price: Decimal
    currency: str = "USD"
    description: Optional[str] = None
    min_weight: Optional[float] = None      # kg
    max_weight: Optional[float] = None      # kg
    estimated_days: Optional[str] = None
    category: Optional[str] = None

    def key(self, zone_id: str) -> RateKey:
        return RateKey(zone_id, self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "currency": self.currency,
            "description": self.description,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
            "estimated_days": self.estimated_days,
            "category": self.category,
        }


@dataclass(frozen=True)
class Zone:
    """배송 존 (국가 묶음 + 요금 목록)"""
    id: str
    name: str
    countries: Tuple[str, ...] = ()
    rates: Tuple[Rate, ...] = ()

    def find_rate(self, rate_id: str) -> Optional[Rate]:
        for rate in self.rates:
            if rate.id == rate_id:
                return rate
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "countries": list(self.countries),
            "rates": [r.to_dict() for r in self.rates],
        }


@dataclass(frozen=True)
class RateOverlay:
    """로컬 전용 요금 메타데이터 (shopify_rate_extras)"""
    rate_id: str
    zone_id: str
    min_weight: Optional[float] = None
    max_weight: Optional[float] = None
    estimated_days: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None

    @property
    def key(self) -> RateKey:
        return RateKey(self.zone_id, self.rate_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate_id": self.rate_id,
            "zone_id": self.zone_id,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
            "estimated_days": self.estimated_days,
            "description": self.description,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateOverlay":
        return cls(
            rate_id=data["rate_id"],
            zone_id=data["zone_id"],
            min_weight=_optional_float(data.get("min_weight")),
            max_weight=_optional_float(data.get("max_weight")),
            estimated_days=data.get("estimated_days") or None,
            description=data.get("description") or None,
            category=data.get("category") or None,
        )


class _Unchanged:
    """패치에서 '변경 없음'을 나타내는 표식"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNCHANGED"

    def __bool__(self) -> bool:
        return False


UNCHANGED = _Unchanged()


@dataclass(frozen=True)
class SetTo:
    """패치에서 값 지정 (None = 명시적 삭제)"""
    value: Any


@dataclass(frozen=True)
class RatePatch:
    """요금 부분 수정

    각 필드는 UNCHANGED 또는 SetTo(value).
    """
    name: Any = UNCHANGED
    price: Any = UNCHANGED
    currency: Any = UNCHANGED
    description: Any = UNCHANGED
    min_weight: Any = UNCHANGED
    max_weight: Any = UNCHANGED
    estimated_days: Any = UNCHANGED
    category: Any = UNCHANGED

    CATALOG_FIELDS = ("name", "price", "currency", "min_weight", "max_weight")
    OVERLAY_FIELDS = ("description", "min_weight", "max_weight", "estimated_days", "category")

    @classmethod
    def of(cls, **values) -> "RatePatch":
        """RatePatch.of(price=Decimal('10')) 처럼 SetTo를 생략하는 생성자"""
        return cls(**{k: SetTo(v) for k, v in values.items()})

    def is_set(self, name: str) -> bool:
        return isinstance(getattr(self, name), SetTo)

    def value(self, name: str, default: Any = None) -> Any:
        slot = getattr(self, name)
        return slot.value if isinstance(slot, SetTo) else default

    @property
    def changed_fields(self) -> List[str]:
        return [f for f in self.CATALOG_FIELDS + ("description", "estimated_days", "category")
                if self.is_set(f)]

    @property
    def touches_catalog(self) -> bool:
        return any(self.is_set(f) for f in self.CATALOG_FIELDS)

    @property
    def touches_overlay(self) -> bool:
        return any(self.is_set(f) for f in self.OVERLAY_FIELDS)

    @property
    def sets_weights(self) -> bool:
        return self.is_set("min_weight") or self.is_set("max_weight")

    def apply_to(self, rate: Rate) -> Rate:
        """패치를 적용한 새 Rate 반환"""
        updates = {f: self.value(f) for f in self.changed_fields}
        if "price" in updates:
            updates["price"] = to_decimal(updates["price"])
        return replace(rate, **updates)


@dataclass(frozen=True)
class RateDraft:
    """신규/수정 요금 (Shopify 전송용)"""
    name: str
    price: Decimal
    currency: str = "USD"
    description: Optional[str] = None
    min_weight: Optional[float] = None
    max_weight: Optional[float] = None


# ========== 배수 ==========

@dataclass
class Multiplier:
    """재사용 가격 배수 (shipping_multipliers)"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    multiplier: Decimal = Decimal("1")
    base_quantity: int = 1              # 참고용 수량
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "multiplier": float(self.multiplier),
            "base_quantity": self.base_quantity,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Multiplier":
        return cls(
            id=data.get("id", str(uuid.uuid4())),
            name=data.get("name", ""),
            description=data.get("description"),
            multiplier=to_decimal(data.get("multiplier"), "1"),
            base_quantity=int(data.get("base_quantity") or 1),
            is_active=data.get("is_active", True),
            created_at=_parse_dt(data.get("created_at")) or utc_now(),
            updated_at=_parse_dt(data.get("updated_at")) or utc_now(),
        )


# ========== 변경 승인 ==========

@dataclass
class PendingChange:
    """가격/이름 변경 요청 (pending_rate_changes)"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    rate_id: str = ""
    zone_id: str = ""
    zone_name: str = ""                 # 요청 시점 스냅샷
    rate_name: str = ""                 # 요청 시점 스냅샷
    current_price: Decimal = Decimal("0")
    proposed_price: Decimal = Decimal("0")
    proposed_rate_name: Optional[str] = None
    currency: str = "USD"
    proposed_by: str = "agent"
    status: ChangeStatus = ChangeStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @property
    def key(self) -> RateKey:
        return RateKey(self.zone_id, self.rate_id)

    @property
    def final_rate_name(self) -> str:
        """반영될 요금 이름 (이름 변경 없으면 원래 이름)"""
        return self.proposed_rate_name or self.rate_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rate_id": self.rate_id,
            "zone_id": self.zone_id,
            "zone_name": self.zone_name,
            "rate_name": self.rate_name,
            "proposed_rate_name": self.proposed_rate_name,
            "current_price": float(self.current_price),
            "proposed_price": float(self.proposed_price),
            "currency": self.currency,
            "proposed_by": self.proposed_by,
            "status": self.status.value,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "reviewed_at": _iso(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingChange":
        return cls(
            id=data.get("id", str(uuid.uuid4())),
            rate_id=data.get("rate_id", ""),
            zone_id=data.get("zone_id", ""),
            zone_name=data.get("zone_name", ""),
            rate_name=data.get("rate_name", ""),
            proposed_rate_name=data.get("proposed_rate_name"),
            current_price=to_decimal(data.get("current_price")),
            proposed_price=to_decimal(data.get("proposed_price")),
            currency=data.get("currency") or "USD",
            proposed_by=data.get("proposed_by") or "agent",
            status=ChangeStatus(data.get("status", "pending")),
            notes=data.get("notes"),
            created_at=_parse_dt(data.get("created_at")) or utc_now(),
            reviewed_at=_parse_dt(data.get("reviewed_at")),
            reviewed_by=data.get("reviewed_by"),
        )


@dataclass(frozen=True)
class ChangeLogEntry:
    """감사 로그 (rate_change_logs, 추가 전용)"""
    rate_id: str
    zone_id: str
    zone_name: str
    rate_name: str
    old_price: Optional[Decimal]
    new_price: Optional[Decimal]
    currency: str
    action: ChangeAction
    performed_by: str
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    @property
    def key(self) -> RateKey:
        return RateKey(self.zone_id, self.rate_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rate_id": self.rate_id,
            "zone_id": self.zone_id,
            "zone_name": self.zone_name,
            "rate_name": self.rate_name,
            "old_price": float(self.old_price) if self.old_price is not None else None,
            "new_price": float(self.new_price) if self.new_price is not None else None,
            "currency": self.currency,
            "action": self.action.value,
            "performed_by": self.performed_by,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeLogEntry":
        old_price = data.get("old_price")
        new_price = data.get("new_price")
        return cls(
            id=data.get("id", str(uuid.uuid4())),
            rate_id=data.get("rate_id", ""),
            zone_id=data.get("zone_id", ""),
            zone_name=data.get("zone_name", ""),
            rate_name=data.get("rate_name", ""),
            old_price=to_decimal(old_price) if old_price is not None else None,
            new_price=to_decimal(new_price) if new_price is not None else None,
            currency=data.get("currency") or "USD",
            action=ChangeAction(data["action"]),
            performed_by=data.get("performed_by", ""),
            notes=data.get("notes"),
            created_at=_parse_dt(data.get("created_at")) or utc_now(),
        )


# ========== 조합 생성기 ==========

@dataclass(frozen=True)
class BikeTypeUnit:
    """조합 생성기 입력 (자전거 타입 1종)"""
    id: str
    name: str
    weight: float                       # kg, > 0
    price: Decimal = Decimal("0")       # 단위 가격, >= 0
    enabled: bool = True

    @property
    def qualifies(self) -> bool:
        """활성 + 가격 > 0 인 타입만 조합에 참여"""
        return self.enabled and self.price > 0


@dataclass(frozen=True)
class BreakdownItem:
    """조합 내 타입별 내역"""
    type_id: str
    type_name: str
    unit_weight: float
    count: int
    weight: float                       # unit_weight * count
    price: Decimal                      # unit_price * count


@dataclass(frozen=True)
class GeneratedCombination:
    """생성된 조합 (저장되지 않음)"""
    id: str
    name: str
    description: str
    total_price: Decimal
    total_weight: float
    bike_count: int
    breakdown: Tuple[BreakdownItem, ...]
    selected: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "total_price": float(self.total_price),
            "total_weight": self.total_weight,
            "bike_count": self.bike_count,
            "breakdown": [
                {"type": b.type_name, "count": b.count, "weight": b.weight, "price": float(b.price)}
                for b in self.breakdown
            ],
            "selected": self.selected,
        }


# ========== 벌크 편집 ==========

@dataclass(frozen=True)
class BulkOperation:
    """벌크 가격 연산

    value가 None이면 피연산자 미입력 (0으로 취급하지 않음).
    """
    type: OperationType
    value: Optional[Decimal] = None
    multiplier_id: Optional[str] = None


@dataclass(frozen=True)
class RateSelectors:
    """벌크 대상 필터 (빈 집합 = 제한 없음)"""
    categories: FrozenSet[str] = frozenset()
    countries: FrozenSet[str] = frozenset()
    zone_ids: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, categories=(), countries=(), zone_ids=()) -> "RateSelectors":
        return cls(frozenset(categories), frozenset(countries), frozenset(zone_ids))


@dataclass(frozen=True)
class PriceChangePreview:
    """벌크 편집 미리보기 행"""
    key: RateKey
    zone_name: str
    rate_name: str
    currency: str
    current_price: Decimal
    new_price: Decimal

    @property
    def diff(self) -> Decimal:
        return self.new_price - self.current_price

    @property
    def is_increase(self) -> bool:
        return self.diff > 0


@dataclass(frozen=True)
class BatchFailure:
    """배치 항목 실패 내역"""
    label: str
    error_code: str
    message: str


@dataclass
class BatchResult:
    """배치 실행 결과 ("N of M succeeded")"""
    total: int
    succeeded: int = 0
    failures: List[BatchFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.total

    def summary(self) -> str:
        text = f"{self.succeeded} of {self.total} succeeded"
        if self.cancelled:
            text += " (cancelled)"
        return text


# ========== 캐리어 서비스 ==========

@dataclass
class CarrierBaseRate:
    """국가별 kg당 요금 (carrier_base_rates)"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    country_code: str = ""
    country_name: str = ""
    price_per_kg: Decimal = Decimal("0")
    min_price: Decimal = Decimal("0")
    currency: str = "USD"
    estimated_days_min: Optional[int] = 10
    estimated_days_max: Optional[int] = 65
    service_name: str = "Standard Shipping"
    zone_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "country_code": self.country_code,
            "country_name": self.country_name,
            "zone_id": self.zone_id,
            "price_per_kg": float(self.price_per_kg),
            "min_price": float(self.min_price),
            "currency": self.currency,
            "estimated_days_min": self.estimated_days_min,
            "estimated_days_max": self.estimated_days_max,
            "service_name": self.service_name,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CarrierBaseRate":
        return cls(
            id=data.get("id", str(uuid.uuid4())),
            country_code=data.get("country_code", ""),
            country_name=data.get("country_name", ""),
            zone_id=data.get("zone_id"),
            price_per_kg=to_decimal(data.get("price_per_kg")),
            min_price=to_decimal(data.get("min_price")),
            currency=data.get("currency") or "USD",
            estimated_days_min=data.get("estimated_days_min"),
            estimated_days_max=data.get("estimated_days_max"),
            service_name=data.get("service_name") or "Standard Shipping",
            is_active=data.get("is_active", True),
            created_at=_parse_dt(data.get("created_at")) or utc_now(),
            updated_at=_parse_dt(data.get("updated_at")) or utc_now(),
        )


@dataclass(frozen=True)
class CarrierQuote:
    """캐리어 서비스 응답 요금 1건"""
    service_name: str
    service_code: str
    total_price: str                    # 센트 단위 문자열
    description: str
    currency: str
    min_delivery_date: date
    max_delivery_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "service_code": self.service_code,
            "total_price": self.total_price,
            "description": self.description,
            "currency": self.currency,
            "min_delivery_date": self.min_delivery_date.isoformat(),
            "max_delivery_date": self.max_delivery_date.isoformat(),
        }
