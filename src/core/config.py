"""
config.py - 요금 도메인 설정 (v1.0)

자전거 무게표, 분류 규칙, 기본값을 중앙 관리
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class BikeTypeDefault:
    """생성기 기본 자전거 타입"""
    id: str
    name: str
    weight: float   # kg (단위당)


# 생성기 기본 자전거 타입 (가격 0 = 비활성 상태로 시작)
DEFAULT_BIKE_TYPES: List[BikeTypeDefault] = [
    BikeTypeDefault("ebike", "E-Bike", 25),
    BikeTypeDefault("road", "Road Bike", 15),
    BikeTypeDefault("mountain", "Mountain Bike", 18),
]

# 벌크 편집 카테고리 선택지
BIKE_CATEGORIES: Tuple[str, ...] = (
    "E-Bike",
    "Road Bike",
    "Mountain Bike",
    "Gravel Bike",
    "City Bike",
    "Kids Bike",
    "Accessories",
    "Parts",
    "Wheels",
    "Other",
)


@dataclass
class RateConfig:
    """요금 도메인 전체 설정 (v1.0)

    - 무게 기반 카테고리 분류표
    - 조합 생성기 기본값
    - 캐리어 서비스 배송일 기본값
    """
    # 무게 분류표 (kg -> 카테고리)
    bike_weights: Dict[float, str] = None

    # 두 대 조합 무게 (kg -> 카테고리)
    paired_weights: Dict[float, str] = None

    # 조합 생성기
    default_max_bikes: int = 5
    combination_warning_threshold: int = 500    # 이 이상이면 CLI 확인 요청

    # 통화
    default_currency: str = "USD"

    # 캐리어 서비스 (배송일 범위 기본값)
    default_days_min: int = 10
    default_days_max: int = 65
    default_service_name: str = "Standard Shipping"

    # 시스템 액터 (applied 로그 기록자)
    system_actor: str = "system"
    default_proposer: str = "agent"
    default_reviewer: str = "admin"

    # 로그 조회 기본 개수
    log_limit: int = 100

    # 금액 반올림 단위
    money_quantum: Decimal = Decimal("0.01")

    def __post_init__(self):
        if self.bike_weights is None:
            self.bike_weights = {
                15: "Road Bike",
                18: "Mountain Bike",
                25: "E-Bike",
            }
        if self.paired_weights is None:
            self.paired_weights = {
                33: "Road Bike + Mountain Bike",
                40: "E-Bike + Road Bike",
                43: "E-Bike + Mountain Bike",
            }


# 기본 설정 인스턴스
DEFAULT_CONFIG = RateConfig()
