"""
multipliers.py - 가격 배수 관리 (v1.0)
"""

import logging
from decimal import Decimal
from typing import List, Optional

from ..core.exceptions import NotFoundError, ValidationError
from ..domain.models import Multiplier, to_decimal
from ..domain.pricing import multiplied_price

logger = logging.getLogger(__name__)

_EDITABLE = ("name", "multiplier", "base_quantity", "description", "is_active")


class MultiplierService:
    """배수 CRUD + 가격 계산"""

    def __init__(self, repository):
        self.repository = repository

    @staticmethod
    def _validate(multiplier: Multiplier):
        if not multiplier.name or not multiplier.name.strip():
            raise ValidationError("Multiplier name is required", field="name", value=multiplier.name)
        if multiplier.multiplier <= 0:
            raise ValidationError(
                "Multiplier must be greater than 0", field="multiplier", value=multiplier.multiplier
            )
        if multiplier.base_quantity < 1:
            raise ValidationError(
                "Base quantity must be at least 1", field="base_quantity", value=multiplier.base_quantity
            )

    # ========== 조회 ==========

    def list(self, active_only: bool = False) -> List[Multiplier]:
        """배수 목록 (배수 오름차순)"""
        multipliers = self.repository.list_multipliers()
        if active_only:
            multipliers = [m for m in multipliers if m.is_active]
        return multipliers

    def get(self, multiplier_id: str) -> Multiplier:
        multiplier = self.repository.get_multiplier(multiplier_id)
        if multiplier is None:
            raise NotFoundError(
                f"Multiplier {multiplier_id} not found", entity="multiplier", entity_id=multiplier_id
            )
        return multiplier

    def resolve(self, multiplier_id: Optional[str]) -> Optional[Multiplier]:
        """벌크 편집용 조회: 없거나 비활성이면 None ("배수 없음")"""
        if not multiplier_id:
            return None
        multiplier = self.repository.get_multiplier(multiplier_id)
        if multiplier is None:
            logger.warning(f"Multiplier {multiplier_id} no longer exists, ignoring")
            return None
        if not multiplier.is_active:
            logger.warning(f"Multiplier {multiplier_id} is inactive, ignoring")
            return None
        return multiplier

    # ========== 변경 ==========

    def add(
        self,
        name: str,
        multiplier,
        base_quantity: int = 1,
        description: str = None,
        is_active: bool = True,
    ) -> Multiplier:
        """배수 추가"""
        record = Multiplier(
            name=(name or "").strip(),
            multiplier=to_decimal(multiplier),
            base_quantity=int(base_quantity),
            description=description or None,
            is_active=is_active,
        )
        self._validate(record)
        saved = self.repository.add_multiplier(record)
        logger.info(f"Added multiplier '{saved.name}' (x{saved.multiplier})")
        return saved

    def update(self, multiplier_id: str, **changes) -> Multiplier:
        """배수 수정 (name, multiplier, base_quantity, description, is_active)"""
        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValidationError(f"Unknown multiplier fields: {sorted(unknown)}", field="fields", value=unknown)

        record = self.get(multiplier_id)
        for key, value in changes.items():
            if key == "multiplier":
                value = to_decimal(value)
            elif key == "base_quantity":
                value = int(value)
            elif key == "name":
                value = (value or "").strip()
            setattr(record, key, value)

        self._validate(record)
        return self.repository.update_multiplier(record)

    def delete(self, multiplier_id: str):
        """배수 삭제 (참조 중인 벌크 편집은 배수 없음으로 처리됨)"""
        if not self.repository.delete_multiplier(multiplier_id):
            raise NotFoundError(
                f"Multiplier {multiplier_id} not found", entity="multiplier", entity_id=multiplier_id
            )
        logger.info(f"Deleted multiplier {multiplier_id}")

    # ========== 계산 ==========

    def calculate_price(self, base_price, multiplier_id: Optional[str]) -> Decimal:
        """base x 배수 (센트 반올림). 배수가 없으면 base 그대로"""
        base = to_decimal(base_price)
        multiplier = self.repository.get_multiplier(multiplier_id) if multiplier_id else None
        if multiplier is None:
            return base
        return multiplied_price(base, multiplier.multiplier)
