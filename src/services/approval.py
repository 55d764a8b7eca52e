"""
approval.py - 가격 변경 승인 워크플로우 (v1.0)

상태: pending -> approved | rejected (종료 상태에서 전이 불가)

감사 로그:
- propose  -> proposed
- approve  -> approved (검토자) + applied (system)
- reject   -> rejected
- update_proposed_price -> 로그 없음 (검토 전 수정)

승인 후 Shopify 반영이 실패하면 상태를 pending으로 되돌린다.
되돌리기까지 실패하면 ConsistencyError.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from config.logging_config import ContextAdapter, LogContext

from ..core.config import RateConfig, DEFAULT_CONFIG
from ..core.exceptions import (
    ConsistencyError,
    ErrorCodes,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..domain.models import (
    ChangeAction,
    ChangeLogEntry,
    ChangeStatus,
    PendingChange,
    RateKey,
    RatePatch,
    to_decimal,
    utc_now,
)
from ..notifications.events import EventEmitter, EventType, get_event_emitter

logger = logging.getLogger(__name__)


def _validate_price(price: Decimal, field: str = "proposed_price"):
    if price < 0:
        raise ValidationError("Price must be >= 0", field=field, value=price)


class ChangeApprovalWorkflow:
    """변경 요청 상태 머신"""

    def __init__(
        self,
        repository,
        catalog,
        events: Optional[EventEmitter] = None,
        config: Optional[RateConfig] = None,
    ):
        """
        Args:
            repository: 변경 요청/감사 로그 저장소
            catalog: RateCatalog (승인 시 반영 대상)
            events: 이벤트 이미터
            config: 기본 액터 이름 등
        """
        self.repository = repository
        self.catalog = catalog
        self.events = events or get_event_emitter()
        self.config = config or DEFAULT_CONFIG

    # ========== 내부 ==========

    @staticmethod
    def _context_logger(change: PendingChange) -> ContextAdapter:
        return ContextAdapter(logger, LogContext(
            zone_id=change.zone_id,
            rate_id=change.rate_id,
            change_id=change.id,
            operation="approve",
        ))

    def _get(self, change_id: str) -> PendingChange:
        change = self.repository.get_change(change_id)
        if change is None:
            raise NotFoundError(f"Change {change_id} not found", entity="change", entity_id=change_id)
        return change

    def _get_pending(self, change_id: str) -> PendingChange:
        change = self._get(change_id)
        if change.status.is_terminal:
            raise InvalidStateError(
                f"Change {change_id} is already {change.status.value}",
                current_status=change.status.value,
            )
        return change

    def _log(
        self,
        change: PendingChange,
        action: ChangeAction,
        performed_by: str,
        rate_name: str = None,
        notes: str = None,
    ) -> ChangeLogEntry:
        entry = ChangeLogEntry(
            rate_id=change.rate_id,
            zone_id=change.zone_id,
            zone_name=change.zone_name,
            rate_name=rate_name or change.rate_name,
            old_price=change.current_price,
            new_price=change.proposed_price,
            currency=change.currency,
            action=action,
            performed_by=performed_by,
            notes=notes,
        )
        return self.repository.append_log(entry)

    def _emit(self, event_type: EventType, change: PendingChange, **extra):
        self.events.emit(
            event_type,
            {"change_id": change.id, "zone_id": change.zone_id, "rate_id": change.rate_id,
             "proposed_price": str(change.proposed_price), **extra},
            source="approval",
            correlation_id=change.id,
        )

    # ========== 상태 전이 ==========

    def propose(
        self,
        rate_id: str,
        zone_id: str,
        zone_name: str,
        rate_name: str,
        current_price,
        proposed_price,
        currency: str,
        proposed_by: str = None,
        notes: str = None,
        proposed_rate_name: str = None,
    ) -> PendingChange:
        """변경 요청 생성 (요금당 pending 1건만 허용)"""
        current = to_decimal(current_price)
        proposed = to_decimal(proposed_price)
        _validate_price(proposed)

        key = RateKey(zone_id, rate_id)
        for existing in self.repository.list_changes(ChangeStatus.PENDING):
            if existing.key == key:
                raise ValidationError(
                    f"Rate {key} already has a pending change ({existing.id})",
                    field="rate_id",
                    value=rate_id,
                    error_code=ErrorCodes.DUPLICATE_PROPOSAL,
                )

        change = PendingChange(
            rate_id=rate_id,
            zone_id=zone_id,
            zone_name=zone_name,
            rate_name=rate_name,
            current_price=current,
            proposed_price=proposed,
            proposed_rate_name=(proposed_rate_name or "").strip() or rate_name,
            currency=currency,
            proposed_by=proposed_by or self.config.default_proposer,
            notes=notes or None,
        )
        change = self.repository.add_change(change)
        self._log(change, ChangeAction.PROPOSED, change.proposed_by, notes=change.notes)

        logger.info(f"Proposed {change.rate_name} {current} -> {proposed} {currency} ({change.id})")
        self._emit(EventType.CHANGE_PROPOSED, change, proposed_by=change.proposed_by)
        return change

    def propose_for_rate(
        self,
        key: RateKey,
        proposed_price,
        proposed_by: str = None,
        notes: str = None,
        proposed_rate_name: str = None,
    ) -> PendingChange:
        """카탈로그 스냅샷에서 존/요금 이름과 현재 가격을 채워 요청 생성"""
        zone, rate = self.catalog.find_rate(key)
        return self.propose(
            rate_id=rate.id,
            zone_id=zone.id,
            zone_name=zone.name,
            rate_name=rate.name,
            current_price=rate.price,
            proposed_price=proposed_price,
            currency=rate.currency,
            proposed_by=proposed_by,
            notes=notes,
            proposed_rate_name=proposed_rate_name,
        )

    def approve(self, change_id: str, reviewed_by: str = None) -> PendingChange:
        """승인 + Shopify 반영"""
        change = self._get_pending(change_id)
        reviewer = reviewed_by or self.config.default_reviewer

        change.status = ChangeStatus.APPROVED
        change.reviewed_at = utc_now()
        change.reviewed_by = reviewer
        change = self.repository.update_change(change, expected_status=ChangeStatus.PENDING)

        patch = RatePatch.of(
            name=change.final_rate_name,
            price=change.proposed_price,
            currency=change.currency,
        )
        try:
            self.catalog.update_rate(change.key, patch, refresh=False)
        except Exception as error:
            self._rollback(change, error)
            raise

        self._log(change, ChangeAction.APPROVED, reviewer, rate_name=change.final_rate_name)
        self._log(change, ChangeAction.APPLIED, self.config.system_actor)

        # 이미 반영됨: 재조회 실패는 롤백하지 않는다
        try:
            self.catalog.refresh()
        except Exception as error:
            self._context_logger(change).warning(f"Catalog refresh after change {change.id} failed: {error}")

        self._context_logger(change).info(f"Approved and applied change {change.id} by {reviewer}")
        self._emit(EventType.CHANGE_APPROVED, change, reviewed_by=reviewer)
        self._emit(EventType.CHANGE_APPLIED, change)
        return change

    def _rollback(self, change: PendingChange, error: Exception):
        """반영 실패 시 pending으로 복구"""
        log = self._context_logger(change)
        log.error(f"Applying change {change.id} failed, restoring to pending: {error}")

        change.status = ChangeStatus.PENDING
        change.reviewed_at = None
        change.reviewed_by = None
        try:
            self.repository.update_change(change, expected_status=ChangeStatus.APPROVED)
        except Exception as rollback_error:
            log.critical(f"Rollback of change {change.id} failed: {rollback_error}")
            raise ConsistencyError(
                f"Change {change.id} is approved but was not applied, and restoring it failed",
                change_id=change.id,
                rollback_error=rollback_error,
                cause=error,
            ) from error

        self._emit(EventType.CHANGE_ROLLED_BACK, change, error=str(error))

    def reject(self, change_id: str, reviewed_by: str = None, notes: str = None) -> PendingChange:
        """반려 (Shopify 호출 없음)"""
        change = self._get_pending(change_id)
        reviewer = reviewed_by or self.config.default_reviewer

        change.status = ChangeStatus.REJECTED
        change.reviewed_at = utc_now()
        change.reviewed_by = reviewer
        change.notes = notes or change.notes
        change = self.repository.update_change(change, expected_status=ChangeStatus.PENDING)

        self._log(change, ChangeAction.REJECTED, reviewer, notes=change.notes)

        logger.info(f"Rejected change {change.id} by {reviewer}")
        self._emit(EventType.CHANGE_REJECTED, change, reviewed_by=reviewer)
        return change

    def update_proposed_price(
        self,
        change_id: str,
        new_price,
        new_name: str = None,
    ) -> PendingChange:
        """검토 전 제안 가격/이름 수정 (상태/로그 변화 없음)"""
        change = self._get_pending(change_id)
        price = to_decimal(new_price)
        _validate_price(price)

        change.proposed_price = price
        if new_name is not None and new_name.strip():
            change.proposed_rate_name = new_name.strip()

        return self.repository.update_change(change, expected_status=ChangeStatus.PENDING)

    # ========== 조회 ==========

    def get_change(self, change_id: str) -> PendingChange:
        return self._get(change_id)

    def list_changes(self, status: Optional[ChangeStatus] = None) -> List[PendingChange]:
        """변경 요청 목록 (최신순)"""
        return self.repository.list_changes(status)

    def list_logs(self, limit: int = None, rate_key: Optional[RateKey] = None) -> List[ChangeLogEntry]:
        """감사 로그 (최신순)"""
        return self.repository.list_logs(limit or self.config.log_limit, rate_key)

    def pending_count(self) -> int:
        return len(self.repository.list_changes(ChangeStatus.PENDING))
