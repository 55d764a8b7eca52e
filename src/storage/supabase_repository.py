"""
supabase_repository.py - Supabase 기반 저장소 (v1.0)

LocalRepository와 동일한 인터페이스 제공

사용법:
    # 환경변수 설정 필요
    # SUPABASE_URL=https://xxx.supabase.co
    # SUPABASE_KEY=eyJxxx...

    repo = SupabaseRepository()
    overlays = repo.list_overlays()
"""

import logging
import os
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from ..core.exceptions import ConfigurationError, InvalidStateError, NotFoundError, SupabaseError
from ..domain.models import (
    CarrierBaseRate,
    ChangeLogEntry,
    ChangeStatus,
    Multiplier,
    PendingChange,
    RateKey,
    RateOverlay,
    utc_now,
)
from .repository import (
    TABLE_CARRIER_RATES,
    TABLE_CHANGES,
    TABLE_LOGS,
    TABLE_MULTIPLIERS,
    TABLE_OVERLAYS,
)

logger = logging.getLogger(__name__)


class SupabaseRepository:
    """Supabase 기반 요금 메타데이터 저장소

    환경변수 SUPABASE_URL, SUPABASE_KEY 필요
    """

    def __init__(self, url: str = None, key: str = None, client: Client = None):
        """
        Args:
            url: Supabase 프로젝트 URL
            key: Supabase anon/service key
            client: 이미 생성된 클라이언트 (테스트용)
        """
        if client is not None:
            self.client = client
            return

        self.url = url or os.getenv("SUPABASE_URL")
        self.key = key or os.getenv("SUPABASE_KEY")

        if not self.url or not self.key:
            raise ConfigurationError(
                "SUPABASE_URL과 SUPABASE_KEY 환경변수가 필요합니다.",
                config_key="SUPABASE_URL" if not self.url else "SUPABASE_KEY",
            )

        self.client = create_client(self.url, self.key)

    def _run(self, table: str, operation: str, query) -> List[Dict[str, Any]]:
        """쿼리 실행 (실패 시 SupabaseError)"""
        try:
            response = query.execute()
        except Exception as e:
            raise SupabaseError(
                f"Supabase {operation} on {table} failed: {e}",
                table=table,
                operation=operation,
                cause=e,
            ) from e
        return response.data or []

    # ========== 요금 오버레이 ==========

    def list_overlays(self) -> Dict[RateKey, RateOverlay]:
        """오버레이 전체 (RateKey 기준)"""
        rows = self._run(TABLE_OVERLAYS, "select", self.client.table(TABLE_OVERLAYS).select("*"))
        overlays = [RateOverlay.from_dict(row) for row in rows]
        return {o.key: o for o in overlays}

    def upsert_overlay(self, overlay: RateOverlay) -> RateOverlay:
        """오버레이 저장 (rate_id + zone_id 충돌 시 교체)"""
        self._run(
            TABLE_OVERLAYS, "upsert",
            self.client.table(TABLE_OVERLAYS).upsert(overlay.to_dict(), on_conflict="rate_id,zone_id"),
        )
        return overlay

    def delete_overlay(self, key: RateKey) -> bool:
        """오버레이 삭제"""
        rows = self._run(
            TABLE_OVERLAYS, "delete",
            self.client.table(TABLE_OVERLAYS).delete()
            .eq("rate_id", key.rate_id).eq("zone_id", key.zone_id),
        )
        return len(rows) > 0

    # ========== 배수 ==========

    def list_multipliers(self) -> List[Multiplier]:
        """배수 목록 (배수 오름차순)"""
        rows = self._run(
            TABLE_MULTIPLIERS, "select",
            self.client.table(TABLE_MULTIPLIERS).select("*").order("multiplier"),
        )
        return [Multiplier.from_dict(row) for row in rows]

    def get_multiplier(self, multiplier_id: str) -> Optional[Multiplier]:
        """ID로 배수 조회"""
        rows = self._run(
            TABLE_MULTIPLIERS, "select",
            self.client.table(TABLE_MULTIPLIERS).select("*").eq("id", multiplier_id),
        )
        return Multiplier.from_dict(rows[0]) if rows else None

    def add_multiplier(self, multiplier: Multiplier) -> Multiplier:
        """배수 추가"""
        rows = self._run(
            TABLE_MULTIPLIERS, "insert",
            self.client.table(TABLE_MULTIPLIERS).insert(multiplier.to_dict()),
        )
        return Multiplier.from_dict(rows[0]) if rows else multiplier

    def update_multiplier(self, multiplier: Multiplier) -> Multiplier:
        """배수 업데이트"""
        multiplier.updated_at = utc_now()
        data = multiplier.to_dict()
        data.pop("id")
        data.pop("created_at")
        rows = self._run(
            TABLE_MULTIPLIERS, "update",
            self.client.table(TABLE_MULTIPLIERS).update(data).eq("id", multiplier.id),
        )
        if not rows:
            raise NotFoundError(
                f"multiplier {multiplier.id} not found", entity="multiplier", entity_id=multiplier.id
            )
        return Multiplier.from_dict(rows[0])

    def delete_multiplier(self, multiplier_id: str) -> bool:
        """배수 삭제"""
        rows = self._run(
            TABLE_MULTIPLIERS, "delete",
            self.client.table(TABLE_MULTIPLIERS).delete().eq("id", multiplier_id),
        )
        return len(rows) > 0

    # ========== 변경 요청 ==========

    def add_change(self, change: PendingChange) -> PendingChange:
        """변경 요청 추가"""
        rows = self._run(
            TABLE_CHANGES, "insert",
            self.client.table(TABLE_CHANGES).insert(change.to_dict()),
        )
        return PendingChange.from_dict(rows[0]) if rows else change

    def get_change(self, change_id: str) -> Optional[PendingChange]:
        """ID로 변경 요청 조회"""
        rows = self._run(
            TABLE_CHANGES, "select",
            self.client.table(TABLE_CHANGES).select("*").eq("id", change_id),
        )
        return PendingChange.from_dict(rows[0]) if rows else None

    def update_change(
        self,
        change: PendingChange,
        expected_status: Optional[ChangeStatus] = None,
    ) -> PendingChange:
        """변경 요청 업데이트

        expected_status가 주어지면 status 조건부 UPDATE로 실행한다.
        """
        data = change.to_dict()
        data.pop("id")
        data.pop("created_at")

        query = self.client.table(TABLE_CHANGES).update(data).eq("id", change.id)
        if expected_status is not None:
            query = query.eq("status", expected_status.value)

        rows = self._run(TABLE_CHANGES, "update", query)
        if rows:
            return PendingChange.from_dict(rows[0])

        current = self.get_change(change.id)
        if current is None:
            raise NotFoundError(f"Change {change.id} not found", entity="change", entity_id=change.id)
        raise InvalidStateError(
            f"Change {change.id} is already {current.status.value}",
            current_status=current.status.value,
        )

    def list_changes(self, status: Optional[ChangeStatus] = None) -> List[PendingChange]:
        """변경 요청 목록 (최신순)"""
        query = self.client.table(TABLE_CHANGES).select("*")
        if status:
            query = query.eq("status", status.value)
        rows = self._run(TABLE_CHANGES, "select", query.order("created_at", desc=True))
        return [PendingChange.from_dict(row) for row in rows]

    # ========== 감사 로그 (추가 전용) ==========

    def append_log(self, entry: ChangeLogEntry) -> ChangeLogEntry:
        """로그 추가"""
        self._run(TABLE_LOGS, "insert", self.client.table(TABLE_LOGS).insert(entry.to_dict()))
        return entry

    def list_logs(self, limit: int = 100, rate_key: Optional[RateKey] = None) -> List[ChangeLogEntry]:
        """로그 조회 (최신순)"""
        query = self.client.table(TABLE_LOGS).select("*")
        if rate_key:
            query = query.eq("rate_id", rate_key.rate_id).eq("zone_id", rate_key.zone_id)
        rows = self._run(TABLE_LOGS, "select", query.order("created_at", desc=True).limit(limit))
        return [ChangeLogEntry.from_dict(row) for row in rows]

    # ========== 캐리어 기본 요금 ==========

    def list_carrier_rates(
        self,
        country_code: Optional[str] = None,
        active_only: bool = False,
    ) -> List[CarrierBaseRate]:
        """국가별 요금 목록 (국가명순)"""
        query = self.client.table(TABLE_CARRIER_RATES).select("*")
        if country_code:
            query = query.eq("country_code", country_code)
        if active_only:
            query = query.eq("is_active", True)
        rows = self._run(TABLE_CARRIER_RATES, "select", query.order("country_name"))
        return [CarrierBaseRate.from_dict(row) for row in rows]

    def get_carrier_rate(self, rate_id: str) -> Optional[CarrierBaseRate]:
        """ID로 국가별 요금 조회"""
        rows = self._run(
            TABLE_CARRIER_RATES, "select",
            self.client.table(TABLE_CARRIER_RATES).select("*").eq("id", rate_id),
        )
        return CarrierBaseRate.from_dict(rows[0]) if rows else None

    def add_carrier_rate(self, rate: CarrierBaseRate) -> CarrierBaseRate:
        """국가별 요금 추가"""
        rows = self._run(
            TABLE_CARRIER_RATES, "insert",
            self.client.table(TABLE_CARRIER_RATES).insert(rate.to_dict()),
        )
        return CarrierBaseRate.from_dict(rows[0]) if rows else rate

    def update_carrier_rate(self, rate: CarrierBaseRate) -> CarrierBaseRate:
        """국가별 요금 업데이트"""
        rate.updated_at = utc_now()
        data = rate.to_dict()
        data.pop("id")
        data.pop("created_at")
        rows = self._run(
            TABLE_CARRIER_RATES, "update",
            self.client.table(TABLE_CARRIER_RATES).update(data).eq("id", rate.id),
        )
        if not rows:
            raise NotFoundError(
                f"carrier_rate {rate.id} not found", entity="carrier_rate", entity_id=rate.id
            )
        return CarrierBaseRate.from_dict(rows[0])

    def delete_carrier_rate(self, rate_id: str) -> bool:
        """국가별 요금 삭제"""
        rows = self._run(
            TABLE_CARRIER_RATES, "delete",
            self.client.table(TABLE_CARRIER_RATES).delete().eq("id", rate_id),
        )
        return len(rows) > 0


# ============================================================
# 팩토리 함수: 환경에 따라 저장소 자동 선택
# ============================================================
def get_repository(settings=None, use_mock: bool = False):
    """설정에 따라 적절한 Repository 반환

    SUPABASE_URL과 SUPABASE_KEY가 있으면 SupabaseRepository,
    없거나 mock 모드면 LocalRepository (로컬 JSON) 사용
    """
    from .repository import LocalRepository

    if settings is None:
        from config.settings import get_settings
        settings = get_settings()

    if not use_mock and settings.has_supabase:
        logger.info("[Repository] Supabase 모드 활성화")
        return SupabaseRepository(settings.supabase_url, settings.supabase_key)

    logger.info("[Repository] 로컬 JSON 모드 (%s)", settings.data_dir)
    return LocalRepository(settings.data_dir)
