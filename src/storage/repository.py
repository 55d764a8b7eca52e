"""
repository.py - 로컬 JSON 저장소 (v1.0)

Supabase 미설정 시 로컬 JSON 파일로 데이터 저장
테이블 하나당 JSON 파일 하나 (Supabase 테이블명과 동일)
"""

import functools
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..core.exceptions import InvalidStateError, NotFoundError
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

# 테이블명 (Supabase와 공유)
TABLE_OVERLAYS = "shopify_rate_extras"
TABLE_MULTIPLIERS = "shipping_multipliers"
TABLE_CHANGES = "pending_rate_changes"
TABLE_LOGS = "rate_change_logs"
TABLE_CARRIER_RATES = "carrier_base_rates"

ALL_TABLES = (
    TABLE_OVERLAYS,
    TABLE_MULTIPLIERS,
    TABLE_CHANGES,
    TABLE_LOGS,
    TABLE_CARRIER_RATES,
)


def _locked(method):
    """읽기-수정-쓰기 구간 직렬화"""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class LocalRepository:
    """요금 메타데이터 저장소 (로컬 JSON)"""

    def __init__(self, data_dir: str = None):
        """
        Args:
            data_dir: 데이터 저장 디렉토리 (기본: project_root/data)
        """
        if data_dir is None:
            project_root = Path(__file__).parent.parent.parent
            data_dir = project_root / "data"

        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

        # 초기 파일 생성
        self._init_files()

    def _path(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    def _init_files(self):
        """초기 파일 생성"""
        for table in ALL_TABLES:
            file_path = self._path(table)
            if not file_path.exists():
                self._save_json(table, [])

    def _load_json(self, table: str) -> List[Dict]:
        """JSON 파일 로드"""
        try:
            with open(self._path(table), "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return []

    def _save_json(self, table: str, data: List[Dict]):
        """JSON 파일 저장 (임시 파일에 쓴 뒤 교체)"""
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{table}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(table))
        except BaseException:
            os.unlink(tmp_path)
            raise

    @_locked
    def _replace_row(self, table: str, row_id: str, row: Dict, entity: str):
        data = self._load_json(table)
        for i, d in enumerate(data):
            if d.get("id") == row_id:
                data[i] = row
                self._save_json(table, data)
                return
        raise NotFoundError(f"{entity} {row_id} not found", entity=entity, entity_id=row_id)

    @_locked
    def _delete_row(self, table: str, row_id: str) -> bool:
        data = self._load_json(table)
        remaining = [d for d in data if d.get("id") != row_id]
        self._save_json(table, remaining)
        return len(remaining) < len(data)

    # ========== 요금 오버레이 ==========

    def list_overlays(self) -> Dict[RateKey, RateOverlay]:
        """오버레이 전체 (RateKey 기준)"""
        overlays = [RateOverlay.from_dict(d) for d in self._load_json(TABLE_OVERLAYS)]
        return {o.key: o for o in overlays}

    @_locked
    def upsert_overlay(self, overlay: RateOverlay) -> RateOverlay:
        """오버레이 저장 (rate_id + zone_id 충돌 시 교체)"""
        data = [
            d for d in self._load_json(TABLE_OVERLAYS)
            if not (d.get("rate_id") == overlay.rate_id and d.get("zone_id") == overlay.zone_id)
        ]
        data.append(overlay.to_dict())
        self._save_json(TABLE_OVERLAYS, data)
        return overlay

    @_locked
    def delete_overlay(self, key: RateKey) -> bool:
        """오버레이 삭제"""
        data = self._load_json(TABLE_OVERLAYS)
        remaining = [
            d for d in data
            if not (d.get("rate_id") == key.rate_id and d.get("zone_id") == key.zone_id)
        ]
        self._save_json(TABLE_OVERLAYS, remaining)
        return len(remaining) < len(data)

    # ========== 배수 ==========

    def list_multipliers(self) -> List[Multiplier]:
        """배수 목록 (배수 오름차순)"""
        multipliers = [Multiplier.from_dict(d) for d in self._load_json(TABLE_MULTIPLIERS)]
        return sorted(multipliers, key=lambda m: m.multiplier)

    def get_multiplier(self, multiplier_id: str) -> Optional[Multiplier]:
        """ID로 배수 조회"""
        for d in self._load_json(TABLE_MULTIPLIERS):
            if d.get("id") == multiplier_id:
                return Multiplier.from_dict(d)
        return None

    @_locked
    def add_multiplier(self, multiplier: Multiplier) -> Multiplier:
        """배수 추가"""
        data = self._load_json(TABLE_MULTIPLIERS)
        data.append(multiplier.to_dict())
        self._save_json(TABLE_MULTIPLIERS, data)
        return multiplier

    def update_multiplier(self, multiplier: Multiplier) -> Multiplier:
        """배수 업데이트"""
        multiplier.updated_at = utc_now()
        self._replace_row(TABLE_MULTIPLIERS, multiplier.id, multiplier.to_dict(), "multiplier")
        return multiplier

    def delete_multiplier(self, multiplier_id: str) -> bool:
        """배수 삭제"""
        return self._delete_row(TABLE_MULTIPLIERS, multiplier_id)

    # ========== 변경 요청 ==========

    @_locked
    def add_change(self, change: PendingChange) -> PendingChange:
        """변경 요청 추가"""
        data = self._load_json(TABLE_CHANGES)
        data.append(change.to_dict())
        self._save_json(TABLE_CHANGES, data)
        return change

    def get_change(self, change_id: str) -> Optional[PendingChange]:
        """ID로 변경 요청 조회"""
        for d in self._load_json(TABLE_CHANGES):
            if d.get("id") == change_id:
                return PendingChange.from_dict(d)
        return None

    @_locked
    def update_change(
        self,
        change: PendingChange,
        expected_status: Optional[ChangeStatus] = None,
    ) -> PendingChange:
        """변경 요청 업데이트

        expected_status가 주어지면 저장된 상태가 같을 때만 기록한다.
        """
        data = self._load_json(TABLE_CHANGES)
        for i, d in enumerate(data):
            if d.get("id") != change.id:
                continue
            if expected_status is not None and d.get("status") != expected_status.value:
                raise InvalidStateError(
                    f"Change {change.id} is already {d.get('status')}",
                    current_status=d.get("status"),
                )
            data[i] = change.to_dict()
            self._save_json(TABLE_CHANGES, data)
            return change

        raise NotFoundError(f"Change {change.id} not found", entity="change", entity_id=change.id)

    def list_changes(self, status: Optional[ChangeStatus] = None) -> List[PendingChange]:
        """변경 요청 목록 (최신순)"""
        changes = [PendingChange.from_dict(d) for d in self._load_json(TABLE_CHANGES)]
        if status:
            changes = [c for c in changes if c.status == status]
        return sorted(changes, key=lambda c: c.created_at, reverse=True)

    # ========== 감사 로그 (추가 전용) ==========

    @_locked
    def append_log(self, entry: ChangeLogEntry) -> ChangeLogEntry:
        """로그 추가"""
        data = self._load_json(TABLE_LOGS)
        data.append(entry.to_dict())
        self._save_json(TABLE_LOGS, data)
        return entry

    def list_logs(self, limit: int = 100, rate_key: Optional[RateKey] = None) -> List[ChangeLogEntry]:
        """로그 조회 (최신순)"""
        entries = [ChangeLogEntry.from_dict(d) for d in self._load_json(TABLE_LOGS)]
        if rate_key:
            entries = [e for e in entries if e.key == rate_key]
        # 같은 시각이면 나중에 추가된 로그가 먼저
        ordered = sorted(
            enumerate(entries),
            key=lambda pair: (pair[1].created_at, pair[0]),
            reverse=True,
        )
        return [entry for _, entry in ordered][:limit]

    # ========== 캐리어 기본 요금 ==========

    def list_carrier_rates(
        self,
        country_code: Optional[str] = None,
        active_only: bool = False,
    ) -> List[CarrierBaseRate]:
        """국가별 요금 목록 (국가명순)"""
        rates = [CarrierBaseRate.from_dict(d) for d in self._load_json(TABLE_CARRIER_RATES)]
        if country_code:
            rates = [r for r in rates if r.country_code == country_code]
        if active_only:
            rates = [r for r in rates if r.is_active]
        return sorted(rates, key=lambda r: r.country_name)

    def get_carrier_rate(self, rate_id: str) -> Optional[CarrierBaseRate]:
        """ID로 국가별 요금 조회"""
        for d in self._load_json(TABLE_CARRIER_RATES):
            if d.get("id") == rate_id:
                return CarrierBaseRate.from_dict(d)
        return None

    @_locked
    def add_carrier_rate(self, rate: CarrierBaseRate) -> CarrierBaseRate:
        """국가별 요금 추가"""
        data = self._load_json(TABLE_CARRIER_RATES)
        data.append(rate.to_dict())
        self._save_json(TABLE_CARRIER_RATES, data)
        return rate

    def update_carrier_rate(self, rate: CarrierBaseRate) -> CarrierBaseRate:
        """국가별 요금 업데이트"""
        rate.updated_at = utc_now()
        self._replace_row(TABLE_CARRIER_RATES, rate.id, rate.to_dict(), "carrier_rate")
        return rate

    def delete_carrier_rate(self, rate_id: str) -> bool:
        """국가별 요금 삭제"""
        return self._delete_row(TABLE_CARRIER_RATES, rate_id)

    # ========== 데이터 초기화 (테스트용) ==========

    @_locked
    def clear_all(self):
        """모든 데이터 삭제 (주의: 테스트용)"""
        for table in ALL_TABLES:
            self._save_json(table, [])
