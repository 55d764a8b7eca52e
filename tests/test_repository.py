"""
test_repository.py - 저장소 테스트

1. LocalRepository (임시 디렉토리 JSON)
2. SupabaseRepository (Mock 클라이언트)
3. get_repository 팩토리
"""

import sys
import threading
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.exceptions import ConfigurationError, InvalidStateError, NotFoundError, SupabaseError
from src.domain.models import (
    CarrierBaseRate,
    ChangeAction,
    ChangeLogEntry,
    ChangeStatus,
    Multiplier,
    PendingChange,
    RateKey,
    RateOverlay,
    utc_now,
)
from src.storage.repository import TABLE_CHANGES, LocalRepository
from src.storage.supabase_repository import SupabaseRepository, get_repository


def _change(rate_id="r1", zone_id="z1", **kwargs):
    return PendingChange(
        rate_id=rate_id,
        zone_id=zone_id,
        zone_name="Germany",
        rate_name="Road",
        current_price=Decimal("89.00"),
        proposed_price=Decimal("95.00"),
        currency="EUR",
        **kwargs,
    )


def _log(action=ChangeAction.PROPOSED, rate_id="r1", **kwargs):
    return ChangeLogEntry(
        rate_id=rate_id,
        zone_id="z1",
        zone_name="Germany",
        rate_name="Road",
        old_price=Decimal("89.00"),
        new_price=Decimal("95.00"),
        currency="EUR",
        action=action,
        performed_by="agent",
        **kwargs,
    )


class TestLocalRepositoryFiles:
    """파일 초기화"""

    def test_creates_table_files(self, temp_data_dir):
        LocalRepository(temp_data_dir)
        files = {p.name for p in Path(temp_data_dir).glob("*.json")}
        assert "pending_rate_changes.json" in files
        assert "shopify_rate_extras.json" in files
        assert len(files) == 5

    def test_data_survives_reopen(self, temp_data_dir):
        LocalRepository(temp_data_dir).add_change(_change())
        assert len(LocalRepository(temp_data_dir).list_changes()) == 1

    def test_clear_all(self, repository):
        repository.add_change(_change())
        repository.clear_all()
        assert repository.list_changes() == []

    def test_no_temp_files_left(self, repository, temp_data_dir):
        repository.add_change(_change())
        repository.append_log(_log())
        assert list(Path(temp_data_dir).glob("*.tmp")) == []

    def test_failed_write_keeps_previous_file(self, repository, temp_data_dir, monkeypatch):
        """쓰기 도중 실패해도 기존 파일 유지"""
        repository.add_change(_change())

        def broken_dump(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("src.storage.repository.json.dump", broken_dump)
        with pytest.raises(OSError):
            repository.add_change(_change(rate_id="r2"))
        monkeypatch.undo()

        assert [c.rate_id for c in repository.list_changes()] == ["r1"]
        assert list(Path(temp_data_dir).glob("*.tmp")) == []

    def test_concurrent_appends(self, repository):
        """스레드 동시 추가 시 유실 없음"""
        threads = [
            threading.Thread(target=repository.append_log, args=(_log(rate_id=f"r{i}"),))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(repository.list_logs(limit=100)) == 20


class TestOverlays:
    """오버레이"""

    def test_upsert_replaces_same_key(self, repository):
        repository.upsert_overlay(RateOverlay("r1", "z1", category="Road Bike"))
        repository.upsert_overlay(RateOverlay("r1", "z1", category="Wheels"))

        overlays = repository.list_overlays()
        assert len(overlays) == 1
        assert overlays[RateKey("z1", "r1")].category == "Wheels"

    def test_same_rate_id_other_zone(self, repository):
        repository.upsert_overlay(RateOverlay("r1", "z1", category="A"))
        repository.upsert_overlay(RateOverlay("r1", "z2", category="B"))
        assert len(repository.list_overlays()) == 2

    def test_delete(self, repository):
        repository.upsert_overlay(RateOverlay("r1", "z1", estimated_days="5"))
        assert repository.delete_overlay(RateKey("z1", "r1"))
        assert not repository.delete_overlay(RateKey("z1", "r1"))


class TestChanges:
    """변경 요청"""

    def test_roundtrip_fields(self, repository):
        change = _change(notes="memo", proposed_rate_name="Road Express")
        repository.add_change(change)

        loaded = repository.get_change(change.id)
        assert loaded.proposed_price == Decimal("95.00")
        assert loaded.status == ChangeStatus.PENDING
        assert loaded.final_rate_name == "Road Express"
        assert loaded.created_at == change.created_at

    def test_get_missing(self, repository):
        assert repository.get_change("nope") is None

    def test_conditional_update(self, repository):
        change = repository.add_change(_change())
        change.status = ChangeStatus.APPROVED
        repository.update_change(change, expected_status=ChangeStatus.PENDING)

        change.status = ChangeStatus.REJECTED
        with pytest.raises(InvalidStateError) as exc:
            repository.update_change(change, expected_status=ChangeStatus.PENDING)
        assert exc.value.current_status == "approved"
        assert repository.get_change(change.id).status == ChangeStatus.APPROVED

    def test_update_missing(self, repository):
        with pytest.raises(NotFoundError):
            repository.update_change(_change())

    def test_list_newest_first_and_filter(self, repository):
        old = _change(rate_id="old", created_at=utc_now() - timedelta(hours=1))
        new = _change(rate_id="new", status=ChangeStatus.REJECTED)
        repository.add_change(old)
        repository.add_change(new)

        assert [c.rate_id for c in repository.list_changes()] == ["new", "old"]
        assert [c.rate_id for c in repository.list_changes(ChangeStatus.PENDING)] == ["old"]


class TestLogs:
    """감사 로그"""

    def test_newest_first_with_limit(self, repository):
        base = utc_now()
        for i in range(5):
            repository.append_log(_log(notes=str(i), created_at=base + timedelta(seconds=i)))

        logs = repository.list_logs(limit=3)
        assert [e.notes for e in logs] == ["4", "3", "2"]

    def test_same_timestamp_keeps_insertion_order(self, repository):
        stamp = utc_now()
        repository.append_log(_log(ChangeAction.APPROVED, created_at=stamp))
        repository.append_log(_log(ChangeAction.APPLIED, created_at=stamp))

        assert [e.action for e in repository.list_logs()] == [ChangeAction.APPLIED, ChangeAction.APPROVED]

    def test_filter_by_rate(self, repository):
        repository.append_log(_log(rate_id="r1"))
        repository.append_log(_log(rate_id="r2"))
        assert [e.rate_id for e in repository.list_logs(rate_key=RateKey("z1", "r2"))] == ["r2"]


class TestMultipliersAndCarrierRates:
    """배수 / 캐리어 요금"""

    def test_multipliers_sorted_by_factor(self, repository):
        repository.add_multiplier(Multiplier(name="triple", multiplier=Decimal("3")))
        repository.add_multiplier(Multiplier(name="double", multiplier=Decimal("2")))
        assert [m.name for m in repository.list_multipliers()] == ["double", "triple"]

    def test_update_missing_multiplier(self, repository):
        with pytest.raises(NotFoundError):
            repository.update_multiplier(Multiplier(name="x", multiplier=Decimal("1")))

    def test_carrier_rates_filtering(self, repository):
        repository.add_carrier_rate(CarrierBaseRate(country_code="DE", country_name="Germany",
                                                    price_per_kg=Decimal("2.5")))
        repository.add_carrier_rate(CarrierBaseRate(country_code="AT", country_name="Austria",
                                                    price_per_kg=Decimal("3")))
        repository.add_carrier_rate(CarrierBaseRate(country_code="DE", country_name="Germany",
                                                    service_name="Express", is_active=False))

        assert [r.country_name for r in repository.list_carrier_rates()] == ["Austria", "Germany", "Germany"]
        assert len(repository.list_carrier_rates(country_code="DE")) == 2
        assert len(repository.list_carrier_rates(country_code="DE", active_only=True)) == 1

    def test_carrier_rate_update_and_delete(self, repository):
        rate = repository.add_carrier_rate(CarrierBaseRate(country_code="DE", country_name="Germany"))
        rate.is_active = False
        repository.update_carrier_rate(rate)

        assert repository.get_carrier_rate(rate.id).is_active is False
        assert repository.delete_carrier_rate(rate.id)
        assert repository.get_carrier_rate(rate.id) is None


# ========== Supabase ==========

def _supabase_client(*results):
    """체이닝 쿼리를 흉내내는 Mock 클라이언트 (execute 결과를 순서대로 반환)"""
    query = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert", "update", "upsert", "delete"):
        getattr(query, method).return_value = query
    query.execute.side_effect = [Mock(data=rows) for rows in results]

    client = MagicMock()
    client.table.return_value = query
    return client, query


class TestSupabaseRepository:
    """Supabase 저장소 (Mock 클라이언트)"""

    def test_requires_credentials(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            SupabaseRepository()

    def test_list_changes_by_status(self):
        change = _change()
        client, query = _supabase_client([change.to_dict()])

        changes = SupabaseRepository(client=client).list_changes(ChangeStatus.PENDING)

        client.table.assert_called_with(TABLE_CHANGES)
        query.eq.assert_called_with("status", "pending")
        query.order.assert_called_with("created_at", desc=True)
        assert changes[0].id == change.id

    def test_conditional_update_uses_status_filter(self):
        change = _change()
        client, query = _supabase_client([change.to_dict()])

        SupabaseRepository(client=client).update_change(change, expected_status=ChangeStatus.PENDING)

        query.eq.assert_any_call("id", change.id)
        query.eq.assert_any_call("status", "pending")

    def test_conditional_update_conflict(self):
        """조건 불일치 -> 현재 상태로 InvalidStateError"""
        change = _change()
        stored = _change(status=ChangeStatus.APPROVED).to_dict()
        client, _ = _supabase_client([], [stored])

        with pytest.raises(InvalidStateError) as exc:
            SupabaseRepository(client=client).update_change(change, expected_status=ChangeStatus.PENDING)
        assert exc.value.current_status == "approved"

    def test_update_missing_change(self):
        client, _ = _supabase_client([], [])
        with pytest.raises(NotFoundError):
            SupabaseRepository(client=client).update_change(_change())

    def test_overlay_upsert_conflict_key(self):
        client, query = _supabase_client([])
        SupabaseRepository(client=client).upsert_overlay(RateOverlay("r1", "z1", category="Road Bike"))

        _, kwargs = query.upsert.call_args
        assert kwargs["on_conflict"] == "rate_id,zone_id"

    def test_errors_wrapped(self):
        client, query = _supabase_client()
        query.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(SupabaseError) as exc:
            SupabaseRepository(client=client).list_overlays()
        assert exc.value.table == "shopify_rate_extras"
        assert exc.value.operation == "select"


class TestGetRepository:
    """팩토리"""

    def test_local_without_supabase(self, temp_data_dir):
        settings = Mock(has_supabase=False, data_dir=temp_data_dir)
        assert isinstance(get_repository(settings), LocalRepository)

    def test_mock_forces_local(self, temp_data_dir):
        settings = Mock(has_supabase=True, data_dir=temp_data_dir)
        assert isinstance(get_repository(settings, use_mock=True), LocalRepository)
