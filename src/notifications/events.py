"""
이벤트 시스템

카탈로그 변경, 벌크 작업, 변경 승인 흐름을 프로세스 내에서 알린다.
핸들러는 emit 호출 스레드에서 동기 실행된다.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """이벤트 유형"""
    # 카탈로그
    CATALOG_REFRESHED = "catalog.refreshed"
    RATE_CREATED = "rate.created"
    RATE_UPDATED = "rate.updated"
    RATE_DELETED = "rate.deleted"

    # 벌크 작업
    BULK_COMPLETED = "bulk.completed"

    # 변경 승인
    CHANGE_PROPOSED = "change.proposed"
    CHANGE_APPROVED = "change.approved"
    CHANGE_REJECTED = "change.rejected"
    CHANGE_APPLIED = "change.applied"
    CHANGE_ROLLED_BACK = "change.rolled_back"

    ERROR_OCCURRED = "error.occurred"


@dataclass
class Event:
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    source: str = ""
    correlation_id: str = ""        # 변경 요청 ID 등

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "data": self.data,
            "timestamp": self.timestamp,
            "source": self.source,
            "correlation_id": self.correlation_id,
        }


EventHandler = Callable[[Event], None]

# 전체 구독 키
_ALL = None


class EventEmitter:
    """발행/구독

    핸들러 하나가 실패해도 나머지 핸들러와 발행자는 계속 진행한다.
    """

    def __init__(self):
        self._handlers: Dict[Optional[EventType], List[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event_type: EventType, handler: EventHandler):
        with self._lock:
            self._handlers[event_type].append(handler)

    def on_all(self, handler: EventHandler):
        """모든 이벤트 구독"""
        with self._lock:
            self._handlers[_ALL].append(handler)

    def off(self, event_type: EventType, handler: EventHandler):
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def listeners(self, event_type: EventType) -> List[EventHandler]:
        """event_type 구독자 + 전체 구독자 (등록 순)"""
        with self._lock:
            return list(self._handlers.get(event_type, ())) + list(self._handlers.get(_ALL, ()))

    def emit(
        self,
        event_type: EventType,
        data: Dict[str, Any] = None,
        source: str = "",
        correlation_id: str = ""
    ) -> Event:
        event = Event(event_type, data or {}, source=source, correlation_id=correlation_id)

        for handler in self.listeners(event_type):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event_type.value}")

        return event


_global_emitter = EventEmitter()


def get_event_emitter() -> EventEmitter:
    """프로세스 전역 이미터"""
    return _global_emitter


def emit_event(
    event_type: EventType,
    data: Dict[str, Any] = None,
    source: str = "",
    correlation_id: str = ""
) -> Event:
    return _global_emitter.emit(event_type, data, source, correlation_id)


def subscribe(event_type: EventType, handler: EventHandler):
    _global_emitter.on(event_type, handler)
