"""알림 모듈 - 프로세스 내 이벤트"""
from .events import (
    EventType,
    Event,
    EventEmitter,
    get_event_emitter,
    emit_event,
    subscribe,
)

__all__ = [
    "EventType",
    "Event",
    "EventEmitter",
    "get_event_emitter",
    "emit_event",
    "subscribe",
]
