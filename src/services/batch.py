"""
batch.py - 순차 배치 실행기 (v1.0)

외부 호출 목록을 하나씩 실행한다.
- 항목 실패는 ErrorHandler가 복구 액션을 결정 (ABORT가 아니면 계속)
- 항목별 타임아웃은 해당 항목만 실패 처리
- 취소는 이후 호출만 중단 (이미 보낸 호출은 되돌리지 않음)
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from config.logging_config import PerformanceLogger

from ..core.error_handler import ErrorHandler, RecoveryAction
from ..core.exceptions import ExternalTimeoutError
from ..domain.models import BatchFailure, BatchResult
from ..notifications.events import EventEmitter, EventType, get_event_emitter

logger = logging.getLogger(__name__)

# (완료 수, 전체 수, 항목 라벨)
ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class BatchItem:
    """배치 항목 (라벨 + 호출)"""
    label: str
    call: Callable[[], Any]


class BatchRunner:
    """순차 배치 실행기"""

    def __init__(
        self,
        error_handler: Optional[ErrorHandler] = None,
        timeout: Optional[float] = None,
        events: Optional[EventEmitter] = None,
    ):
        """
        Args:
            error_handler: 항목 실패 처리기
            timeout: 항목별 타임아웃 (초, None = 무제한)
            events: 항목 실패 시 ERROR_OCCURRED 발행 (기본: 전역)
        """
        self.error_handler = error_handler or ErrorHandler(logger)
        self.timeout = timeout
        self.events = events or get_event_emitter()
        self.perf = PerformanceLogger(logger)

    def _call(self, item: BatchItem) -> Any:
        if self.timeout is None:
            return item.call()

        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(item.call)
            try:
                return future.result(timeout=self.timeout)
            except FutureTimeout:
                raise ExternalTimeoutError(
                    f"Timed out after {self.timeout}s: {item.label}",
                    timeout_seconds=self.timeout,
                )
        finally:
            executor.shutdown(wait=False)

    def run(
        self,
        items: Iterable[BatchItem],
        name: str = "batch",
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """
        배치 실행

        Args:
            items: 실행할 항목
            name: 로그용 작업 이름
            on_progress: 항목 완료마다 호출 (done, total, label)
            cancel_event: set() 되면 다음 항목부터 중단

        Returns:
            BatchResult ("N of M succeeded")
        """
        items = list(items)
        result = BatchResult(total=len(items))

        with self.perf.track(name, total=len(items)):
            for index, item in enumerate(items, 1):
                if cancel_event is not None and cancel_event.is_set():
                    result.cancelled = True
                    logger.warning(f"{name} cancelled after {index - 1} of {len(items)} items")
                    break

                try:
                    self._call(item)
                    result.succeeded += 1
                except Exception as e:
                    action = self.error_handler.handle(e, {"item": item.label, "index": index})
                    failure = BatchFailure(
                        label=item.label,
                        error_code=getattr(e, "error_code", type(e).__name__),
                        message=str(e),
                    )
                    result.failures.append(failure)
                    self.events.emit(
                        EventType.ERROR_OCCURRED,
                        {"batch": name, "item": failure.label, "error_code": failure.error_code,
                         "message": failure.message, "action": action.value},
                        source="batch",
                    )
                    if action is RecoveryAction.ABORT:
                        raise

                if on_progress:
                    on_progress(index, len(items), item.label)

        logger.info(f"{name}: {result.summary()}")
        return result
