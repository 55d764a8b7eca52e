"""
에러 핸들러

배치 항목 하나가 실패했을 때 배치를 계속할지 결정한다.

    SKIP              입력/대상 문제 (검증 실패, 없음, 이미 종료된 변경 요청)
    LOG_AND_CONTINUE  외부 호출 실패, 타임아웃, 그 밖의 FreightDeskError
    ABORT             인증 거부(401/403) 또는 예상하지 못한 예외
"""

import logging
import traceback
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from .exceptions import (
    ExternalCallError,
    FreightDeskError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class RecoveryAction(Enum):
    """복구 액션"""
    SKIP = "skip"
    LOG_AND_CONTINUE = "log_and_continue"
    ABORT = "abort"


AUTH_STATUS_CODES = (401, 403)

_SKIP_ERRORS: Tuple[Type[Exception], ...] = (ValidationError, NotFoundError, InvalidStateError)


@dataclass
class ErrorRecord:
    """배치 항목 실패 기록"""
    error_code: str
    message: str
    timestamp: str
    context: Dict[str, Any] = field(default_factory=dict)
    traceback: Optional[str] = None
    recovery_action: Optional[RecoveryAction] = None

    @classmethod
    def from_exception(cls, error: Exception, context: Dict[str, Any]) -> "ErrorRecord":
        if isinstance(error, FreightDeskError):
            code, details = error.error_code, error.details
        else:
            code, details = "UNKNOWN", {}
        return cls(
            error_code=code,
            message=str(error),
            timestamp=datetime.now(timezone.utc).isoformat(),
            context={**details, **context},
            traceback="".join(traceback.format_exception(type(error), error, error.__traceback__)),
        )


class ErrorHandler:
    """배치 항목 에러 분류기"""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self.error_history: List[ErrorRecord] = []

    def classify(self, error: Exception) -> RecoveryAction:
        """예외 -> 복구 액션"""
        if isinstance(error, _SKIP_ERRORS):
            return RecoveryAction.SKIP
        if isinstance(error, ExternalCallError):
            if error.status_code in AUTH_STATUS_CODES:
                return RecoveryAction.ABORT
            return RecoveryAction.LOG_AND_CONTINUE
        if isinstance(error, FreightDeskError):
            return RecoveryAction.LOG_AND_CONTINUE
        return RecoveryAction.ABORT

    def handle(self, error: Exception, context: Dict[str, Any] = None) -> RecoveryAction:
        """
        실패 기록 + 로그 + 복구 액션 결정

        Args:
            error: 발생한 예외
            context: 항목 라벨(item), 순번(index) 등

        Returns:
            RecoveryAction
        """
        context = context or {}
        record = ErrorRecord.from_exception(error, context)
        record.recovery_action = self.classify(error)
        self.error_history.append(record)

        item = context.get("item", "?")
        if record.recovery_action is RecoveryAction.ABORT:
            self.logger.error(f"{item}: {error} - aborting batch", extra={"context": record.context},
                              exc_info=None if isinstance(error, FreightDeskError) else error)
        else:
            self.logger.warning(f"{item}: {error}", extra={"context": record.context})

        return record.recovery_action

    def get_error_summary(self) -> Dict[str, Any]:
        """코드별 실패 수 + 최근 5건"""
        if not self.error_history:
            return {"total_errors": 0, "by_code": {}}

        return {
            "total_errors": len(self.error_history),
            "by_code": dict(Counter(r.error_code for r in self.error_history)),
            "recent_errors": [
                {"code": r.error_code, "message": r.message, "time": r.timestamp}
                for r in self.error_history[-5:]
            ],
        }

    def clear_history(self):
        self.error_history.clear()
