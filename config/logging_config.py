"""
logging_config.py - 로깅 설정 (v1.0)

- 콘솔: 터미널이면 Rich, 아니면 한 줄 텍스트 (stderr)
- 파일: logs/ 회전 로그 (LOG_TO_FILE)
- JSON 포맷 (LOG_FORMAT=json), 변경 요청/요금 컨텍스트 포함
- 배치/승인 작업 시간 측정
"""

import sys
import json
import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import contextmanager
from dataclasses import dataclass, asdict

from rich.logging import RichHandler


LOGS_DIR = Path(__file__).parent.parent / "logs"

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """한 줄 JSON 로그 (수집기 연동용)"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


@dataclass
class LogContext:
    """존/요금/변경 요청 식별자"""
    zone_id: Optional[str] = None
    rate_id: Optional[str] = None
    change_id: Optional[str] = None
    operation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class ContextAdapter(logging.LoggerAdapter):
    """모든 레코드에 LogContext를 record.context로 붙이는 어댑터"""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        context = self.extra.to_dict() if isinstance(self.extra, LogContext) else dict(self.extra or {})
        extra["context"] = {**context, **extra.get("context", {})}
        return msg, kwargs


class PerformanceLogger:
    """작업 소요 시간 기록"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def track(self, operation: str, **context):
        """
        with 블록 실행 시간을 로그로 남긴다. 예외는 그대로 전파.

            with perf.track("bulk apply", items=12):
                ...
        """
        started = time.perf_counter()
        self.logger.debug(f"시작: {operation}", extra={"context": context})
        try:
            yield
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self.logger.error(
                f"실패: {operation} ({elapsed_ms:.0f}ms) - {e}",
                extra={"context": {**context, "error": str(e), "duration_ms": elapsed_ms}},
            )
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.info(
            f"완료: {operation} ({elapsed_ms:.0f}ms)",
            extra={"context": {**context, "duration_ms": elapsed_ms}},
        )


def _console_handler(json_format: bool, color_output: bool) -> logging.Handler:
    if json_format:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
    elif color_output and sys.stderr.isatty():
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(name: str, json_format: bool) -> logging.Handler:
    LOGS_DIR.mkdir(exist_ok=True)
    handler = RotatingFileHandler(
        LOGS_DIR / f"{name}_{datetime.now().strftime('%Y%m%d')}.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    name: str = "src",
    level: str = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
    json_format: bool = False,
    color_output: bool = True,
) -> logging.Logger:
    """
    로거 구성 (여러 번 호출해도 핸들러는 중복되지 않음)

    Args:
        name: 최상위 로거 이름. 모듈 로거가 __name__을 쓰므로 기본값 "src"
        level: DEBUG / INFO / WARNING / ERROR / CRITICAL
        log_to_file: logs/ 에 회전 파일 기록
        log_to_console: stderr 출력
        json_format: JSON 한 줄 포맷
        color_output: 터미널이면 Rich 핸들러 사용

    Returns:
        구성된 로거
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    if log_to_console:
        logger.addHandler(_console_handler(json_format, color_output))
    if log_to_file:
        logger.addHandler(_file_handler(name, json_format))

    return logger
