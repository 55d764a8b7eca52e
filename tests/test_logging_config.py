"""logging_config.py 테스트"""

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging_config import ContextAdapter, JSONFormatter, LogContext, PerformanceLogger, setup_logging


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    logger = logging.getLogger("tests.logging_config")
    logger.setLevel(logging.DEBUG)
    handler = _ListHandler()
    logger.addHandler(handler)
    yield logger, handler.records
    logger.removeHandler(handler)


class TestJSONFormatter:
    def test_includes_context(self):
        record = logging.LogRecord("src.services", logging.INFO, __file__, 10, "applied", None, None)
        record.context = {"change_id": "c1"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["msg"] == "applied"
        assert data["context"] == {"change_id": "c1"}


class TestContextAdapter:
    def test_drops_empty_fields(self, captured):
        logger, records = captured
        ContextAdapter(logger, LogContext(zone_id="z1", change_id="c1")).warning("rollback")

        assert records[0].context == {"zone_id": "z1", "change_id": "c1"}


class TestPerformanceLogger:
    def test_success(self, captured):
        logger, records = captured
        with PerformanceLogger(logger).track("bulk apply", items=3):
            pass

        assert records[-1].getMessage().startswith("완료: bulk apply")
        assert records[-1].context["items"] == 3

    def test_failure_reraises(self, captured):
        logger, records = captured
        with pytest.raises(ValueError):
            with PerformanceLogger(logger).track("bulk apply"):
                raise ValueError("boom")

        assert records[-1].levelno == logging.ERROR
        assert records[-1].context["error"] == "boom"


class TestSetupLogging:
    def test_level_and_single_handler(self):
        logger = setup_logging(name="tests.setup", level="warning", color_output=False)
        setup_logging(name="tests.setup", level="warning", color_output=False)

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
