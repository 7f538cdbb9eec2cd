from polybuckets.log import JsonFormatter
from polybuckets.log import setup_logging

import io
import json
import logging
import pytest
import sys


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg, *args, **extra):
    record = logging.LogRecord("polybuckets.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        data = json.loads(JsonFormatter().format(_record("hello %s", "world")))
        assert data["msg"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "polybuckets.test"
        assert "time" in data

    def test_extra_fields(self):
        data = json.loads(
            JsonFormatter().format(_record("access log", hit_cache=True, status=200))
        )
        assert data["hit_cache"] is True
        assert data["status"] == 200
        assert "pathname" not in data
        assert "args" not in data

    def test_non_json_values_are_stringified(self):
        data = json.loads(JsonFormatter().format(_record("x", when=object)))
        assert isinstance(data["when"], str)

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exc_info"]


class TestSetupLogging:
    def test_writes_json_lines(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)
        logging.getLogger("polybuckets.test").info("started", extra={"port": 1323})

        line = stream.getvalue().strip().splitlines()[-1]
        data = json.loads(line)
        assert data["msg"] == "started"
        assert data["port"] == 1323
        assert logging.getLogger().level == logging.DEBUG

    def test_quiets_botocore(self, restore_root_logger):
        setup_logging("DEBUG", stream=io.StringIO())
        assert logging.getLogger("botocore").level == logging.INFO
