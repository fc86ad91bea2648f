"""
Tests for structured logging (demand_kernel/logging_config.py).

Covers:
- StructuredFormatter emits one JSON object per record with extras
- LogContext.bind() sets and restores context fields
- Exceptions are flattened into exc_* fields
"""

import json
import logging
import sys
from decimal import Decimal
from uuid import uuid4

from demand_kernel.domain.events import ActionCode
from demand_kernel.exceptions import TransitionNotAllowedError
from demand_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def format_record(record):
    return json.loads(StructuredFormatter().format(record))


def make_record(msg="hello", **extra):
    record = logging.LogRecord("demand_kernel.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:

    def test_basic_fields_and_extras(self):
        demand_id = uuid4()
        payload = format_record(make_record(target=demand_id, cost=Decimal("1.50")))
        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "demand_kernel.test"
        assert payload["target"] == str(demand_id)
        assert payload["cost"] == "1.50"

    def test_exception_fields(self):
        try:
            raise TransitionNotAllowedError("d-1", "backlog", "in_progress", "nope")
        except TransitionNotAllowedError:
            record = logging.LogRecord(
                "demand_kernel.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info(),
            )
        payload = format_record(record)
        assert payload["exc_type"] == "TransitionNotAllowedError"
        assert payload["exc_code"] == "TRANSITION_NOT_ALLOWED"
        assert payload["exc_to_status"] == "in_progress"
        assert "traceback" in payload


class TestLogContext:

    def test_bind_sets_and_restores(self):
        demand_id = uuid4()
        LogContext.set(correlation_id="req-1")
        with LogContext.bind(demand_id=demand_id, action=ActionCode.EDIT):
            payload = format_record(make_record())
            assert payload["demand_id"] == str(demand_id)
            assert payload["action"] == "edit"
            assert payload["correlation_id"] == "req-1"
        assert "demand_id" not in LogContext.get_all()
        assert LogContext.get_all()["correlation_id"] == "req-1"

    def test_get_logger_namespace(self):
        assert get_logger("services.x").name == "demand_kernel.services.x"
