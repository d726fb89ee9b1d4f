"""Tests for the structured JSON log formatter."""

import json
import logging

from workorder_sla.shared.infrastructure.logging import CustomJsonFormatter


def _record(**extra):
    record = logging.LogRecord(
        name="workorder_sla.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg="Dependency pause opened", args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_adds_context_fields():
    formatter = CustomJsonFormatter("%(name)s %(levelname)s %(message)s", environment="staging")
    output = json.loads(formatter.format(_record(correlation_id="req-1", order_id="OS-1")))

    assert output["message"] == "Dependency pause opened"
    assert output["correlation_id"] == "req-1"
    assert output["order_id"] == "OS-1"
    assert output["environment"] == "staging"
    assert "timestamp" in output


def test_redacts_sensitive_keys():
    formatter = CustomJsonFormatter("%(message)s")
    output = json.loads(formatter.format(_record(api_key="secret", auth_token="abc", reason="RISCO")))

    assert output["api_key"] == "***REDACTED***"
    assert output["auth_token"] == "***REDACTED***"
    assert output["reason"] == "RISCO"
