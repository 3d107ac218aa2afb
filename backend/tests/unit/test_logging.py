# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for structured logging
"""

import json
import logging

from agentflow.core.logging import JSONFormatter, TextFormatter, get_logger, log_event


def make_record(**extra):
    record = logging.LogRecord("agentflow.engine.test", logging.INFO, __file__, 1, "step_completed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_correlation_ids():
    record = make_record(event="step_completed", execution_id="exec_1", node_id="get-weather", duration=12)

    line = json.loads(JSONFormatter().format(record))

    assert list(line)[:7] == ["timestamp", "level", "logger", "message", "event", "execution_id", "node_id"]
    assert line["fields"] == {"duration": 12}
    assert line["level"] == "INFO"


def test_json_formatter_without_extras():
    line = json.loads(JSONFormatter().format(make_record()))
    assert "fields" not in line
    assert line["message"] == "step_completed"


def test_text_formatter_appends_execution_id():
    assert TextFormatter().format(make_record(execution_id="exec_1")).endswith("step_completed [exec_1]")


def test_get_logger_replaces_handlers():
    logger = get_logger("agentflow.test.handlers", log_level="debug", log_format="text")
    logger = get_logger("agentflow.test.handlers", log_level="debug", log_format="text")

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, TextFormatter)
    assert logger.level == logging.DEBUG


def test_log_event_passes_fields():
    records = []

    class Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    logger = logging.getLogger("agentflow.test.events")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(Collect())

    log_event(logger, "tool_retry", level="WARNING", tool_id="get_weather", attempt=2)

    assert records[0].levelname == "WARNING"
    assert records[0].event == "tool_retry"
    assert records[0].attempt == 2
