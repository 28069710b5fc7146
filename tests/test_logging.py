"""Tests for the log formatters."""

from __future__ import annotations

import json
import logging
import sys

from skillnet.core.logging import ContextTextFormatter, JsonFormatter, TEXT_FORMAT, build_log_handler


def _record(message: str = "skill call", context: object = None, exc_info=None) -> logging.LogRecord:
    record = logging.LogRecord("skillnet.services.dispatch_service", logging.INFO, __file__, 1, message, None, exc_info)
    if context is not None:
        record.context = context
    return record


class TestJsonFormatter:
    def test_context_is_merged_and_stamped(self):
        formatter = JsonFormatter(provider="5fan", node="node-sel")

        payload = json.loads(formatter.format(_record(context={"component": "dispatch", "skill": "hear"})))

        assert payload["message"] == "skill call"
        assert payload["level"] == "INFO"
        assert payload["provider"] == "5fan"
        assert payload["node"] == "node-sel"
        assert payload["skill"] == "hear"

    def test_empty_stamp_is_omitted(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert "provider" not in payload
        assert "node" not in payload

    def test_non_json_values_are_stringified(self):
        payload = json.loads(JsonFormatter().format(_record(context={"skills": {"hear"}})))
        assert payload["skills"] == "{'hear'}"

    def test_exception_is_included(self):
        try:
            raise ValueError("bad step")
        except ValueError:
            record = _record("skill handler failed", exc_info=sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))

        assert "ValueError: bad step" in payload["exc"]


def test_text_formatter_appends_context():
    line = ContextTextFormatter("%(levelname)s %(message)s").format(
        _record(context={"component": "pubsub", "channel": "5fan-skills"})
    )
    assert line == "INFO skill call component=pubsub channel=5fan-skills"


def test_handler_follows_json_setting(test_settings):
    json_handler = build_log_handler(test_settings)
    text_handler = build_log_handler(test_settings.model_copy(update={"OBS_LOG_JSON": False}))

    assert isinstance(json_handler.formatter, JsonFormatter)
    assert json.loads(json_handler.format(_record()))["node"] == "node-sel"
    assert isinstance(text_handler.formatter, ContextTextFormatter)
    assert text_handler.formatter._fmt == TEXT_FORMAT
