"""Tests for log formatting and credential masking."""

import logging

from tabwright.utils.log import StructuredFormatter, init_logger, redact


def _record(msg, **extra):
    record = logging.makeLogRecord({"msg": msg, "levelname": "INFO", "levelno": logging.INFO})
    record.__dict__.update(extra)
    return record


def test_redact_masks_query_keys_and_bearer_tokens():
    assert redact("GET https://x/models/m:generateContent?key=AIzaSECRET") == (
        "GET https://x/models/m:generateContent?key=***"
    )
    assert redact("Authorization: Bearer sk-abc.def") == "Authorization: Bearer ***"
    assert redact("nothing to hide") == "nothing to hide"


def test_structured_formatter_appends_masked_extra():
    line = StructuredFormatter("%(message)s").format(
        _record("[executor] Sending request", url="https://x?key=abc", api_key="sk-1", status=200)
    )
    message, payload = line.split(" | ", 1)
    assert message == "[executor] Sending request"
    assert '"api_key": "***"' in payload
    assert '"status": 200' in payload
    assert "abc" not in payload
    assert "sk-1" not in payload


def test_init_logger_writes_daily_file(tmp_path):
    logger = init_logger(tmp_path)
    logger.debug("[test] hello", extra={"provider": "openai"})
    for handler in logger.logger.handlers:
        handler.flush()

    assert logger.log_file is not None
    text = logger.log_file.read_text(encoding="utf-8")
    assert "[test] hello" in text
    assert '"provider": "openai"' in text
