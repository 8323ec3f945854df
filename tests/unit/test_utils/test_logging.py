"""Tests for structured logging helpers."""

import logging
import pytest
from src.utils.logging import (
    StructuredLogger,
    correlation_context,
    generate_correlation_id,
    get_correlation_id,
    log_timing,
    mask_email,
    mask_sensitive_data,
    mask_user_id,
    timed,
)
from src.utils.logging_config import LoggingConfig


@pytest.mark.unit
def test_generate_correlation_id():
    first, second = generate_correlation_id(), generate_correlation_id()
    assert first.startswith("req_")
    assert len(first) == 30
    assert first != second


@pytest.mark.unit
def test_correlation_context_restores_previous():
    assert get_correlation_id() is None
    with correlation_context("req_outer") as outer:
        assert outer == "req_outer"
        with correlation_context() as inner:
            assert get_correlation_id() == inner
        assert get_correlation_id() == "req_outer"
    assert get_correlation_id() is None


@pytest.mark.unit
def test_correlation_header_lookup():
    assert LoggingConfig.correlation_id_from_headers({"x-correlation-id": "req_1"}) == "req_1"
    assert LoggingConfig.correlation_id_from_headers({"X-Correlation-ID": "req_2"}) == "req_2"
    assert LoggingConfig.correlation_id_from_headers({"x-correlation-id": ""}) is None
    assert LoggingConfig.correlation_id_from_headers(None) is None


@pytest.mark.unit
def test_mask_email():
    assert mask_email("val.volunteer@example.org") == "v***@example.org"
    assert mask_email(None) is None


@pytest.mark.unit
def test_mask_sensitive_data():
    text = 'duplicate key for ada@example.org token=abcdefghijklmnopqrstuvwxyz'
    masked = mask_sensitive_data(text)
    assert "ada@example.org" not in masked
    assert "abcdefghijklmnop" not in masked
    assert "[REDACTED]" in masked


@pytest.mark.unit
def test_mask_user_id():
    assert mask_user_id(42) == 42
    assert mask_user_id(None) is None
    masked = mask_user_id("a1b2c3d4e5f6g7h8")
    assert masked.startswith("a1b2...")


@pytest.mark.unit
def test_masking_can_be_disabled(monkeypatch):
    monkeypatch.setattr(LoggingConfig, "LOG_MASK_SENSITIVE", False)
    assert mask_email("ada@example.org") == "ada@example.org"


@pytest.mark.unit
def test_structured_logger_masks_fields(caplog):
    logger = StructuredLogger(logging.getLogger("tests.structured"))

    with caplog.at_level(logging.INFO, logger="tests.structured"):
        with correlation_context("req_test"):
            logger.info("Join failed", email="ada@example.org", error="conflict for ada@example.org", task_id=3)

    record = caplog.records[-1]
    assert record.correlation_id == "req_test"
    assert record.email == "a***@example.org"
    assert "ada@example.org" not in record.error
    assert record.task_id == 3


@pytest.mark.unit
def test_log_timing_logs_completion(caplog):
    logger = StructuredLogger(logging.getLogger("tests.timing"))

    with caplog.at_level(logging.INFO, logger="tests.timing"):
        with log_timing("unit_op", logger=logger, activity_id=1):
            pass

    record = caplog.records[-1]
    assert record.getMessage() == "Completed unit_op"
    assert record.operation == "unit_op"
    assert record.activity_id == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timed_wraps_coroutines():
    @timed("double")
    async def double(value):
        return value * 2

    assert await double(4) == 8


@pytest.mark.unit
def test_timed_wraps_functions():
    @timed()
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
