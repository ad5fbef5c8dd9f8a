"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def log_stream():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    yield logger, stream
    logger.handlers.clear()


def test_sensitive_filter_redacts_api_keys(log_stream):
    logger, stream = log_stream

    logger.info(
        "auth.success",
        extra={"api_key": "sk-secret-123", "x-api-key": "another-secret", "safe_field": "visible"},
    )

    output = stream.getvalue()
    assert "sk-secret-123" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_visitor_identity(log_stream):
    logger, stream = log_stream

    logger.info(
        "analytics.visit_recorded",
        extra={
            "ip_address": "203.0.113.9",
            "headers": {"X-Forwarded-For": "203.0.113.9", "accept": "application/json"},
            "page": "/music",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.9" not in output
    assert "application/json" in output
    assert "/music" in output


def test_rate_limit_fields_pass_through(log_stream):
    logger, stream = log_stream

    logger.info(
        "rate_limit.exceeded",
        extra={"policy": "stats", "client_hash": "abc123", "remaining": 0, "retry_after_s": 42},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "rate_limit.exceeded"
    assert record["policy"] == "stats"
    assert record["client_hash"] == "abc123"
    assert record["retry_after_s"] == 42
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(log_stream):
    logger, stream = log_stream

    set_request_id("req-ctx-1")
    try:
        logger.info("http.request", extra={"path": "/health"})
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-ctx-1"
