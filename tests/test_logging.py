# tests/test_logging.py
import json
import logging

from logs.logging_config import (
    ContextFilter,
    RequestContext,
    UserContext,
    get_request_id,
    log_context_usage,
    log_llm_request,
    log_metrics,
)


def test_request_context_binds_and_restores():
    assert get_request_id() == "-"
    with RequestContext("req-1") as request_id:
        assert request_id == "req-1"
        assert get_request_id() == "req-1"
    assert get_request_id() == "-"


def test_context_filter_injects_ids():
    record = logging.LogRecord("llm", logging.INFO, __file__, 1, "msg", None, None)
    with RequestContext("req-2"), UserContext("hashed-caller"):
        ContextFilter().filter(record)
    assert record.request_id == "req-2"
    assert record.user_id == "hashed-caller"


def test_request_log_reuses_bound_request_id():
    with RequestContext("req-3"):
        assert log_llm_request("m", "openai", "translate", "prompt", 0.3, 4000) == "req-3"
    assert log_llm_request("m", "openai", "translate", "prompt", 0.3, 4000) != "-"


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def test_metrics_line_is_json():
    metrics_logger = logging.getLogger("llm.metrics")
    handler = ListHandler()
    previous_level = metrics_logger.level
    metrics_logger.addHandler(handler)
    metrics_logger.setLevel(logging.INFO)
    try:
        data = log_metrics(
            request_id="req-4", model="m", backend="openai", task="translate",
            latency_ms=12.3456, prompt_chars=10, response_chars=5, status="success",
            estimated_tokens=4, chunk_index=1, attempt=2
        )
    finally:
        metrics_logger.removeHandler(handler)
        metrics_logger.setLevel(previous_level)

    assert data["latency_ms"] == 12.35
    assert data["chunk_index"] == 1
    assert json.loads(handler.messages[-1])["attempt"] == 2


def test_context_usage_estimate():
    usage = log_context_usage("req-5", "m", "x" * 10, 4000)
    assert usage["estimated_tokens"] == 3
