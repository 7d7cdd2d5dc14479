"""Tests for logger configuration and structured error/performance events."""

import json
import logging

from utils.error_handling import (
    MissingInput,
    StructuredLogger,
    UpstreamHttpError,
    UpstreamTimeout,
)
from utils.logger import configure_logging, get_logger


def test_get_logger_nests_under_extractor() -> None:
    assert get_logger("parsers.base_parser").name == "extractor.parsers.base_parser"
    assert get_logger("extractor.api").name == "extractor.api"


def test_file_handler_writes_json_lines(tmp_path) -> None:
    log_file = tmp_path / "logs" / "extractor.log"
    logger = configure_logging("debug", str(log_file))
    try:
        get_logger("tests").info("cached", extra={"event_type": "cache", "event_data": {"n": 1}})
    finally:
        for handler in logger.handlers:
            handler.flush()

    entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert entry["message"] == "cached"
    assert entry["event_type"] == "cache"
    assert entry["event_data"] == {"n": 1}
    assert entry["logger"] == "extractor.tests"

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_unknown_level_falls_back_to_info() -> None:
    logger = configure_logging("chatty")

    assert logger.level == logging.INFO


def test_structured_logger_counts_errors_and_timings(caplog) -> None:
    log = StructuredLogger("tests.pipeline")

    with caplog.at_level(logging.DEBUG, logger="extractor.tests.pipeline"):
        log.log_error(UpstreamTimeout("reviews", 2.0), level="WARNING")
        log.log_error(UpstreamHttpError("page fetch", 404, "gone"), level="WARNING")
        with log.timed("page_parse", url="https://x.test/1.html"):
            pass

    assert log.get_error_stats() == {"UpstreamTimeout": 1, "UpstreamHttpError": 1}
    assert list(log.get_performance_stats()) == ["page_parse"]
    event_types = [record.event_type for record in caplog.records]
    assert event_types == ["stage_failure", "stage_failure", "performance"]
    payload = json.loads(caplog.records[0].getMessage())
    assert payload["context"] == {"stage": "reviews", "status": None}


def test_error_payload_shapes() -> None:
    assert MissingInput().to_dict() == {
        "error": "URL parameter is required",
        "stage": "input",
        "status": None,
        "body": None,
    }
    timeout = UpstreamTimeout("page fetch", 25.0)
    assert timeout.to_dict()["error"] == "page fetch: upstream call timed out after 25.0s"
    assert UpstreamTimeout("reviews").to_dict()["error"] == "reviews: request budget exhausted"
