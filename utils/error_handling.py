import json
import logging
import threading
import time
import traceback
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from .logger import get_logger


STAGE_INPUT = "input"
STAGE_PAGE = "page fetch"
STAGE_REVIEWS = "reviews"
STAGE_RECOMMENDATIONS = "recommendations"
STAGE_ASSEMBLY = "assembly"


# Custom Exception Classes
class ScraperError(Exception):
    """Base exception for all extraction errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class ParsingError(ScraperError):
    """Errors during HTML/data parsing"""

    pass


class ParseDegraded(ParsingError):
    """A sub-extractor fell back to its empty/default value.

    Only ever logged; never surfaced to callers of the pipeline.
    """

    def __init__(self, field: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"{field} degraded to default: {cause}" if cause else f"{field} degraded to default",
            {"field": field},
        )
        self.field = field
        self.cause = cause


class MissingInput(ScraperError):
    """No source URL was provided"""

    http_status = 400

    def __init__(self, message: str = "URL parameter is required"):
        super().__init__(message, {"stage": STAGE_INPUT})
        self.stage = STAGE_INPUT

    def to_dict(self) -> Dict[str, Any]:
        return {"error": str(self), "stage": self.stage, "status": None, "body": None}


class PipelineStageError(ScraperError):
    """Failure attributed to a single pipeline stage"""

    http_status = 500

    def __init__(
        self,
        stage: str,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, {"stage": stage, "status": status_code})
        self.stage = stage
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": f"{self.stage}: {self}",
            "stage": self.stage,
            "status": self.status_code,
            "body": self.body,
        }


class UpstreamTimeout(PipelineStageError):
    """An outbound call exceeded its deadline"""

    http_status = 504

    def __init__(self, stage: str, timeout: Optional[float] = None):
        message = (
            f"upstream call timed out after {timeout:.1f}s"
            if timeout is not None
            else "request budget exhausted"
        )
        super().__init__(stage, message)
        self.timeout = timeout


class NetworkError(PipelineStageError):
    """Network and connectivity issues"""

    http_status = 502


class UpstreamHttpError(PipelineStageError):
    """Non-2xx response from the page, review or recommendation endpoint"""

    def __init__(self, stage: str, status_code: int, body: str, reason: str = ""):
        message = f"upstream responded with HTTP {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(stage, message, status_code=status_code, body=body)

    @property
    def http_status(self) -> int:  # type: ignore[override]
        return self.status_code or 502


class UnexpectedFailure(PipelineStageError):
    """Any other exception raised while assembling the record"""

    http_status = 500


class StructuredLogger:
    """
    JSON event emitter for one pipeline.

    Staged failures and stage timings are written as JSON messages with the
    same payload attached as ``event_data``, and tallied in memory so the
    CLI and tests can inspect them after a run.
    """

    def __init__(self, name: str = "pipeline"):
        self.logger = get_logger(name)
        self._timings: Dict[str, List[float]] = defaultdict(list)
        self._failures: Dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def _emit(self, level: int, event_type: str, payload: Dict[str, Any]) -> None:
        payload = {"timestamp": datetime.now().isoformat(), **payload}
        self.logger.log(
            level,
            json.dumps(payload, default=str),
            extra={"event_type": event_type, "event_data": payload},
        )

    def log_error(self, error: Exception, level: str = "ERROR") -> None:
        numeric_level = logging.getLevelName(level.upper())
        payload: Dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": getattr(error, "context", {}),
        }
        if numeric_level >= logging.ERROR and error.__traceback__ is not None:
            payload["stack_trace"] = "".join(traceback.format_exception(error))

        with self._lock:
            self._failures[type(error).__name__] += 1
        self._emit(numeric_level, "stage_failure", payload)

    def log_performance(
        self, operation: str, duration: float, metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        with self._lock:
            self._timings[operation].append(duration)
        self._emit(
            logging.INFO,
            "performance",
            {"operation": operation, "duration_ms": round(duration * 1000, 3), "metadata": metadata or {}},
        )

    @contextmanager
    def timed(self, operation: str, **metadata: Any) -> Iterator[None]:
        """Record how long the block took, whether or not it raised."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.log_performance(operation, time.perf_counter() - started, metadata)

    def get_error_stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._failures)

    def get_performance_stats(self) -> Dict[str, List[float]]:
        with self._lock:
            return {operation: list(samples) for operation, samples in self._timings.items()}
