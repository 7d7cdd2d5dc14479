"""
Logging setup for the extractor.

All module loggers live under the ``extractor`` hierarchy so a single call
to ``configure_logging`` governs the pipeline, the API and the CLI. Console
output is colour-coded by level and event type; the optional log file gets
one JSON object per line.
"""

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, Optional

from colorama import Fore, Style, init
from tqdm import tqdm

init(autoreset=True)

ROOT_LOGGER_NAME = "extractor"
DEFAULT_EVENT_TYPE = "general"

CONSOLE_FORMAT = "%(asctime)s %(level_tag)s [%(event_tag)s] %(name)s: %(message)s"

LEVEL_COLORS: Dict[str, str] = {
    "DEBUG": Fore.CYAN,
    "INFO": Fore.GREEN,
    "WARNING": Fore.YELLOW,
    "ERROR": Fore.RED,
    "CRITICAL": Fore.RED + Style.BRIGHT,
}

# Event types attached via ``extra={"event_type": ...}``.
EVENT_COLORS: Dict[str, str] = {
    "fetch": Fore.CYAN,
    "parse": Fore.GREEN,
    "degraded": Fore.YELLOW,
    "cache": Fore.MAGENTA,
    "stage_failure": Fore.RED + Style.BRIGHT,
    "performance": Fore.BLUE,
}


def _paint(color: str, text: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


class EventMetadataFilter(logging.Filter):
    """Give every record the ``event_type``/``event_data`` attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.event_type = getattr(record, "event_type", DEFAULT_EVENT_TYPE)
        record.event_data = getattr(record, "event_data", {})
        return True


class ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.level_tag = _paint(LEVEL_COLORS.get(record.levelname, Fore.WHITE), record.levelname)
        event_type = getattr(record, "event_type", DEFAULT_EVENT_TYPE)
        record.event_tag = _paint(EVENT_COLORS.get(event_type, Fore.WHITE), event_type.upper())
        return super().format(record)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log files and log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "event_type": getattr(record, "event_type", DEFAULT_EVENT_TYPE),
            "event_data": getattr(record, "event_data", {}),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
) -> logging.Logger:
    """(Re)build the handlers of ``name``; repeated calls replace, never stack."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = []
    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(ConsoleFormatter(CONSOLE_FORMAT))
        handlers.append(stream)
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(EventMetadataFilter())
        logger.addHandler(handler)
    return logger


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Configure the ``extractor`` hierarchy from a settings level name."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    return setup_logger(ROOT_LOGGER_NAME, numeric_level, log_file)


def get_logger(name: str) -> logging.Logger:
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def create_progress_bar(iterable: Iterable, desc: str = "Progress", unit: str = "it") -> tqdm:
    return tqdm(iterable, desc=desc, unit=unit, colour="green")
