"""Logging setup: readable console output plus JSON log files.

Scrape code binds per-call context with :func:`get_logger`, e.g.
``get_logger(__name__, url=url, site="amazon.com")``. Those fields are
grouped under a ``scrape`` key in the JSON files and appended in brackets to
console lines, so one scrape can be followed across modules.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

from product_scraper.config import settings

CONTEXT_FIELDS = ("site", "url", "page_type", "proxy", "outcome")

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


def _bound_context(record: logging.LogRecord) -> dict:
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line with UTC timestamp, source location and scrape context."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['source'] = f"{record.module}.{record.funcName}:{record.lineno}"

        context = _bound_context(record)
        for name in context:
            log_record.pop(name, None)
        if context:
            log_record['scrape'] = context


class ConsoleFormatter(logging.Formatter):
    """Plain-text formatter that appends bound scrape context as ``[key=value ...]``."""

    def format(self, record):
        line = super().format(record)
        context = _bound_context(record)
        if not context:
            return line
        fields = " ".join(f"{name}={value}" for name, value in context.items())
        return f"{line} [{fields}]"


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(base_dir: str | Path | None = None) -> logging.Logger:
    """
    Install console and file handlers on the root logger.

    Writes ``app.log`` (everything, JSON) and ``error.log`` (ERROR and up,
    JSON) into ``settings.log_dir`` under ``base_dir`` (defaults to the
    working directory). Existing root handlers are replaced.
    """
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / settings.log_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ConsoleFormatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    json_formatter = CustomJsonFormatter(JSON_FORMAT)
    root_logger.addHandler(_file_handler(logs_dir / "app.log", logging.DEBUG, json_formatter))
    root_logger.addHandler(_file_handler(logs_dir / "error.log", logging.ERROR, json_formatter))

    # httpx logs every request at INFO; the pipeline already logs fetches
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adds bound context to every record. Per-call ``extra`` wins on conflicts."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger that tags its records with scrape context.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields, e.g. site='amazon.com', url='...'
    """
    return LoggerAdapter(logging.getLogger(name), context)
