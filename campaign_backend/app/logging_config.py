import json
import logging
import logging.handlers
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# Context variables for correlation tracking
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
campaign_name_var: ContextVar[str | None] = ContextVar("campaign_name", default=None)
content_type_var: ContextVar[str | None] = ContextVar("content_type", default=None)

# Field name in the JSON output -> context variable
CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    "correlation_id": correlation_id_var,
    "campaign_name": campaign_name_var,
    "content_type": content_type_var,
}

# Short labels for the console; campaign names are too long to repeat per line
CONSOLE_LABELS = {"correlation_id": "cid", "content_type": "type"}

RESERVED_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def generate_correlation_id() -> str:
    return f"regen-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for current context. Generates one if not provided."""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def current_context() -> dict[str, str]:
    """Context fields that are set in the current task."""
    context = {}
    for field, var in CONTEXT_FIELDS.items():
        value = var.get()
        if value:
            context[field] = value
    return context


def clear_context():
    for var in CONTEXT_FIELDS.values():
        var.set(None)


class StructuredJSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Carries the timestamp, level, logger, message and source location, the
    regeneration context (correlation_id, campaign_name, content_type) when
    set, the exception if any, and every attribute passed through ``extra``.
    Values that are not JSON serializable are written as their ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(current_context())

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in RESERVED_RECORD_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter with color support."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        context = current_context()
        labels = [
            f"{label}={context[field]}"
            for field, label in CONSOLE_LABELS.items()
            if field in context
        ]
        context_str = f" [{', '.join(labels)}]" if labels else ""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        formatted = (
            f"{color}{timestamp} {record.levelname:8}{self.RESET} "
            f"{record.name}{context_str} - {record.getMessage()}"
        )
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


def _file_handler(
    path: Path,
    level: int,
    formatter: logging.Formatter,
    logger_prefixes: tuple[str, ...] | None = None,
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if logger_prefixes:
        handler.addFilter(lambda record: record.name.startswith(logger_prefixes))
    return handler


def setup_logging(log_dir: str, enable_console: bool = True) -> None:
    """
    Set up structured logging with file and optional console output.

    Creates separate log files for:
    - api.log: API and application logs (INFO and above)
    - regeneration.log: every prompt/validate/merge step, prompts included (DEBUG)
    - errors.log: All error-level logs
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    json_formatter = StructuredJSONFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    root_logger.addHandler(
        _file_handler(log_path / "api.log", logging.INFO, json_formatter, ("app", "uvicorn"))
    )
    root_logger.addHandler(
        _file_handler(
            log_path / "regeneration.log",
            logging.DEBUG,
            json_formatter,
            ("app.domains.regeneration", "app.domains.campaign"),
        )
    )
    root_logger.addHandler(_file_handler(log_path / "errors.log", logging.ERROR, json_formatter))

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ConsoleFormatter())
        root_logger.addHandler(console_handler)

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for setting logging context.

    Usage:
        with LogContext(campaign_name="Spring Sale", content_type="rsa"):
            logger.info("This log will carry the campaign and content type")

    Values left as None keep whatever the enclosing context set. On exit every
    variable is reset to its value from before entry.
    """

    def __init__(
        self,
        correlation_id: str | None = None,
        campaign_name: str | None = None,
        content_type: str | None = None,
        auto_generate_correlation_id: bool = False,
    ):
        self.values = {
            "correlation_id": correlation_id,
            "campaign_name": campaign_name,
            "content_type": content_type,
        }
        self.auto_generate_correlation_id = auto_generate_correlation_id
        self._tokens: list[tuple[ContextVar[str | None], Token]] = []

    def __enter__(self):
        values = dict(self.values)
        if (
            not values["correlation_id"]
            and self.auto_generate_correlation_id
            and not correlation_id_var.get()
        ):
            values["correlation_id"] = generate_correlation_id()

        for field, value in values.items():
            if value:
                var = CONTEXT_FIELDS[field]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
        return False
