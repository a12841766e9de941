"""Centralized logging configuration for recording sessions."""

import json
import logging
import logging.config
import uuid
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .config_models import SystemConfig


class ContextFilter(logging.Filter):
    """Inject the recording session id into log records."""

    def __init__(self, session_id: str):
        """
        Initialize the context filter.

        Args:
            session_id: Unique identifier for the recording session
        """
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id
        return True


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "session_id": getattr(record, "session_id", "unknown"),
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Structured extra fields
        for key, value in record.__dict__.items():
            if key not in log_data and key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def setup_logging(config: "SystemConfig", session_id: Optional[str] = None) -> str:
    """
    Configure the logging system.

    Args:
        config: System configuration
        session_id: Session identifier. If None, a new UUID will be generated.

    Returns:
        The session_id used for logging
    """
    if session_id is None:
        session_id = str(uuid.uuid4())

    log_dir = config.paths.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"session_{session_id}.log"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": config.logging.format_console,
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "json": {
                "()": JSONFormatter,
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "filters": {
            "context": {
                "()": ContextFilter,
                "session_id": session_id
            }
        },
        "handlers": {
            # stderr keeps log lines out of recorded and replayed terminal output
            "console": {
                "class": "logging.StreamHandler",
                "level": config.logging.level,
                "formatter": "console",
                "filters": ["context"],
                "stream": "ext://sys.stderr"
            },
            "file": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "json",
                "filters": ["context"],
                "filename": str(log_file),
                "mode": "w"
            }
        },
        "root": {
            "level": "DEBUG",
            "handlers": ["console", "file"]
        },
        "loggers": {
            "omega": {
                "level": "DEBUG",
                "propagate": True
            },
            "werkzeug": {
                "level": "WARNING",
                "propagate": True
            }
        }
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized for session {session_id}")
    logger.debug(f"Log file: {log_file}")

    return session_id


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogCapture:
    """Context manager for capturing logs, mostly useful in tests."""

    def __init__(self, logger_name: str = ""):
        """
        Initialize log capture.

        Args:
            logger_name: Name of logger to capture (empty for root)
        """
        self.logger_name = logger_name
        self.handler: Optional[logging.Handler] = None
        self.logs: list = []

    def __enter__(self) -> "LogCapture":
        class CaptureHandler(logging.Handler):
            def __init__(self, capture_func):
                super().__init__()
                self.capture_func = capture_func

            def emit(self, record):
                self.capture_func(record)

        self.handler = CaptureHandler(self._capture_log)
        self.handler.setLevel(logging.DEBUG)

        logger = logging.getLogger(self.logger_name)
        self._previous_level = logger.level
        logger.setLevel(logging.DEBUG)
        logger.addHandler(self.handler)

        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        if self.handler:
            logger = logging.getLogger(self.logger_name)
            logger.removeHandler(self.handler)
            logger.setLevel(self._previous_level)

    def _capture_log(self, record: logging.LogRecord) -> None:
        self.logs.append({
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": record.created,
            "logger": record.name
        })

    def get_logs(self, level: Optional[str] = None) -> list:
        """
        Get captured logs.

        Args:
            level: Optional level filter

        Returns:
            List of log records
        """
        if level is None:
            return self.logs.copy()
        return [log for log in self.logs if log["level"] == level]


def log_browser_command(logger: logging.Logger, session: str, command: str, result: Optional[Any] = None) -> None:
    """
    Log a browser automation call with structured data.

    Args:
        logger: Logger instance
        session: Browser session identifier
        command: Operation performed (navigate, evaluate, capture)
        result: Optional summary of the result
    """
    extra_data = {
        "browser_session": session,
        "command": command,
    }

    if result is not None:
        extra_data["result"] = result
        logger.debug(f"BROWSER: {session} <- {command} -> {result}", extra=extra_data)
    else:
        logger.debug(f"BROWSER: {session} <- {command}", extra=extra_data)
