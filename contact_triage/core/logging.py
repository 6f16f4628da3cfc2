"""Logging setup with optional JSON output for the contact triage engine."""

import json
import logging
import logging.config
from datetime import datetime
from pathlib import Path
from typing import Any

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Loggers whose records also go to actions.log
ACTION_LOGGERS = ("contact_triage.bulk", "contact_triage.session")


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Structured fields passed as extra={"extra_data": {...}}
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


def _file_handler(path: Path, level: str, formatter: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUP_COUNT,
        "level": level,
        "formatter": formatter,
    }


def setup_enhanced_logging(
    log_dir: str, log_level: str, enable_json: bool = False
) -> dict[str, Any]:
    """
    Setup logging with main, actions and errors log files.

    Args:
        log_dir: Directory to store log files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json: Whether to use JSON formatting

    Returns:
        Dict with logging configuration info
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    main_log = log_path / "main.log"
    actions_log = log_path / "actions.log"
    errors_log = log_path / "errors.log"

    level = log_level.upper()
    formatter_name = "json" if enable_json else "standard"
    formatter: dict[str, Any] = {"()": JSONFormatter} if enable_json else {
        "format": "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
    }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {formatter_name: formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": formatter_name,
            },
            "main_file": _file_handler(main_log, level, formatter_name),
            "actions_file": _file_handler(actions_log, level, formatter_name),
            "error_file": _file_handler(errors_log, "ERROR", formatter_name),
        },
        "loggers": {
            "": {
                "handlers": ["console", "main_file", "error_file"],
                "level": level,
            },
            **{
                name: {
                    "handlers": ["console", "main_file", "actions_file", "error_file"],
                    "level": level,
                    "propagate": False,
                }
                for name in ACTION_LOGGERS
            },
        },
    }

    logging.config.dictConfig(logging_config)

    # Reduce noise from httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return {
        "log_dir": log_dir,
        "main_log": str(main_log),
        "actions_log": str(actions_log),
        "errors_log": str(errors_log),
        "json_enabled": enable_json,
        "level": log_level,
    }
