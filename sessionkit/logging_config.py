"""
Logging configuration that keeps session identifiers out of log output
"""

import logging
import logging.config
import re
from typing import Any, Dict

_SID_PATTERN = re.compile(r"(sid=)([A-Za-z0-9,-]+)")


class SessionIdFilter(logging.Filter):
    """Filter masking session identifiers in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Replace `sid=<id>` with a shortened form; never drops a record."""
        message = record.getMessage()
        if "sid=" in message:
            record.msg = _SID_PATTERN.sub(lambda m: m.group(1) + m.group(2)[:4] + "...", message)
            record.args = None
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with session id redaction."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "session_id_filter": {
                "()": SessionIdFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["session_id_filter"]
            }
        },
        "loggers": {
            "sessionkit": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level.upper()))
