"""Loguru logging configuration.

Human-readable stderr output, an opt-in JSON sink for records bound with
``json_output=True``, and an optional rotating log file when ``log_dir`` is set.
Request-scoped fields (``request_id``, ``user_id``) are attached with
``logger.contextualize`` by the request middleware and rendered when present.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[request_id]} | {name}:{function}:{line} | {message}"
)


def _default_request_id(record: dict) -> bool:
    record["extra"].setdefault("request_id", "-")
    return True


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_LOG_FORMAT,
        filter=_default_request_id,
        serialize=False,
    )
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "voter-intake.log",
            level=level,
            format=_LOG_FORMAT,
            filter=_default_request_id,
            rotation="24h",
            retention="7 days",
        )
