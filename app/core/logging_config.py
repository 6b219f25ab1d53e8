"""
Logging for the Interview Practice API.

Everything goes through the root logger: human-readable lines on stdout and
a rotating file with call-site detail. Request payloads pass through
sanitize_log_data before being logged so that secrets, base64 recordings and
resume bodies never reach the log.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(funcName)s:%(lineno)d %(message)s"
LOG_FILE = "interview_practice.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

QUIET_LOGGERS = ("uvicorn.access", "openai", "httpx", "botocore", "boto3", "multipart")

REDACTED = "***REDACTED***"
SECRET_MARKERS = ("password", "token", "secret", "api_key", "apikey", "authorization", "database_url")
BULKY_FIELDS = {"audiodata", "audio_data", "resume_text", "file", "content"}


def _make_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> None:
    """
    Configure the root logger. Safe to call more than once; previous handlers
    are replaced.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names fall back to INFO)
        log_dir: Directory holding the rotating log file, created if missing
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.setLevel(level)

    root.addHandler(_make_handler(logging.StreamHandler(sys.stdout), level, CONSOLE_FORMAT))
    root.addHandler(_make_handler(
        RotatingFileHandler(directory / LOG_FILE, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS),
        level,
        FILE_FORMAT,
    ))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of `data` that is safe to log.

    Secret-looking keys are redacted, recordings and document bodies are
    replaced by their size, and nested dicts are sanitized the same way.
    """
    clean: Dict[str, Any] = {}
    for key, value in data.items():
        lowered = str(key).lower()
        if any(marker in lowered for marker in SECRET_MARKERS):
            clean[key] = REDACTED
        elif lowered in BULKY_FIELDS and isinstance(value, (str, bytes)):
            clean[key] = f"<{len(value)} chars>"
        elif isinstance(value, dict):
            clean[key] = sanitize_log_data(value)
        else:
            clean[key] = value
    return clean
