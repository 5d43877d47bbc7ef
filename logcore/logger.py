"""
LogCore: Standardized JSON logging library with validation.
"""

import json
import logging
from datetime import datetime, timezone
from typing import IO, Optional, Union

# Accepted level names; 'warn' and 'fatal' are kept for CLI compatibility
LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
    'fatal': logging.CRITICAL,
    'critical': logging.CRITICAL,
}

REQUIRED_FIELDS = ('timestamp', 'level', 'logger', 'message')
VALID_LEVEL_NAMES = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.

    Output format:
    {
        "timestamp": "2026-02-08T20:30:00.123456Z",
        "level": "INFO",
        "logger": "mem_agent.publisher",
        "message": "metric",
        "context": {...}  # Optional extra fields
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        created = datetime.fromtimestamp(record.created, timezone.utc)
        log_data = {
            'timestamp': created.strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # Add context if present (from logger.info(..., extra={'context': {...}}))
        if getattr(record, 'context', None):
            log_data['context'] = record.context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        # Add source location in debug mode
        if record.levelno <= logging.DEBUG:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }

        return json.dumps(log_data, default=str)


def parse_level(level: Union[str, int]) -> int:
    """
    Convert a level name (case-insensitive) or number to a logging level.

    Raises:
        ValueError: If the name is not in LEVELS
    """
    if isinstance(level, int):
        return level
    try:
        return LEVELS[level.lower()]
    except (KeyError, AttributeError):
        raise ValueError(f"Invalid log level: {level!r}. Must be one of {sorted(LEVELS)}")


def _make_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return JSONFormatter()
    return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def get_logger(
    name: Optional[str],
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_json: bool = True,
    stream: Optional[IO] = None
) -> logging.Logger:
    """
    Get a pre-configured logger instance.

    Args:
        name: Logger name (typically the top-level package)
        level: Logging level (default: INFO)
        log_file: Optional file path for file handler
        use_json: Use JSON formatter (default: True)
        stream: Console stream (default: stderr)

    Returns:
        Configured logger instance

    Example:
        logger = get_logger('mem_agent')
        logger.info("start", extra={'context': {'namespace': 'System/Linux'}})
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Check if we already have handlers to avoid duplicates
    has_console_handler = any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                              for h in logger.handlers)
    has_file_handler = any(isinstance(h, logging.FileHandler) and h.baseFilename == log_file
                           for h in logger.handlers) if log_file else False

    if not has_console_handler:
        console_handler = logging.StreamHandler(stream)
        console_handler.setFormatter(_make_formatter(use_json))
        logger.addHandler(console_handler)

    if log_file and not has_file_handler:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_make_formatter(use_json))
        logger.addHandler(file_handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger


def setup_logging(
    level: Union[str, int] = 'info',
    name: Optional[str] = None,
    log_file: Optional[str] = None,
    use_json: bool = True,
    stream: Optional[IO] = None
) -> logging.Logger:
    """
    Configure JSON logging for an application package.

    Loggers created with logging.getLogger(f'{name}.module') inherit the
    handlers installed here. Calling it again only adjusts the level.
    """
    return get_logger(name, parse_level(level), log_file=log_file, use_json=use_json, stream=stream)


def validate_log_format(log_line: str) -> bool:
    """Check that a line is a JSON object with the fields JSONFormatter emits"""
    try:
        data = json.loads(log_line)
    except (json.JSONDecodeError, TypeError):
        return False

    if not isinstance(data, dict):
        return False
    if any(field not in data for field in REQUIRED_FIELDS):
        return False
    return data['level'] in VALID_LEVEL_NAMES
