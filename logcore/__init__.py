"""
logcore: Standardized JSON logging library

Provides structured JSON logging with validation for consistent log format
across the Observ agents.
"""

from logcore.logger import JSONFormatter, get_logger, parse_level, setup_logging, validate_log_format

__all__ = ['JSONFormatter', 'get_logger', 'parse_level', 'setup_logging', 'validate_log_format']
__version__ = '1.1.0'
